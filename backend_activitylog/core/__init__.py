"""
Core utilities: exception taxonomy shared by ledger, directory, describer and pipeline.
"""
