"""
Backend Activity Log: activity feed reconstruction for an on-chain app cluster.

Rebuilds a human-readable activity feed for one organization's set of proxy
contracts purely from ledger data: logs, transactions, block timestamps, and
a description service. Modular layout with separate ledger client, directory,
describer, pipeline, and API server packages.
"""

__version__ = "0.1.0"
