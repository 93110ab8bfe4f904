"""
HTTP API for the activity feed.

Read the last published feed, trigger a resync, and probe liveness. The app
is built by create_app(); app.py exposes a module-level ASGI app for uvicorn.
"""
