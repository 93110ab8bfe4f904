"""
Main entrypoint: FastAPI server with the periodic resync loop in its lifespan.

The app builds one ledger client, one description client and one ActivityFeed
at startup, resyncs every RESYNC_INTERVAL_SEC, and serves the last published
feed. On SIGINT/SIGTERM uvicorn shuts down and the loop is stopped.

Env: ETH_RPC_URL, ACTIVITY_APP_ADDRESSES, DESCRIBER_URL, RESYNC_INTERVAL_SEC, API_HOST, API_PORT, etc.

API only: uvicorn backend_activitylog.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os
import sys

# Configure structured JSON logging before other imports that may log
from backend_activitylog.activitylog_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Validate settings, then run the API server (and its resync loop) in the main thread."""
    from backend_activitylog.config.settings import get_settings

    try:
        settings = get_settings()
    except ValueError as e:
        logger.error("main_config_error", error=str(e))
        sys.exit(1)
    if not settings.app_addresses:
        logger.error(
            "main_config_error",
            message="No app addresses to follow: set ACTIVITY_APP_ADDRESSES (comma-separated)",
        )
        sys.exit(1)

    from backend_activitylog.api_server.server import create_app
    import uvicorn

    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        app_count=len(settings.app_addresses),
    )
    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
