"""
Structured logging for Backend Activity Log.

JSON logs with timestamp, event_type, and run context (run_generation, reason).
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_activitylog.activitylog_logging.logger import (
    bind_run,
    get_logger,
    short,
    unbind_run,
)

__all__ = ["bind_run", "get_logger", "short", "unbind_run"]
