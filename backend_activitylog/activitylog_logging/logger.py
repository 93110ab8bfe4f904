"""
structlog setup for the activity service.

Every line carries event_type, level, timestamp and logger; a resync run adds
run_generation and reason through contextvars.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Activity events are keyed as event_type (activity_run_started, ledger_rpc_retry, ...)."""
    if "event" in event_dict:
        event_dict.setdefault("event_type", event_dict.pop("event"))
    return event_dict


def configure_structlog() -> None:
    renderer: Any
    if LOG_FORMAT == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            _add_timestamp,
            _event_type,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, LOG_LEVEL, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name).bind(logger=name)


def bind_run(generation: int, reason: str) -> None:
    """Tag every log line of the current resync run."""
    structlog.contextvars.bind_contextvars(run_generation=generation, reason=reason)


def unbind_run() -> None:
    structlog.contextvars.unbind_contextvars("run_generation", "reason")


def short(value: str | None, keep: int = 10) -> str:
    """Shorten a hash or address for log fields."""
    if not value:
        return ""
    return value[:keep] + "..." if len(value) > keep else value
