"""
Environment variable loading and validation for the activity log.

- ETH_RPC_URL: ledger JSON-RPC endpoint (read from .env)
- ACTIVITY_APP_ADDRESSES: comma-separated cluster proxy addresses
- DESCRIBER_URL: description service base URL
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_activitylog/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_DESCRIBER_URL = "http://localhost:3100"


def load_activitylog_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    return raw or default


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def env_list(name: str) -> list[str]:
    """Comma-separated list; blanks dropped."""
    return [item.strip() for item in env_str(name).split(",") if item.strip()]


def get_rpc_url() -> str:
    """Resolve ledger RPC URL: ETH_RPC_URL > local node default."""
    load_activitylog_env()
    return env_str("ETH_RPC_URL", DEFAULT_RPC_URL)


def mask_url(url: str) -> str:
    """Mask an API key embedded in an RPC URL for logs."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
