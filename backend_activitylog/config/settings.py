"""
Application settings and environment configuration.

Typed, frozen settings for the ledger client, pipeline, resync loop and API
server, built from environment variables (and .env) by get_settings().
"""

from __future__ import annotations

from dataclasses import dataclass, field

from backend_activitylog.config.env import (
    DEFAULT_DESCRIBER_URL,
    env_float,
    env_int,
    env_list,
    env_str,
    get_rpc_url,
    load_activitylog_env,
)

FAILURE_POLICIES = ("isolate", "abort")


@dataclass(frozen=True)
class Settings:
    """Service configuration; one instance per process."""

    rpc_url: str
    describer_url: str = DEFAULT_DESCRIBER_URL
    app_addresses: tuple[str, ...] = field(default_factory=tuple)
    from_block: str = "0x0"
    to_block: str = "latest"
    max_concurrency: int = 8
    rpc_rate_per_sec: float = 0.0
    failure_policy: str = "isolate"
    rpc_max_retries: int = 3
    rpc_min_retry_delay_sec: float = 0.5
    rpc_max_retry_delay_sec: float = 8.0
    rpc_timeout_sec: float = 15.0
    resync_interval_sec: float = 60.0
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    def __post_init__(self) -> None:
        if not self.rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if self.max_concurrency < 1:
            raise ValueError("ACTIVITY_MAX_CONCURRENCY must be at least 1")
        if self.rpc_max_retries < 1:
            raise ValueError("RPC_MAX_RETRIES must be at least 1")
        if self.resync_interval_sec <= 0:
            raise ValueError("RESYNC_INTERVAL_SEC must be positive")
        if self.failure_policy not in FAILURE_POLICIES:
            raise ValueError(
                f"ACTIVITY_FAILURE_POLICY must be one of {FAILURE_POLICIES}, got {self.failure_policy!r}"
            )


def get_settings() -> Settings:
    """
    Return the current application settings.

    Reads the environment on every call so tests can monkeypatch variables.
    Raises ValueError naming the offending variable on invalid values.
    """
    load_activitylog_env()
    return Settings(
        rpc_url=get_rpc_url(),
        describer_url=env_str("DESCRIBER_URL", DEFAULT_DESCRIBER_URL),
        app_addresses=tuple(env_list("ACTIVITY_APP_ADDRESSES")),
        from_block=env_str("ACTIVITY_FROM_BLOCK", "0x0"),
        to_block=env_str("ACTIVITY_TO_BLOCK", "latest"),
        max_concurrency=env_int("ACTIVITY_MAX_CONCURRENCY", 8),
        rpc_rate_per_sec=env_float("ACTIVITY_RPC_RATE_PER_SEC", 0.0),
        failure_policy=env_str("ACTIVITY_FAILURE_POLICY", "isolate").lower(),
        rpc_max_retries=env_int("RPC_MAX_RETRIES", 3),
        rpc_min_retry_delay_sec=env_float("RPC_MIN_RETRY_DELAY_SEC", 0.5),
        rpc_max_retry_delay_sec=env_float("RPC_MAX_RETRY_DELAY_SEC", 8.0),
        rpc_timeout_sec=env_float("RPC_TIMEOUT_SEC", 15.0),
        resync_interval_sec=env_float("RESYNC_INTERVAL_SEC", 60.0),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000),
    )
