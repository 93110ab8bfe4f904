"""
Process runtime: builds the long-lived collaborators once from Settings.

One JSON-RPC ledger client, one description service client and one
ActivityFeed per process; aclose() releases the HTTP connection pools.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_activitylog.activitylog_logging import get_logger
from backend_activitylog.config.env import mask_url
from backend_activitylog.config.settings import Settings
from backend_activitylog.describer.client import HttpDescriptionService
from backend_activitylog.directory.resolver import StaticApplicationDirectory
from backend_activitylog.ledger.rpc import JsonRpcLedger
from backend_activitylog.pipeline.feed import ActivityFeed

logger = get_logger(__name__)


@dataclass
class ServiceRuntime:
    settings: Settings
    ledger: JsonRpcLedger
    describer: HttpDescriptionService
    feed: ActivityFeed

    async def aclose(self) -> None:
        await self.ledger.aclose()
        await self.describer.aclose()
        logger.info("runtime_closed")


def build_runtime(settings: Settings) -> ServiceRuntime:
    """Wire ledger, directory, describer and feed from settings."""
    ledger = JsonRpcLedger(
        settings.rpc_url,
        timeout_sec=settings.rpc_timeout_sec,
        max_retries=settings.rpc_max_retries,
        min_retry_delay_sec=settings.rpc_min_retry_delay_sec,
        max_retry_delay_sec=settings.rpc_max_retry_delay_sec,
    )
    describer = HttpDescriptionService(settings.describer_url, timeout_sec=settings.rpc_timeout_sec)
    directory = StaticApplicationDirectory(settings.app_addresses)
    feed = ActivityFeed(
        ledger,
        directory,
        describer,
        from_block=settings.from_block,
        to_block=settings.to_block,
        max_concurrency=settings.max_concurrency,
        rate_per_sec=settings.rpc_rate_per_sec,
        failure_policy=settings.failure_policy,
    )
    if not settings.app_addresses:
        logger.warning("runtime_no_app_addresses", hint="set ACTIVITY_APP_ADDRESSES")
    logger.info(
        "runtime_built",
        rpc_url=mask_url(settings.rpc_url),
        describer_url=settings.describer_url,
        app_count=len(settings.app_addresses),
        max_concurrency=settings.max_concurrency,
        failure_policy=settings.failure_policy,
    )
    return ServiceRuntime(settings=settings, ledger=ledger, describer=describer, feed=feed)
