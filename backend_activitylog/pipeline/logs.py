"""
Log fetch and transaction-hash deduplication (stages 2-3).
"""

from __future__ import annotations

from typing import Iterable

from backend_activitylog.activitylog_logging import get_logger
from backend_activitylog.core.exceptions import LedgerQueryFailed
from backend_activitylog.ledger.base import LedgerReader
from backend_activitylog.ledger.models import LogEntry

logger = get_logger(__name__)


async def fetch_logs(
    ledger: LedgerReader,
    addresses: frozenset[str],
    *,
    from_block: str | int = "0x0",
    to_block: str | int = "latest",
) -> list[LogEntry]:
    """
    Fetch every log emitted by the cluster in one batched query.

    No degraded mode: any failure raises LedgerQueryFailed.
    """
    try:
        logs = await ledger.get_logs(addresses, from_block=from_block, to_block=to_block)
    except LedgerQueryFailed:
        raise
    except Exception as e:
        raise LedgerQueryFailed(f"Log query failed: {e}") from e
    logger.info(
        "activity_logs_fetched",
        address_count=len(addresses),
        log_count=len(logs),
        from_block=from_block,
        to_block=to_block,
    )
    return logs


def unique_transaction_hashes(logs: Iterable[LogEntry]) -> dict[str, None]:
    """
    Collapse log entries into unique transaction hashes.

    Returned as an insertion-ordered dict used as a set: O(1) membership, and
    iteration follows first appearance in the log sequence so repeated runs
    over the same ledger state fetch (and emit) in the same order.
    """
    return dict.fromkeys(entry.transaction_hash for entry in logs)
