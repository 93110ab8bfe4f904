"""
Transaction fetch and cluster filter (stage 4).
"""

from __future__ import annotations

from typing import Iterable

from backend_activitylog.activitylog_logging import get_logger, short
from backend_activitylog.core.exceptions import (
    ActivityLogError,
    LedgerQueryFailed,
)
from backend_activitylog.ledger.base import LedgerReader
from backend_activitylog.ledger.models import Transaction
from backend_activitylog.pipeline.models import FailurePolicy, RunCollector
from backend_activitylog.pipeline.pool import TaskPool, gather_all

logger = get_logger(__name__)

STAGE_FETCH = "fetch_transaction"


async def get_transaction(ledger: LedgerReader, tx_hash: str) -> Transaction:
    try:
        return await ledger.get_transaction(tx_hash)
    except LedgerQueryFailed as e:
        if e.tx_hash is None:
            e.tx_hash = tx_hash
        raise
    except Exception as e:
        raise LedgerQueryFailed(
            f"Transaction lookup failed for {tx_hash}: {e}", tx_hash=tx_hash
        ) from e


async def fetch_transactions(
    ledger: LedgerReader,
    tx_hashes: Iterable[str],
    pool: TaskPool,
    collector: RunCollector,
) -> list[Transaction]:
    """
    Fetch every hash concurrently through the pool; settle all before returning.

    Under ABORT the first failure propagates. Under ISOLATE failing hashes are
    recorded in the collector and left out. Order follows tx_hashes.
    """
    hashes = list(tx_hashes)
    isolate = collector.policy is FailurePolicy.ISOLATE
    results = await gather_all(
        (pool.run(get_transaction, ledger, h) for h in hashes),
        return_exceptions=isolate,
    )
    txs: list[Transaction] = []
    for tx_hash, result in zip(hashes, results):
        if isinstance(result, ActivityLogError):
            logger.warning(
                "activity_tx_skipped",
                tx_hash=short(tx_hash),
                stage=STAGE_FETCH,
                error_type=type(result).__name__,
                error=str(result),
            )
            collector.record(tx_hash, STAGE_FETCH, result)
            continue
        if isinstance(result, BaseException):
            raise result
        txs.append(result)
    return txs


def filter_cluster_transactions(
    txs: Iterable[Transaction],
    addresses: frozenset[str],
) -> list[Transaction]:
    """Keep transactions whose destination is a cluster address; order preserved."""
    return [tx for tx in txs if tx.to is not None and tx.to in addresses]
