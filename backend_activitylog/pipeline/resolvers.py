"""
Per-transaction description and timestamp resolution (stage 5).
"""

from __future__ import annotations

from backend_activitylog.core.exceptions import (
    DescriptionResolutionFailed,
    LedgerQueryFailed,
)
from backend_activitylog.describer.client import DescriptionService
from backend_activitylog.describer.models import Description
from backend_activitylog.ledger.base import LedgerReader
from backend_activitylog.ledger.models import Transaction


async def describe_transaction(describer: DescriptionService, tx: Transaction) -> Description:
    """One describer call per transaction; failures become DescriptionResolutionFailed."""
    try:
        return await describer.describe_transaction(tx.to, tx.input)
    except DescriptionResolutionFailed as e:
        if e.tx_hash is None:
            e.tx_hash = tx.hash
        raise
    except Exception as e:
        raise DescriptionResolutionFailed(
            f"Description failed for call to {tx.to}: {e}", tx_hash=tx.hash, address=tx.to
        ) from e


async def resolve_timestamp(ledger: LedgerReader, tx: Transaction) -> int:
    """Block timestamp of the transaction, in milliseconds since epoch."""
    try:
        block = await ledger.get_block(tx.block_number)
    except LedgerQueryFailed as e:
        if e.tx_hash is None:
            e.tx_hash = tx.hash
        raise
    except Exception as e:
        raise LedgerQueryFailed(
            f"Block {tx.block_number} lookup failed: {e}", tx_hash=tx.hash
        ) from e
    return block.timestamp_ms
