"""
Activity assembly (stage 6): join per-transaction results into feed entries.
"""

from __future__ import annotations

from typing import Sequence

from backend_activitylog.describer.models import Description, ScriptStep
from backend_activitylog.ledger.models import Transaction
from backend_activitylog.pipeline.models import Activity


def assemble_activity(
    tx: Transaction,
    description: Description | None,
    forward_step: ScriptStep | None,
    timestamp_ms: int,
) -> Activity:
    """Forwarded: text and app from the last script step, forwarder = tx.to. Direct: from the description."""
    if tx.to is None:
        raise ValueError(f"Transaction {tx.hash} has no destination")
    if forward_step is not None:
        return Activity(
            sender=tx.sender,
            description=forward_step.description,
            annotated_description=forward_step.annotated_description,
            forwarder=tx.to,
            app=forward_step.to,
            timestamp=timestamp_ms,
            tx_hash=tx.hash,
        )
    if description is None:
        raise ValueError(f"Direct transaction {tx.hash} has no description")
    return Activity(
        sender=tx.sender,
        description=description.description,
        annotated_description=description.annotated_description,
        forwarder=None,
        app=tx.to,
        timestamp=timestamp_ms,
        tx_hash=tx.hash,
    )


def assemble_activities(
    txs: Sequence[Transaction],
    resolved: Sequence[tuple[Description | None, ScriptStep | None, int]],
) -> list[Activity]:
    """One activity per transaction, in transaction order; no sorting."""
    if len(txs) != len(resolved):
        raise ValueError("Every transaction needs exactly one resolution result")
    return [
        assemble_activity(tx, description, step, timestamp_ms)
        for tx, (description, step, timestamp_ms) in zip(txs, resolved)
    ]
