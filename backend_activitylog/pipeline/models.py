"""
Pipeline output models: Activity, skipped transactions, and resync results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from backend_activitylog.core.exceptions import ActivityLogError
from backend_activitylog.describer.models import AnnotationTokens


class FailurePolicy(str, Enum):
    """How per-transaction failures (fetch, describe, unwrap, timestamp) are handled."""

    ABORT = "abort"
    """First failure aborts the whole run."""
    ISOLATE = "isolate"
    """Failing transactions are dropped and reported; the rest of the feed survives."""


class FeedStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"
    SUPERSEDED = "superseded"


@dataclass(frozen=True)
class Activity:
    """
    One feed entry, backed by exactly one retained transaction.

    forwarder is the forwarding contract (the transaction's `to`) when the
    transaction executed a script, else None; app is then the last script
    step's target, else the transaction's `to`.
    """

    sender: str
    description: str
    annotated_description: AnnotationTokens | None
    forwarder: str | None
    app: str
    timestamp: int
    """Milliseconds since epoch."""
    tx_hash: str = ""

    @property
    def is_forwarded(self) -> bool:
        return self.forwarder is not None

    def to_dict(self) -> dict[str, Any]:
        """Presentation contract: camelCase keys, forwarder=False when direct."""
        return {
            "from": self.sender,
            "description": self.description,
            "annotatedDescription": self.annotated_description,
            "forwarder": self.forwarder if self.forwarder is not None else False,
            "app": self.app,
            "timestamp": self.timestamp,
            "txHash": self.tx_hash,
        }


@dataclass(frozen=True)
class SkippedTransaction:
    """A transaction dropped under FailurePolicy.ISOLATE, with the reason."""

    tx_hash: str
    stage: str
    error: ActivityLogError

    def to_dict(self) -> dict[str, Any]:
        return {"tx_hash": self.tx_hash, "stage": self.stage, "error": self.error.to_dict()}


@dataclass(frozen=True)
class FeedResult:
    """Outcome of one resync run; 'empty' and 'failed' are distinct statuses."""

    status: FeedStatus
    generation: int
    reason: str
    activities: tuple[Activity, ...] = ()
    skipped: tuple[SkippedTransaction, ...] = ()
    error: dict[str, Any] | None = None
    finished_at: int | None = None
    """Wall clock (ms) when the run settled."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "generation": self.generation,
            "reason": self.reason,
            "activities": [a.to_dict() for a in self.activities],
            "skipped": [s.to_dict() for s in self.skipped],
            "error": self.error,
            "finished_at": self.finished_at,
        }


@dataclass
class RunCollector:
    """Per-run accumulator for skipped transactions; never shared between runs."""

    policy: FailurePolicy
    skipped: list[SkippedTransaction] = field(default_factory=list)

    def record(self, tx_hash: str, stage: str, error: ActivityLogError) -> None:
        self.skipped.append(SkippedTransaction(tx_hash=tx_hash, stage=stage, error=error))
