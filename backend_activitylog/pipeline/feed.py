"""
Activity feed pipeline: directory → logs → hashes → transactions → describe /
unwrap / timestamp → activities.

Responsibilities:
- Run the staged pipeline with bounded fan-out at stages 4 and 5.
- Apply the failure policy: ABORT propagates the first per-transaction error;
  ISOLATE drops failing transactions and reports them. Directory and log
  failures are always fatal.
- Resync entry point with a generation counter: a newer run cancels an older
  one still in flight, and stale results are never published.
"""

from __future__ import annotations

import asyncio
import time

from backend_activitylog.activitylog_logging import bind_run, get_logger, short, unbind_run
from backend_activitylog.core.exceptions import ActivityLogError, DescriptionResolutionFailed
from backend_activitylog.describer.client import DescriptionService
from backend_activitylog.describer.models import Description, ScriptStep
from backend_activitylog.directory.resolver import ApplicationDirectory, resolve_address_set
from backend_activitylog.ledger.base import LedgerReader
from backend_activitylog.ledger.models import Transaction
from backend_activitylog.pipeline.assembler import assemble_activities
from backend_activitylog.pipeline.forwarding import is_forwarded, unwrap_forward
from backend_activitylog.pipeline.logs import fetch_logs, unique_transaction_hashes
from backend_activitylog.pipeline.models import (
    Activity,
    FailurePolicy,
    FeedResult,
    FeedStatus,
    RunCollector,
    SkippedTransaction,
)
from backend_activitylog.pipeline.pool import DEFAULT_MAX_CONCURRENCY, TaskPool, gather_all
from backend_activitylog.pipeline.resolvers import describe_transaction, resolve_timestamp
from backend_activitylog.pipeline.transactions import (
    fetch_transactions,
    filter_cluster_transactions,
)

logger = get_logger(__name__)

STAGE_RESOLVE = "resolve"

_Resolved = tuple[Description | None, ScriptStep | None, int]


def _now_ms() -> int:
    return int(time.time() * 1000)


class ActivityFeed:
    """
    Rebuilds the activity feed of one app cluster from ledger data.

    Collaborators are passed in explicitly and shared across runs; no state
    other than the generation counter and the last published result survives
    a run.
    """

    def __init__(
        self,
        ledger: LedgerReader,
        directory: ApplicationDirectory,
        describer: DescriptionService,
        *,
        from_block: str | int = "0x0",
        to_block: str | int = "latest",
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        rate_per_sec: float = 0.0,
        failure_policy: FailurePolicy | str = FailurePolicy.ISOLATE,
    ) -> None:
        """
        Args:
            ledger: Ledger reader (logs, transactions, blocks).
            directory: Source of the cluster's proxy addresses.
            describer: Description service for calls and forwarded scripts.
            from_block: First block of the log query (default genesis).
            to_block: Last block of the log query (default latest).
            max_concurrency: Max in-flight remote calls during fan-out stages.
            rate_per_sec: Optional pacing of remote calls; 0 disables it.
            failure_policy: ABORT or ISOLATE for per-transaction failures.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._ledger = ledger
        self._directory = directory
        self._describer = describer
        self._from_block = from_block
        self._to_block = to_block
        self._max_concurrency = max_concurrency
        self._rate_per_sec = rate_per_sec
        self._policy = FailurePolicy(failure_policy)
        self._generation = 0
        self._current_task: asyncio.Task[tuple[list[Activity], list[SkippedTransaction]]] | None = None
        self._latest: FeedResult | None = None
        self._superseded_runs: set[asyncio.Task[tuple[list[Activity], list[SkippedTransaction]]]] = set()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest(self) -> FeedResult | None:
        """Last published (non-superseded) result, or None before the first run."""
        return self._latest

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._policy

    async def get_activities(self) -> list[Activity]:
        """Run the pipeline once; raise ActivityLogError on failure."""
        activities, _ = await self.collect()
        return activities

    async def collect(self) -> tuple[list[Activity], list[SkippedTransaction]]:
        """Run the pipeline once and return activities plus isolated failures."""
        collector = RunCollector(policy=self._policy)
        pool = TaskPool(self._max_concurrency, rate_per_sec=self._rate_per_sec)
        started = time.monotonic()

        addresses = await resolve_address_set(self._directory)
        if not addresses:
            logger.info("activity_no_cluster_addresses")
            return [], []

        logs = await fetch_logs(
            self._ledger,
            addresses,
            from_block=self._from_block,
            to_block=self._to_block,
        )
        tx_hashes = unique_transaction_hashes(logs)
        fetched = await fetch_transactions(self._ledger, tx_hashes, pool, collector)
        txs = filter_cluster_transactions(fetched, addresses)
        logger.info(
            "activity_transactions_filtered",
            unique_hashes=len(tx_hashes),
            fetched=len(fetched),
            retained=len(txs),
        )

        txs, resolved = await self._resolve_all(txs, pool, collector)
        activities = assemble_activities(txs, resolved)
        logger.info(
            "activity_feed_built",
            activity_count=len(activities),
            skipped_count=len(collector.skipped),
            peak_in_flight=pool.peak_in_flight,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return activities, collector.skipped

    async def _describe_forward_call(self, tx: Transaction) -> Description | None:
        """The forward() call's own description; the activity is built from the script step instead."""
        try:
            return await describe_transaction(self._describer, tx)
        except DescriptionResolutionFailed as e:
            logger.info(
                "activity_forward_description_unavailable",
                tx_hash=short(tx.hash),
                error=str(e),
            )
            return None

    async def _resolve_one(self, tx: Transaction, pool: TaskPool) -> _Resolved:
        if is_forwarded(tx.input):
            describe = pool.run(self._describe_forward_call, tx)
        else:
            describe = pool.run(describe_transaction, self._describer, tx)
        description, step, timestamp_ms = await gather_all(
            [
                describe,
                pool.run(unwrap_forward, self._describer, tx),
                pool.run(resolve_timestamp, self._ledger, tx),
            ]
        )
        return description, step, timestamp_ms

    async def _resolve_all(
        self,
        txs: list[Transaction],
        pool: TaskPool,
        collector: RunCollector,
    ) -> tuple[list[Transaction], list[_Resolved]]:
        isolate = collector.policy is FailurePolicy.ISOLATE
        results = await gather_all(
            (self._resolve_one(tx, pool) for tx in txs),
            return_exceptions=isolate,
        )
        kept_txs: list[Transaction] = []
        kept: list[_Resolved] = []
        for tx, result in zip(txs, results):
            if isinstance(result, ActivityLogError):
                logger.warning(
                    "activity_tx_skipped",
                    tx_hash=short(tx.hash),
                    stage=STAGE_RESOLVE,
                    error_type=type(result).__name__,
                    error=str(result),
                )
                collector.record(tx.hash, STAGE_RESOLVE, result)
                continue
            if isinstance(result, BaseException):
                raise result
            kept_txs.append(tx)
            kept.append(result)
        return kept_txs, kept

    async def resync(self, reason: str = "manual") -> FeedResult:
        """
        Rebuild the feed and publish the result unless a newer run started.

        Never raises for pipeline failures: the returned FeedResult carries
        status ok / empty / failed, or superseded when a later resync
        overtook this one (its result is then discarded).
        """
        self._generation += 1
        generation = self._generation
        previous = self._current_task
        if previous is not None and not previous.done():
            logger.info("activity_run_superseding", run_generation=generation, reason=reason)
            self._superseded_runs.add(previous)
            previous.cancel()

        task = None
        bind_run(generation, reason)
        try:
            logger.info("activity_run_started")
            task = asyncio.create_task(self.collect())
            self._current_task = task
            try:
                activities, skipped = await task
            except asyncio.CancelledError:
                # Only a run cancelled by a newer resync is superseded; a
                # cancellation of this coroutine itself propagates.
                if task not in self._superseded_runs:
                    raise
                logger.info("activity_run_superseded", latest_generation=self._generation)
                return self._superseded(generation, reason)
            except ActivityLogError as e:
                logger.warning(
                    "activity_run_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                )
                result = FeedResult(
                    status=FeedStatus.FAILED,
                    generation=generation,
                    reason=reason,
                    error=e.to_dict(),
                    finished_at=_now_ms(),
                )
            except Exception as e:
                logger.exception("activity_run_crashed", error=str(e))
                result = FeedResult(
                    status=FeedStatus.FAILED,
                    generation=generation,
                    reason=reason,
                    error={"type": type(e).__name__, "message": str(e)},
                    finished_at=_now_ms(),
                )
            else:
                result = FeedResult(
                    status=FeedStatus.OK if activities else FeedStatus.EMPTY,
                    generation=generation,
                    reason=reason,
                    activities=tuple(activities),
                    skipped=tuple(skipped),
                    finished_at=_now_ms(),
                )

            if generation != self._generation:
                logger.info("activity_run_superseded", latest_generation=self._generation)
                return self._superseded(generation, reason)
            self._latest = result
            logger.info(
                "activity_run_finished",
                status=result.status.value,
                activity_count=len(result.activities),
                skipped_count=len(result.skipped),
            )
            return result
        finally:
            if task is not None:
                self._superseded_runs.discard(task)
            unbind_run()

    @staticmethod
    def _superseded(generation: int, reason: str) -> FeedResult:
        return FeedResult(
            status=FeedStatus.SUPERSEDED,
            generation=generation,
            reason=reason,
            finished_at=_now_ms(),
        )
