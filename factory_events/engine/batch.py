"""Batch ingestion: validate, look up, reconcile and write each event in turn."""
from typing import Any, Iterable, Mapping
import structlog
from pydantic import Field
from .reconciler import Outcome, reconcile
from .validator import REASON_INVALID, coerce, raw_event_id, validate
from ..adapters.base import EventStore
from ..clock import Clock, SystemClock
from ..event_models import CamelModel, IncomingEvent

log = structlog.get_logger()

REASON_STORE_ERROR = "STORE_ERROR"


class ItemIssue(CamelModel):
    event_id: str | None
    reason: str


class BatchResult(CamelModel):
    """Per-outcome counts for one batch."""
    accepted: int = 0
    deduped: int = 0
    updated: int = 0
    rejected: int = 0
    rejections: list[ItemIssue] = Field(default_factory=list)
    # Events that were valid but could not be written
    failed: int = 0
    failures: list[ItemIssue] = Field(default_factory=list)


class WriteConflict(Exception):
    """Conditional writes kept losing to concurrent writers."""


class BatchProcessor:
    """
    Drives a batch of incoming events through the validator, the store and
    the reconciler.

    Each event is handled on its own against the store state visible when it
    is reached, so one id appearing twice in a batch is reconciled twice.
    A failure on one event never stops the rest of the batch.
    """

    def __init__(
        self,
        store: EventStore,
        clock: Clock | None = None,
        max_attempts: int = 3,
        metrics=None,
    ):
        """
        Args:
            store: Event store to read from and write to
            clock: Source of the current instant (defaults to system time)
            max_attempts: Reconcile/write attempts per event on write conflicts
            metrics: Optional Metrics instance for outcome counters
        """
        self.store = store
        self.clock = clock or SystemClock()
        self.max_attempts = max_attempts
        self.metrics = metrics

    async def process_batch(self, events: Iterable[IncomingEvent | Mapping[str, Any]]) -> BatchResult:
        result = BatchResult()

        for raw in events:
            incoming = coerce(raw)
            if incoming is None or not validate(incoming, self.clock.now()):
                event_id = raw_event_id(raw)
                result.rejected += 1
                result.rejections.append(ItemIssue(event_id=event_id, reason=REASON_INVALID))
                log.info("event.rejected", event_id=event_id, reason=REASON_INVALID)
                self._record("rejected")
                continue

            try:
                outcome = await self._apply(incoming)
            except Exception as e:
                result.failed += 1
                result.failures.append(ItemIssue(event_id=incoming.event_id, reason=REASON_STORE_ERROR))
                log.error(
                    "event.store_failed",
                    event_id=incoming.event_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._record("failed")
                continue

            if outcome is Outcome.ACCEPT:
                result.accepted += 1
            elif outcome is Outcome.UPDATE:
                result.updated += 1
            else:
                result.deduped += 1
            self._record(outcome.value)

        log.info(
            "batch.processed",
            accepted=result.accepted,
            deduped=result.deduped,
            updated=result.updated,
            rejected=result.rejected,
            failed=result.failed,
        )
        return result

    async def _apply(self, incoming: IncomingEvent) -> Outcome:
        """Lookup, reconcile and conditionally write one event."""
        for attempt in range(1, self.max_attempts + 1):
            existing = await self.store.find_by_id(incoming.event_id)
            decision = reconcile(existing, incoming, self.clock.now())
            if decision.record is None:
                return decision.outcome
            if await self.store.compare_and_save(decision.record, existing):
                return decision.outcome
            log.info("event.write_retry", event_id=incoming.event_id, attempt=attempt)
        raise WriteConflict(f"gave up on {incoming.event_id} after {self.max_attempts} attempts")

    def _record(self, outcome: str):
        if self.metrics is not None:
            self.metrics.record_ingest_outcome(outcome)
