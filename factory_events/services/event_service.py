"""Event service: batch ingestion and aggregate queries over a pluggable store."""
from datetime import datetime
from typing import Any, Iterable, Mapping
import structlog
import time
from ..adapters.base import EventStore
from ..adapters.memory import InMemoryEventStore
from ..adapters.redis_store import RedisEventStore
from ..clock import Clock, SystemClock
from ..config import get_settings
from ..engine.aggregator import LineResult, StatsResult, machine_stats, top_defect_lines
from ..engine.batch import BatchProcessor, BatchResult
from ..errors import InvalidRangeError
from ..event_models import IncomingEvent, parse_instant

log = structlog.get_logger()
settings = get_settings()

_metrics = None


def set_metrics(metrics):
    """Attach the Prometheus metrics used by the global service."""
    global _metrics
    _metrics = metrics
    service.processor.metrics = metrics


def parse_bound(name: str, value: str) -> datetime:
    """Parse a query window boundary, raising InvalidRangeError on bad input."""
    try:
        return parse_instant(value)
    except ValueError as e:
        raise InvalidRangeError(name, value) from e


class EventService:
    """
    Entry point for callers: ingestion mutates the store, queries only read it.

    The store is selected from the STORE_ADAPTER setting unless one is given.
    """

    def __init__(
        self,
        store: EventStore | None = None,
        clock: Clock | None = None,
        max_attempts: int | None = None,
    ):
        if store is None:
            store = _create_default_store()
        self.store = store
        self.clock = clock or SystemClock()
        self.processor = BatchProcessor(
            store,
            clock=self.clock,
            max_attempts=max_attempts or settings.RECONCILE_MAX_ATTEMPTS,
            metrics=_metrics,
        )

    async def ingest_batch(self, events: Iterable[IncomingEvent | Mapping[str, Any]]) -> BatchResult:
        """Reconcile a batch into the store. Never raises for per-item problems."""
        events = list(events)
        start_time = time.time()
        result = await self.processor.process_batch(events)
        if _metrics is not None:
            _metrics.record_batch(len(events), time.time() - start_time)
        return result

    async def get_stats(self, machine_id: str, start: str, end: str) -> StatsResult:
        """
        Health statistics for a machine over the window ``[start, end]``.

        Raises:
            InvalidRangeError: If either bound is not an ISO-8601 instant
        """
        start_time = parse_bound("start", start)
        end_time = parse_bound("end", end)
        records = await self.store.find_by_machine_and_time_range(machine_id, start_time, end_time)
        stats = machine_stats(records, machine_id, start_time, end_time, start, end)
        log.info(
            "stats.computed",
            machine_id=machine_id,
            events_count=stats.events_count,
            status=stats.status,
        )
        return stats

    async def get_top_defect_lines(
        self,
        factory_id: str,
        from_: str,
        to: str,
        limit: int = settings.DEFAULT_TOP_LINES_LIMIT,
    ) -> list[LineResult]:
        """
        Lines of a factory ranked by known defects over ``[from_, to]``.

        Raises:
            InvalidRangeError: If either bound is not an ISO-8601 instant
        """
        start_time = parse_bound("from", from_)
        end_time = parse_bound("to", to)
        records = await self.store.find_by_factory_and_time_range(factory_id, start_time, end_time)
        lines = top_defect_lines(records, limit)
        log.info("top_lines.computed", factory_id=factory_id, lines=len(lines), limit=limit)
        return lines

    async def health_check(self) -> bool:
        """Check store health."""
        return await self.store.health_check()


def _create_default_store() -> EventStore:
    """
    Create the default store based on configuration.

    Returns:
        EventStore instance based on STORE_ADAPTER setting
    """
    if settings.STORE_ADAPTER == "redis":
        if not settings.REDIS_URL:
            log.warning(
                "store.fallback",
                requested="redis",
                actual="memory",
                reason="REDIS_URL not configured"
            )
            return InMemoryEventStore()

        log.info("store.selected", type="redis", url=str(settings.REDIS_URL))
        return RedisEventStore()
    else:
        log.info("store.selected", type="memory")
        return InMemoryEventStore()


# Global event service instance
service = EventService()
