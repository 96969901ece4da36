"""In-memory event store."""
from datetime import datetime
import structlog
from .base import EventStore
from ..event_models import EventRecord

log = structlog.get_logger()


class InMemoryEventStore(EventStore):
    """Dict-backed store for a single process.

    Every method body runs without awaiting, so each call is atomic with
    respect to other coroutines on the same event loop.
    """

    def __init__(self):
        self._records: dict[str, EventRecord] = {}
        self.writes = 0

    async def find_by_id(self, event_id: str) -> EventRecord | None:
        return self._records.get(event_id)

    async def save(self, record: EventRecord) -> None:
        self._records[record.event_id] = record
        self.writes += 1
        log.debug("event.saved", event_id=record.event_id, adapter="memory")

    async def compare_and_save(self, record: EventRecord, expected: EventRecord | None) -> bool:
        current = self._records.get(record.event_id)
        if current != expected:
            log.info("store.write_conflict", event_id=record.event_id, adapter="memory")
            return False
        await self.save(record)
        return True

    async def find_by_machine_and_time_range(
        self, machine_id: str, start: datetime, end: datetime
    ) -> list[EventRecord]:
        return [
            r for r in self._records.values()
            if r.machine_id == machine_id and start <= r.event_time <= end
        ]

    async def find_by_factory_and_time_range(
        self, factory_id: str, start: datetime, end: datetime
    ) -> list[EventRecord]:
        return [
            r for r in self._records.values()
            if r.factory_id == factory_id and start <= r.event_time <= end
        ]

    async def health_check(self) -> bool:
        """In-memory store is always healthy."""
        return True

    def __len__(self) -> int:
        return len(self._records)
