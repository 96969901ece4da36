"""Base interface for event store backends."""
from abc import ABC, abstractmethod
from datetime import datetime
from ..event_models import EventRecord


class EventStore(ABC):
    """Abstract key-addressable event store with time-range queries.

    Records are keyed by ``event_id``. Range queries filter on ``event_time``
    and include both bounds.
    """

    @abstractmethod
    async def find_by_id(self, event_id: str) -> EventRecord | None:
        """
        Look up a record by event id.

        Returns:
            The stored record, or None if the id has never been seen
        """
        pass

    @abstractmethod
    async def save(self, record: EventRecord) -> None:
        """Create or overwrite the record stored under ``record.event_id``."""
        pass

    @abstractmethod
    async def compare_and_save(self, record: EventRecord, expected: EventRecord | None) -> bool:
        """
        Atomically write ``record`` only if the stored value is still ``expected``.

        Args:
            record: Record to write
            expected: Record read before reconciling, or None if there was none

        Returns:
            True if the write happened, False if another writer got there first
        """
        pass

    @abstractmethod
    async def find_by_machine_and_time_range(
        self, machine_id: str, start: datetime, end: datetime
    ) -> list[EventRecord]:
        """Records for a machine with ``start <= event_time <= end``."""
        pass

    @abstractmethod
    async def find_by_factory_and_time_range(
        self, factory_id: str, start: datetime, end: datetime
    ) -> list[EventRecord]:
        """Records for a factory with ``start <= event_time <= end``."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the backend is healthy and accessible.

        Returns:
            True if backend is healthy, False otherwise
        """
        pass
