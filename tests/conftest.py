"""Shared fixtures and event builders."""
from datetime import datetime, timezone
import pytest
from factory_events.adapters.memory import InMemoryEventStore
from factory_events.clock import FixedClock
from factory_events.services.event_service import service

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_event(**overrides) -> dict:
    """Wire-format event; keyword overrides use the camelCase field names."""
    event = {
        "eventId": "E-1",
        "eventTime": "2026-01-15T10:12:03.123Z",
        "receivedTime": "2026-01-15T10:12:04.500Z",
        "machineId": "M-001",
        "factoryId": "F01",
        "lineId": "L01",
        "durationMs": 1000,
        "defectCount": 1,
    }
    event.update(overrides)
    return event


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def service_store():
    """Swap a fresh in-memory store into the global service used by the API."""
    previous = service.store
    fresh = InMemoryEventStore()
    service.store = fresh
    service.processor.store = fresh
    yield fresh
    service.store = previous
    service.processor.store = previous
