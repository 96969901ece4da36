"""Reconciliation of an incoming event against the stored record for its id.

Conflicts are resolved last-writer-wins on ``receivedTime`` (when the event
was reported), not on ``eventTime``. The reconciler never rejects: anything
reaching it has already passed the validator.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from ..event_models import EventRecord, IncomingEvent, parse_instant


class Outcome(str, Enum):
    """Reconciliation outcomes."""
    ACCEPT = "accept"
    DEDUPE = "dedupe"
    UPDATE = "update"


@dataclass(frozen=True)
class Reconciliation:
    outcome: Outcome
    record: EventRecord | None = None


def received_or_now(incoming: IncomingEvent, now: datetime) -> datetime:
    """Parsed received time, or ``now`` when it is missing or unparsable."""
    if incoming.received_time is None:
        return now
    try:
        return parse_instant(incoming.received_time)
    except ValueError:
        return now


def same_event(existing: EventRecord, incoming: IncomingEvent, event_time: datetime) -> bool:
    """Content equality; received time is deliberately not part of it."""
    return (
        existing.machine_id == incoming.machine_id
        and existing.factory_id == incoming.factory_id
        and existing.line_id == incoming.line_id
        and existing.duration_ms == incoming.duration_ms
        and existing.defect_count == incoming.defect_count
        and existing.event_time == event_time
    )


def reconcile(
    existing: EventRecord | None,
    incoming: IncomingEvent,
    now: datetime,
) -> Reconciliation:
    """
    Decide what to do with a validated event.

    Args:
        existing: Record currently stored under the event id, if any
        incoming: Event that passed validation
        now: Current instant, used for timestamps and the received-time fallback

    Returns:
        ACCEPT with a new record, UPDATE with the replacement record,
        or DEDUPE with no record
    """
    event_time = parse_instant(incoming.event_time)
    received_time = received_or_now(incoming, now)

    if existing is None:
        record = EventRecord(
            event_id=incoming.event_id,
            event_time=event_time,
            received_time=received_time,
            machine_id=incoming.machine_id,
            factory_id=incoming.factory_id,
            line_id=incoming.line_id,
            duration_ms=incoming.duration_ms,
            defect_count=incoming.defect_count,
            created_at=now,
            updated_at=now,
        )
        return Reconciliation(Outcome.ACCEPT, record)

    if same_event(existing, incoming, event_time):
        return Reconciliation(Outcome.DEDUPE)

    # Stale or out-of-order resends are absorbed, not rejected
    if received_time <= existing.received_time:
        return Reconciliation(Outcome.DEDUPE)

    record = existing.model_copy(
        update={
            "event_time": event_time,
            "received_time": received_time,
            "machine_id": incoming.machine_id,
            "factory_id": incoming.factory_id,
            "line_id": incoming.line_id,
            "duration_ms": incoming.duration_ms,
            "defect_count": incoming.defect_count,
            "updated_at": now,
        }
    )
    return Reconciliation(Outcome.UPDATE, record)
