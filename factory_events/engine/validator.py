"""Per-event admissibility checks."""
from datetime import datetime, timedelta
from typing import Any, Mapping
import structlog
from pydantic import ValidationError
from ..event_models import IncomingEvent, MAX_DURATION_MS, parse_instant

log = structlog.get_logger()

# Clock skew tolerated for event times reported ahead of ours
FUTURE_TOLERANCE = timedelta(minutes=15)

REASON_INVALID = "INVALID"


def coerce(raw: IncomingEvent | Mapping[str, Any]) -> IncomingEvent | None:
    """
    Shape-check a raw batch item.

    Returns:
        The parsed event, or None if the item lacks a field or has a wrong type
    """
    if isinstance(raw, IncomingEvent):
        return raw
    try:
        return IncomingEvent.model_validate(raw)
    except ValidationError as e:
        log.debug("event.malformed", errors=e.error_count())
        return None


def validate(incoming: IncomingEvent, now: datetime) -> bool:
    """
    Decide whether an event may be reconciled into the store.

    An event is admissible when its event time parses and is not more than
    15 minutes ahead of ``now``, and its duration lies in [0, MAX_DURATION_MS].
    The defect count and received time never make an event inadmissible.
    """
    try:
        event_time = parse_instant(incoming.event_time)
        if event_time > now + FUTURE_TOLERANCE:
            return False
        if incoming.duration_ms < 0 or incoming.duration_ms > MAX_DURATION_MS:
            return False
        return True
    except (ValueError, TypeError, AttributeError):
        return False


def raw_event_id(raw: IncomingEvent | Mapping[str, Any]) -> str | None:
    """Best-effort event id of a batch item, for rejection reports."""
    if isinstance(raw, IncomingEvent):
        return raw.event_id
    if isinstance(raw, Mapping):
        value = raw.get("eventId", raw.get("event_id"))
        return None if value is None else str(value)
    return None
