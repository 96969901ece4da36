"""Telemetry event models.

Field names are snake_case in Python and camelCase on the wire.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Longest admissible machine cycle: 6 hours
MAX_DURATION_MS = 6 * 60 * 60 * 1000

# Extended-format ISO-8601 instant: date, "T", hh:mm:ss, optional fraction, "Z" or offset.
# Fractions stop at microseconds, the finest precision a datetime holds.
INSTANT_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d{1,6}))?"
    r"(?:(Z)|([+-])(\d{2}):(\d{2}))",
    re.ASCII,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IncomingEvent(CamelModel):
    """A single event as submitted in a batch; timestamps are still raw strings."""
    event_id: str = Field(..., description="Globally unique event identifier")
    event_time: str = Field(..., description="ISO-8601 instant of the physical event")
    received_time: str | None = Field(default=None, description="ISO-8601 instant it was reported upstream")
    machine_id: str
    factory_id: str
    line_id: str
    duration_ms: int
    defect_count: int = Field(..., description="May be negative; negatives are excluded from sums")

    @field_validator("received_time", mode="before")
    @classmethod
    def _unreadable_received_time(cls, value: Any) -> Any:
        # Anything but a string falls back to the reconciliation time later on
        return value if isinstance(value, str) else None

    @field_validator("duration_ms", "defect_count", mode="before")
    @classmethod
    def _no_booleans(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("boolean is not a count")
        return value


class EventRecord(CamelModel):
    """Persisted event, keyed by event_id."""
    model_config = ConfigDict(frozen=True)

    event_id: str
    event_time: datetime
    received_time: datetime
    machine_id: str
    factory_id: str
    line_id: str
    duration_ms: int
    defect_count: int
    created_at: datetime
    updated_at: datetime


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 instant and normalise it to UTC.

    Only the extended format with a ``T`` separator and seconds is accepted,
    ending in ``Z`` or a ``+hh:mm``/``-hh:mm`` offset. Fractions of a second
    may have up to six digits.

    Raises:
        ValueError: If the value is not such an instant
    """
    if not isinstance(value, str):
        raise ValueError(f"instant must be a string, got {type(value).__name__}")
    match = INSTANT_PATTERN.fullmatch(value)
    if match is None:
        raise ValueError(f"not an ISO-8601 instant: {value!r}")
    year, month, day, hour, minute, second, fraction, zulu, sign, off_h, off_m = match.groups()

    tz = timezone.utc
    if not zulu:
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        tz = timezone(-offset if sign == "-" else offset)

    parsed = datetime(
        int(year), int(month), int(day),
        int(hour), int(minute), int(second),
        int((fraction or "0").ljust(6, "0")),
        tzinfo=tz,
    )
    return parsed.astimezone(timezone.utc)
