"""Tests for machine stats and top defect lines."""
from datetime import timedelta
import pytest
from factory_events.engine.aggregator import (
    machine_stats,
    round_percent,
    top_defect_lines,
)
from factory_events.engine.reconciler import reconcile
from factory_events.event_models import IncomingEvent, parse_instant
from factory_events.services.event_service import EventService
from factory_events.errors import InvalidRangeError
from factory_events.clock import FixedClock
from conftest import NOW, make_event

START = parse_instant("2026-01-15T00:00:00Z")
END = START + timedelta(hours=24)


def record(**overrides):
    return reconcile(None, IncomingEvent.model_validate(make_event(**overrides)), NOW).record


def test_single_event_day_window():
    stats = machine_stats([record(defectCount=1)], "M-001", START, END)

    assert stats.events_count == 1
    assert stats.defects_count == 1
    assert stats.avg_defect_rate == pytest.approx(1 / 24)
    assert stats.status == "Healthy"


def test_negative_defects_count_as_events_but_not_defects():
    records = [record(eventId="E-1", defectCount=-1), record(eventId="E-2", defectCount=3)]
    stats = machine_stats(records, "M-001", START, END)

    assert stats.events_count == 2
    assert stats.defects_count == 3


def test_warning_at_two_defects_per_hour():
    one_hour = START + timedelta(hours=1)
    stats = machine_stats([record(defectCount=2)], "M-001", START, one_hour)

    assert stats.avg_defect_rate == 2.0
    assert stats.status == "Warning"


def test_empty_or_inverted_window_has_zero_rate():
    assert machine_stats([record()], "M-001", START, START).avg_defect_rate == 0.0
    assert machine_stats([record()], "M-001", END, START).avg_defect_rate == 0.0


def test_stats_echo_caller_bounds():
    stats = machine_stats([], "M-001", START, END, "2026-01-15T00:00:00Z", "2026-01-16T00:00:00Z")

    assert stats.start == "2026-01-15T00:00:00Z"
    assert stats.end == "2026-01-16T00:00:00Z"
    assert stats.events_count == 0
    assert stats.status == "Healthy"


def test_top_lines_ranked_and_limited():
    records = [
        record(eventId="A", lineId="L01", defectCount=10),
        record(eventId="B", lineId="L02", defectCount=5),
    ]
    lines = top_defect_lines(records, limit=1)

    assert len(lines) == 1
    assert lines[0].line_id == "L01"
    assert lines[0].total_defects == 10


def test_top_lines_group_counts_and_percent():
    records = [
        record(eventId="A", lineId="L01", defectCount=1),
        record(eventId="B", lineId="L01", defectCount=0),
        record(eventId="C", lineId="L01", defectCount=-1),
    ]
    [line] = top_defect_lines(records)

    assert line.event_count == 3
    assert line.total_defects == 1
    assert line.defects_percent == 33.33


def test_top_lines_tie_broken_by_line_id():
    records = [
        record(eventId="A", lineId="L03", defectCount=2),
        record(eventId="B", lineId="L01", defectCount=2),
        record(eventId="C", lineId="L02", defectCount=2),
    ]
    assert [line.line_id for line in top_defect_lines(records)] == ["L01", "L02", "L03"]


def test_top_lines_default_limit_is_ten():
    records = [record(eventId=f"E-{i}", lineId=f"L{i:02d}") for i in range(12)]
    assert len(top_defect_lines(records)) == 10


def test_round_percent_is_half_up():
    assert round_percent(1, 8) == 12.5
    assert round_percent(1, 3) == 33.33
    assert round_percent(2, 3) == 66.67
    # 0.125 exactly: half-up, not banker's
    assert round_percent(1, 800) == 0.13
    assert round_percent(0, 0) == 0.0


@pytest.mark.asyncio
async def test_service_queries_use_inclusive_window(store):
    service = EventService(store=store, clock=FixedClock(parse_instant("2026-01-17T00:00:00Z")))
    await service.ingest_batch([
        make_event(eventId="AT-START", eventTime="2026-01-15T00:00:00Z"),
        make_event(eventId="AT-END", eventTime="2026-01-16T00:00:00Z", defectCount=2),
        make_event(eventId="AFTER", eventTime="2026-01-16T00:00:00.001Z"),
    ])

    stats = await service.get_stats("M-001", "2026-01-15T00:00:00Z", "2026-01-16T00:00:00Z")
    assert stats.events_count == 2
    assert stats.defects_count == 3

    lines = await service.get_top_defect_lines("F01", "2026-01-15T00:00:00Z", "2026-01-16T00:00:00Z")
    assert [(l.line_id, l.event_count) for l in lines] == [("L01", 2)]


@pytest.mark.asyncio
async def test_service_rejects_unparsable_bounds(store, clock):
    service = EventService(store=store, clock=clock)

    with pytest.raises(InvalidRangeError):
        await service.get_stats("M-001", "yesterday", "2026-01-16T00:00:00Z")
    with pytest.raises(InvalidRangeError):
        await service.get_top_defect_lines("F01", "2026-01-15T00:00:00Z", "tomorrow")
