"""Tests for accept/dedupe/update decisions."""
from datetime import timedelta
from factory_events.engine.reconciler import Outcome, reconcile
from factory_events.event_models import IncomingEvent, parse_instant
from conftest import NOW, make_event


def incoming(**overrides) -> IncomingEvent:
    return IncomingEvent.model_validate(make_event(**overrides))


def stored(**overrides):
    return reconcile(None, incoming(**overrides), NOW).record


def test_new_event_is_accepted():
    decision = reconcile(None, incoming(), NOW)

    assert decision.outcome is Outcome.ACCEPT
    record = decision.record
    assert record.event_id == "E-1"
    assert record.event_time == parse_instant("2026-01-15T10:12:03.123Z")
    assert record.received_time == parse_instant("2026-01-15T10:12:04.500Z")
    assert record.created_at == NOW
    assert record.updated_at == NOW


def test_unparsable_received_time_falls_back_to_now():
    decision = reconcile(None, incoming(receivedTime="yesterday-ish"), NOW)
    assert decision.record.received_time == NOW


def test_missing_received_time_falls_back_to_now():
    decision = reconcile(None, incoming(receivedTime=None), NOW)
    assert decision.record.received_time == NOW


def test_identical_content_is_deduped_regardless_of_received_time():
    existing = stored()
    decision = reconcile(existing, incoming(receivedTime="2026-01-15T11:00:00Z"), NOW)

    assert decision.outcome is Outcome.DEDUPE
    assert decision.record is None


def test_same_instant_in_other_offset_is_same_event():
    existing = stored()
    decision = reconcile(existing, incoming(eventTime="2026-01-15T11:12:03.123+01:00"), NOW)
    assert decision.outcome is Outcome.DEDUPE


def test_later_received_time_with_changed_content_updates():
    existing = stored()
    later = NOW + timedelta(minutes=5)
    decision = reconcile(
        existing,
        incoming(defectCount=4, lineId="L02", receivedTime="2026-01-15T10:20:00Z"),
        later,
    )

    assert decision.outcome is Outcome.UPDATE
    record = decision.record
    assert record.defect_count == 4
    assert record.line_id == "L02"
    assert record.received_time == parse_instant("2026-01-15T10:20:00Z")
    assert record.created_at == existing.created_at
    assert record.updated_at == later
    assert record.event_id == existing.event_id


def test_equal_received_time_with_changed_content_is_deduped():
    existing = stored()
    decision = reconcile(existing, incoming(defectCount=9), NOW)
    assert decision.outcome is Outcome.DEDUPE


def test_earlier_received_time_with_changed_content_is_deduped():
    existing = stored()
    decision = reconcile(existing, incoming(defectCount=9, receivedTime="2026-01-15T10:00:00Z"), NOW)
    assert decision.outcome is Outcome.DEDUPE


def test_unparsable_received_time_on_resend_uses_now_and_can_update():
    existing = stored()
    decision = reconcile(existing, incoming(durationMs=2000, receivedTime="???"), NOW)

    assert decision.outcome is Outcome.UPDATE
    assert decision.record.received_time == NOW
    assert decision.record.duration_ms == 2000
