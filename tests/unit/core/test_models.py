"""Unit tests for BaseModel bookkeeping and OutboxEvent transitions."""

from __future__ import annotations

import uuid

import pytest
from freezegun import freeze_time

from modules.core.models import EventStatus, OutboxEvent

pytestmark = pytest.mark.unit


def _event(**kwargs):
    defaults = {
        "event_type": "OrderCreated",
        "payload": {"total_expected_units": 2},
        "aggregate_id": str(uuid.uuid4()),
        "topic": "orders",
    }
    defaults.update(kwargs)
    return OutboxEvent.objects.create(**defaults)


class TestBaseModel:
    def test_ids_are_uuid7(self):
        event = _event()
        assert isinstance(event.id, uuid.UUID)
        assert event.id.version == 7

    def test_ids_sort_by_creation(self):
        first = _event()
        second = _event()
        assert first.id < second.id

    def test_update_fields_refreshes_updated_at(self):
        with freeze_time("2024-05-01 10:00:00"):
            event = _event()
        with freeze_time("2024-05-01 11:00:00"):
            event.topic = "garments"
            event.save(update_fields=["topic"])
        event.refresh_from_db()
        assert event.updated_at.hour == 11
        assert event.created_at.hour == 10


class TestOutboxEvent:
    def test_defaults_to_pending(self):
        event = _event()
        assert event.status == EventStatus.PENDING
        assert event.retry_count == 0
        assert event.processed_at is None

    @freeze_time("2024-05-01 12:00:00")
    def test_mark_as_published(self):
        event = _event()
        event.mark_as_published()
        event.refresh_from_db()
        assert event.status == EventStatus.PUBLISHED
        assert event.processed_at.isoformat().startswith("2024-05-01T12:00:00")

    def test_mark_as_failed_counts_retries(self):
        event = _event()
        event.mark_as_failed("timeout")
        event.mark_as_failed("timeout again")
        event.refresh_from_db()
        assert event.status == EventStatus.FAILED
        assert event.retry_count == 2
        assert event.error_message == "timeout again"

    def test_str(self):
        event = _event(aggregate_id="abc")
        assert str(event) == "OrderCreated [PENDING] (abc)"
