"""Notification entry encoding tests."""

import json
from datetime import datetime, timezone

import pytest

from sampler.notifications.entries import (
    NotificationEntry,
    NotificationType,
    deserialize_entries,
    serialize_entries,
)


class TestNotificationEntry:
    def test_create_assigns_id_and_defaults(self):
        entry = NotificationEntry.create(NotificationType.CHECK_IN, "Title", "Body", {"eventId": "e1"})
        assert entry.id
        assert entry.is_read is False
        assert entry.created_at.tzinfo is not None
        assert entry.data == {"eventId": "e1"}

    def test_blob_uses_app_field_names(self):
        entry = NotificationEntry.create(NotificationType.TIER_CHANGED, "Up!", "Gold now")
        raw = json.loads(entry.to_blob())
        assert raw["type"] == "tierChanged"
        assert raw["isRead"] is False
        assert "createdAt" in raw

    def test_blob_keeps_non_ascii(self):
        entry = NotificationEntry.create(NotificationType.REVIEW, "Thanks ⭐", "ok")
        assert "⭐" in entry.to_blob()

    def test_from_blob_reads_stored_entry(self):
        blob = json.dumps({
            "id": "n1",
            "type": "review",
            "title": "T",
            "message": "M",
            "isRead": True,
            "createdAt": "2026-01-02T03:04:05+00:00",
            "data": {"rating": 5},
        })
        entry = NotificationEntry.from_blob(blob)
        assert entry.id == "n1"
        assert entry.type is NotificationType.REVIEW
        assert entry.is_read is True
        assert entry.created_at == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("data", [[1, 2], "x", 7, None])
    def test_from_blob_non_object_data_keeps_entry(self, data):
        blob = json.dumps({"id": "n2", "type": "checkIn", "createdAt": "2026-01-02T03:04:05+00:00", "data": data})
        entry = NotificationEntry.from_blob(blob)
        assert entry.id == "n2"
        assert entry.data == {}

    @pytest.mark.parametrize("blob", ["not json", "[]", '{"id": "x"}', '{"id": "x", "type": "nope", "createdAt": "2026-01-01"}'])
    def test_from_blob_rejects_malformed(self, blob):
        with pytest.raises(ValueError):
            NotificationEntry.from_blob(blob)


def test_deserialize_skips_bad_blobs():
    good = NotificationEntry.create(NotificationType.CHECK_IN, "a", "b")
    entries = deserialize_entries(["{broken", good.to_blob(), "42"])
    assert [e.id for e in entries] == [good.id]


def test_serialize_preserves_order():
    first = NotificationEntry.create(NotificationType.CHECK_IN, "1", "1")
    second = NotificationEntry.create(NotificationType.REVIEW, "2", "2")
    restored = deserialize_entries(serialize_entries([first, second]))
    assert [e.id for e in restored] == [first.id, second.id]
