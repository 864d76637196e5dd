"""Notification entries and their storage encoding.

The row store only supports primitive list columns, so each entry is stored
as its own JSON string. A blob that no longer decodes is dropped on read
rather than failing the whole list.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger()


class NotificationType(str, Enum):
    CHECK_IN = "checkIn"
    REVIEW = "review"
    TIER_CHANGED = "tierChanged"
    BADGE_EARNED = "badgeEarned"
    EVENT_ADDED = "eventAdded"
    EVENT_REMINDER = "eventReminder"
    FAVORITE_BRAND_UPDATE = "favoriteBrandUpdate"


@dataclass
class NotificationEntry:
    id: str
    type: NotificationType
    title: str
    message: str
    is_read: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        type_: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> NotificationEntry:
        return cls(
            id=uuid.uuid4().hex,
            type=NotificationType(type_),
            title=title,
            message=message,
            data=dict(data or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "isRead": self.is_read,
            "createdAt": self.created_at.isoformat(),
            "data": self.data,
        }

    def to_blob(self) -> str:
        return json.dumps(self.to_dict(), default=str, ensure_ascii=False)

    @classmethod
    def from_blob(cls, blob: str | dict) -> NotificationEntry:
        """Decode a stored entry. Raises ValueError for anything malformed."""
        raw = json.loads(blob) if isinstance(blob, str) else blob
        if not isinstance(raw, dict):
            raise ValueError("notification blob is not an object")
        try:
            created_at = datetime.fromisoformat(raw["createdAt"])
            data = raw.get("data")
            return cls(
                id=str(raw["id"]),
                type=NotificationType(raw["type"]),
                title=str(raw.get("title", "")),
                message=str(raw.get("message", "")),
                is_read=bool(raw.get("isRead", False)),
                created_at=created_at,
                data=dict(data) if isinstance(data, dict) else {},
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed notification blob: {exc}") from exc


def deserialize_entries(blobs: Iterable[str]) -> list[NotificationEntry]:
    entries = []
    for blob in blobs:
        try:
            entries.append(NotificationEntry.from_blob(blob))
        except ValueError:
            logger.warning("notification_blob_undecodable", blob=str(blob)[:120])
    return entries


def serialize_entries(entries: Iterable[NotificationEntry]) -> list[str]:
    return [entry.to_blob() for entry in entries]
