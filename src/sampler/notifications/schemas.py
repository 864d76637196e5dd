"""Pydantic response models for notification endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from sampler.notifications.entries import NotificationEntry


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime
    data: dict[str, Any] = {}

    @classmethod
    def from_entry(cls, entry: NotificationEntry) -> NotificationResponse:
        return cls(
            id=entry.id,
            type=entry.type.value,
            title=entry.title,
            message=entry.message,
            is_read=entry.is_read,
            created_at=entry.created_at,
            data=entry.data,
        )


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class NotificationActionResponse(BaseModel):
    detail: str
    count: int = 0
