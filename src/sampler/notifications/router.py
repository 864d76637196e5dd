"""Notification API endpoints, keyed by the account's auth id."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from sampler.config import get_settings
from sampler.dependencies import get_notification_log
from sampler.ledger.errors import NotificationNotFoundError
from sampler.notifications.log import NotificationLog
from sampler.notifications.schemas import (
    NotificationActionResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api/v1/accounts/{account_id}", tags=["Notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    account_id: str,
    limit: int | None = Query(None, ge=0, le=100),
    log: NotificationLog = Depends(get_notification_log),
):
    """Newest first."""
    if limit is None:
        limit = get_settings().notification_list_limit
    entries = await log.list_notifications(account_id, limit=limit)
    return NotificationListResponse(
        notifications=[NotificationResponse.from_entry(e) for e in entries],
        total=len(entries),
    )


@router.get("/notifications/unread", response_model=NotificationListResponse)
async def list_unread_notifications(
    account_id: str,
    limit: int | None = Query(None, ge=0, le=100),
    log: NotificationLog = Depends(get_notification_log),
):
    if limit is None:
        limit = get_settings().notification_unread_limit
    entries = await log.list_unread(account_id, limit=limit)
    return NotificationListResponse(
        notifications=[NotificationResponse.from_entry(e) for e in entries],
        total=len(entries),
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_notification_count(
    account_id: str,
    log: NotificationLog = Depends(get_notification_log),
):
    return UnreadCountResponse(unread_count=await log.unread_count(account_id))


@router.post("/notifications/read-all", response_model=NotificationActionResponse)
async def mark_all_notifications_read(
    account_id: str,
    log: NotificationLog = Depends(get_notification_log),
):
    count = await log.mark_all_read(account_id)
    return NotificationActionResponse(detail=f"Marked {count} notifications as read", count=count)


@router.post("/notifications/{notification_id}/read", response_model=NotificationActionResponse)
async def mark_notification_read(
    account_id: str,
    notification_id: str,
    log: NotificationLog = Depends(get_notification_log),
):
    if not await log.mark_read(account_id, notification_id):
        raise NotificationNotFoundError()
    return NotificationActionResponse(detail="Notification marked as read", count=1)


@router.delete("/notifications/{notification_id}", response_model=NotificationActionResponse)
async def delete_notification(
    account_id: str,
    notification_id: str,
    log: NotificationLog = Depends(get_notification_log),
):
    if not await log.delete(account_id, notification_id):
        raise NotificationNotFoundError()
    return NotificationActionResponse(detail="Notification deleted", count=1)


@router.delete("/notifications", response_model=NotificationActionResponse)
async def clear_notifications(
    account_id: str,
    log: NotificationLog = Depends(get_notification_log),
):
    count = await log.clear(account_id)
    return NotificationActionResponse(detail=f"Deleted {count} notifications", count=count)
