"""Notification creation and delivery.

Notifications are:
1. Appended to the account's notification log
2. Pushed to the user's devices in the background (fire-and-forget)

Push runs after ``notify`` has returned; its outcome never reaches the
producer.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from sampler.notifications.dispatcher import NotificationDispatcher
from sampler.notifications.entries import NotificationEntry, NotificationType
from sampler.notifications.log import NotificationLog

logger = structlog.get_logger()


class NotificationService:
    def __init__(self, log: NotificationLog, dispatcher: NotificationDispatcher) -> None:
        self.log = log
        self.dispatcher = dispatcher
        self._pending: set[asyncio.Task[bool]] = set()

    @property
    def pending_dispatches(self) -> int:
        return len(self._pending)

    async def notify(
        self,
        account_id: str,
        type_: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> NotificationEntry:
        """Store a notification and schedule its push delivery."""
        entry = NotificationEntry.create(type_, title, message, data)
        await self.log.append(account_id, entry)
        self._schedule_dispatch(account_id, entry)
        return entry

    def _schedule_dispatch(self, account_id: str, entry: NotificationEntry) -> None:
        task = asyncio.create_task(
            self.dispatcher.dispatch(account_id, entry),
            name=f"push:{account_id}:{entry.id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight push dispatches (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
