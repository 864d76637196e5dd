"""Bounded, newest-first notification log kept on the user's profile row.

Every mutation is a read-modify-write of the whole blob list. Two layers keep
concurrent producers from losing each other's entries:

1. a per-account asyncio lock serializes mutations inside this process;
2. the write is a compare-and-swap on the profile's notification version,
   retried a bounded number of times when another process got there first.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from typing import TypeVar

import structlog

from sampler.ledger.errors import PersistenceError
from sampler.ledger.locks import KeyedLock
from sampler.ledger.store import LedgerStore
from sampler.notifications.entries import NotificationEntry, deserialize_entries, serialize_entries

logger = structlog.get_logger()

MAX_NOTIFICATIONS = 50

T = TypeVar("T")

# A mutation receives the current entries and returns (result, changed).
Mutation = Callable[[deque[NotificationEntry]], tuple[T, bool]]


class NotificationLog:
    """Per-account ring buffer of notification entries."""

    def __init__(
        self,
        store: LedgerStore,
        capacity: int = MAX_NOTIFICATIONS,
        cas_retries: int = 5,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._store = store
        self.capacity = capacity
        self._cas_retries = max(cas_retries, 1)
        self._locks = KeyedLock()

    async def _load(self, account_id: str) -> list[NotificationEntry]:
        snapshot = await self._store.read_notifications(account_id)
        return deserialize_entries(snapshot.blobs)

    async def _mutate(self, account_id: str, mutation: Mutation[T]) -> T:
        async with self._locks.hold(account_id):
            for attempt in range(1, self._cas_retries + 1):
                snapshot = await self._store.read_notifications(account_id)
                entries = deque(deserialize_entries(snapshot.blobs)[: self.capacity], maxlen=self.capacity)

                result, changed = mutation(entries)
                if not changed:
                    return result

                written = await self._store.write_notifications(
                    snapshot.profile_id,
                    serialize_entries(entries),
                    snapshot.version,
                )
                if written:
                    return result

                logger.warning(
                    "notification_log_conflict",
                    account_id=account_id,
                    attempt=attempt,
                )

        raise PersistenceError(f"Notification log for {account_id} kept changing; gave up after {self._cas_retries} attempts")

    # --- Mutations ---

    async def append(self, account_id: str, entry: NotificationEntry) -> NotificationEntry:
        """Prepend ``entry``; the oldest entry falls off once the log is full."""

        def _append(entries: deque[NotificationEntry]) -> tuple[NotificationEntry, bool]:
            entries.appendleft(entry)
            return entry, True

        await self._mutate(account_id, _append)
        logger.debug("notification_appended", account_id=account_id, notification_id=entry.id, type=entry.type.value)
        return entry

    async def mark_read(self, account_id: str, entry_id: str) -> bool:
        """Flip ``is_read`` on one entry. Returns False if the entry does not exist."""

        def _mark(entries: deque[NotificationEntry]) -> tuple[bool, bool]:
            for entry in entries:
                if entry.id == entry_id:
                    if entry.is_read:
                        return True, False
                    entry.is_read = True
                    return True, True
            return False, False

        return await self._mutate(account_id, _mark)

    async def mark_all_read(self, account_id: str) -> int:
        """Mark every unread entry as read. Returns how many changed."""

        def _mark_all(entries: deque[NotificationEntry]) -> tuple[int, bool]:
            count = 0
            for entry in entries:
                if not entry.is_read:
                    entry.is_read = True
                    count += 1
            return count, count > 0

        return await self._mutate(account_id, _mark_all)

    async def delete(self, account_id: str, entry_id: str) -> bool:
        def _delete(entries: deque[NotificationEntry]) -> tuple[bool, bool]:
            for entry in entries:
                if entry.id == entry_id:
                    entries.remove(entry)
                    return True, True
            return False, False

        return await self._mutate(account_id, _delete)

    async def clear(self, account_id: str) -> int:
        """Remove every entry. Returns how many were removed."""

        def _clear(entries: deque[NotificationEntry]) -> tuple[int, bool]:
            count = len(entries)
            entries.clear()
            return count, count > 0

        return await self._mutate(account_id, _clear)

    # --- Reads ---

    async def list_notifications(self, account_id: str, limit: int = 20) -> list[NotificationEntry]:
        """Newest first, at most ``limit`` entries."""
        entries = await self._load(account_id)
        return entries[: max(limit, 0)]

    async def list_unread(self, account_id: str, limit: int = 10) -> list[NotificationEntry]:
        entries = await self._load(account_id)
        return [e for e in entries if not e.is_read][: max(limit, 0)]

    async def unread_count(self, account_id: str) -> int:
        entries = await self._load(account_id)
        return sum(1 for e in entries if not e.is_read)
