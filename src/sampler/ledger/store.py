"""Ledger store contract and the in-memory adapter.

The store is modelled on a remote row store: create/read/update by key or a
simple query, no multi-statement transactions. Two guarantees are required
from every adapter:

* ``create_check_in`` / ``create_review`` are conditional creates keyed by
  (user, event, kind) and raise ``DuplicateAccrualError`` on conflict.
* ``write_notifications`` is a compare-and-swap on the version token
  returned by ``read_notifications``.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone

from sampler.ledger.errors import DuplicateAccrualError, ProfileNotFoundError
from sampler.ledger.types import (
    AccrualKind,
    AccrualRecord,
    CheckInRecord,
    NotificationSnapshot,
    ReviewRecord,
    Tier,
    UserAccount,
)


class LedgerStore(ABC):
    """Persistence for accrual records, running totals, tiers and notification blobs."""

    # --- Profiles ---

    @abstractmethod
    async def get_profile(self, user_or_auth_id: str) -> UserAccount | None:
        """Resolve a profile by profile key or auth key."""
        ...

    @abstractmethod
    async def add_points(self, profile_id: str, points_delta: int, kind: AccrualKind) -> UserAccount:
        """Increment ``total_points`` and the counter for ``kind``. Returns the updated account."""
        ...

    # --- Accrual records ---

    @abstractmethod
    async def find_accrual(self, user_id: str, event_id: str, kind: AccrualKind) -> AccrualRecord | None:
        ...

    @abstractmethod
    async def create_check_in(self, record: CheckInRecord) -> CheckInRecord:
        ...

    @abstractmethod
    async def create_review(self, record: ReviewRecord) -> ReviewRecord:
        ...

    @abstractmethod
    async def list_check_ins(self, user_id: str) -> list[CheckInRecord]:
        ...

    @abstractmethod
    async def list_reviews(self, user_id: str) -> list[ReviewRecord]:
        ...

    @abstractmethod
    async def list_event_reviews(self, event_id: str) -> list[ReviewRecord]:
        ...

    # --- Tiers ---

    @abstractmethod
    async def list_tiers(self) -> list[Tier]:
        ...

    # --- Notification blobs ---

    @abstractmethod
    async def read_notifications(self, account_id: str) -> NotificationSnapshot:
        """Raise ``ProfileNotFoundError`` if the account does not resolve."""
        ...

    @abstractmethod
    async def write_notifications(self, profile_id: str, blobs: list[str], expected_version: int) -> bool:
        """Replace the blob list iff the version is unchanged. Returns False on conflict."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Release adapter resources."""


class MemoryLedgerStore(LedgerStore):
    """Process-local store used for tests and local development.

    Each method finishes without awaiting in between its read and its write,
    so on a single event loop every operation is atomic.
    """

    def __init__(self, tiers: list[Tier] | None = None) -> None:
        self._profiles: dict[str, UserAccount] = {}
        self._check_ins: dict[tuple[str, str], CheckInRecord] = {}
        self._reviews: dict[tuple[str, str], ReviewRecord] = {}
        self._tiers: list[Tier] = list(tiers or [])

    # --- Seeding (profile signup and tier management live outside the core) ---

    def add_profile(self, account: UserAccount) -> UserAccount:
        self._profiles[account.profile_id] = account
        return account

    def set_tiers(self, tiers: list[Tier]) -> None:
        self._tiers = list(tiers)

    # --- Profiles ---

    @staticmethod
    def _copy(account: UserAccount) -> UserAccount:
        return replace(
            account,
            notification_preferences=dict(account.notification_preferences),
            notifications=list(account.notifications),
        )

    def _resolve(self, user_or_auth_id: str) -> UserAccount | None:
        account = self._profiles.get(user_or_auth_id)
        if account is not None:
            return account
        for candidate in self._profiles.values():
            if candidate.auth_id == user_or_auth_id:
                return candidate
        return None

    async def get_profile(self, user_or_auth_id: str) -> UserAccount | None:
        account = self._resolve(user_or_auth_id)
        return self._copy(account) if account else None

    async def add_points(self, profile_id: str, points_delta: int, kind: AccrualKind) -> UserAccount:
        account = self._profiles.get(profile_id)
        if account is None:
            raise ProfileNotFoundError(f"User profile not found: {profile_id}")
        account.total_points += points_delta
        if kind is AccrualKind.CHECK_IN:
            account.total_events += 1
        else:
            account.total_reviews += 1
        return self._copy(account)

    # --- Accrual records ---

    async def find_accrual(self, user_id: str, event_id: str, kind: AccrualKind) -> AccrualRecord | None:
        table = self._check_ins if kind is AccrualKind.CHECK_IN else self._reviews
        return table.get((user_id, event_id))

    def _insert(self, table: dict, record: AccrualRecord) -> AccrualRecord:
        key = (record.user_id, record.event_id)
        if key in table:
            raise DuplicateAccrualError()
        stored = replace(record, id=uuid.uuid4().hex, created_at=datetime.now(timezone.utc))
        table[key] = stored
        return stored

    async def create_check_in(self, record: CheckInRecord) -> CheckInRecord:
        return self._insert(self._check_ins, record)

    async def create_review(self, record: ReviewRecord) -> ReviewRecord:
        return self._insert(self._reviews, record)

    async def list_check_ins(self, user_id: str) -> list[CheckInRecord]:
        return [r for (uid, _), r in reversed(self._check_ins.items()) if uid == user_id]

    async def list_reviews(self, user_id: str) -> list[ReviewRecord]:
        return [r for (uid, _), r in reversed(self._reviews.items()) if uid == user_id]

    async def list_event_reviews(self, event_id: str) -> list[ReviewRecord]:
        return [r for (_, eid), r in reversed(self._reviews.items()) if eid == event_id]

    # --- Tiers ---

    async def list_tiers(self) -> list[Tier]:
        return list(self._tiers)

    # --- Notification blobs ---

    async def read_notifications(self, account_id: str) -> NotificationSnapshot:
        account = self._resolve(account_id)
        if account is None:
            raise ProfileNotFoundError(f"User profile not found: {account_id}")
        return NotificationSnapshot(
            profile_id=account.profile_id,
            blobs=list(account.notifications),
            version=account.notifications_version,
        )

    async def write_notifications(self, profile_id: str, blobs: list[str], expected_version: int) -> bool:
        account = self._profiles.get(profile_id)
        if account is None:
            raise ProfileNotFoundError(f"User profile not found: {profile_id}")
        if account.notifications_version != expected_version:
            return False
        account.notifications = list(blobs)
        account.notifications_version += 1
        return True
