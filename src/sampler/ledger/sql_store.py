"""PostgreSQL ledger store on async SQLAlchemy.

Every method opens its own session and commits on its own; nothing here
relies on a transaction spanning two calls. Uniqueness of accrual records is
pushed down to the ``(user_id, event_id)`` unique constraints, and totals are
incremented in a single ``UPDATE ... SET x = x + :delta`` so concurrent
accruals never overwrite each other's totals.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sampler.db.models import CheckIn, Review, TierDefinition, UserProfile
from sampler.ledger.errors import DuplicateAccrualError, PersistenceError, ProfileNotFoundError
from sampler.ledger.store import LedgerStore
from sampler.ledger.types import (
    AccrualKind,
    AccrualRecord,
    CheckInRecord,
    NotificationSnapshot,
    ReviewRecord,
    Tier,
    UserAccount,
)

logger = structlog.get_logger()

_UNIQUE_CONSTRAINTS = ("check_ins_user_id_event_id_key", "reviews_user_id_event_id_key")


def _to_account(row: UserProfile) -> UserAccount:
    return UserAccount(
        profile_id=row.id,
        auth_id=row.auth_id,
        total_points=row.total_points or 0,
        total_events=row.total_events or 0,
        total_reviews=row.total_reviews or 0,
        notification_preferences=dict(row.notification_preferences or {}),
        notifications=list(row.notifications or []),
        notifications_version=row.notifications_version or 0,
    )


def _to_check_in(row: CheckIn) -> CheckInRecord:
    return CheckInRecord(
        id=row.id,
        user_id=row.user_id,
        event_id=row.event_id,
        check_in_code=row.check_in_code,
        points_earned=row.points_earned,
        created_at=row.created_at,
    )


def _to_review(row: Review) -> ReviewRecord:
    return ReviewRecord(
        id=row.id,
        user_id=row.user_id,
        event_id=row.event_id,
        rating=row.rating,
        text=row.review,
        liked=row.liked,
        has_purchased=row.has_purchased,
        points_earned=row.points_earned,
        created_at=row.created_at,
    )


def _to_tier(row: TierDefinition) -> Tier:
    return Tier(
        id=row.id,
        order=row.order,
        name=row.name,
        required_points=row.required_points,
        description=row.description,
        image_url=row.image_url,
        benefits=tuple(row.benefits or ()),
    )


def _is_unique_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig)
    return any(name in text for name in _UNIQUE_CONSTRAINTS)


class SqlLedgerStore(LedgerStore):
    """Ledger store backed by the ``user_profiles``, ``check_ins``, ``reviews`` and ``tiers`` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.warning("ledger_store_error", operation=operation, error=str(exc))
            raise PersistenceError(f"Store operation failed: {operation}") from exc

    # --- Profiles ---

    async def get_profile(self, user_or_auth_id: str) -> UserAccount | None:
        async with self._session("get_profile") as db:
            result = await db.execute(
                select(UserProfile)
                .where(or_(UserProfile.id == user_or_auth_id, UserProfile.auth_id == user_or_auth_id))
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _to_account(row) if row else None

    async def add_points(self, profile_id: str, points_delta: int, kind: AccrualKind) -> UserAccount:
        counter = UserProfile.total_events if kind is AccrualKind.CHECK_IN else UserProfile.total_reviews
        async with self._session("add_points") as db:
            result = await db.execute(
                update(UserProfile)
                .where(UserProfile.id == profile_id)
                .values(
                    {
                        UserProfile.total_points: UserProfile.total_points + points_delta,
                        counter: counter + 1,
                        UserProfile.updated_at: func.now(),
                    }
                )
                .returning(UserProfile)
            )
            row = result.scalar_one_or_none()
            if row is None:
                await db.rollback()
                raise ProfileNotFoundError(f"User profile not found: {profile_id}")
            account = _to_account(row)
            await db.commit()
            return account

    # --- Accrual records ---

    async def find_accrual(self, user_id: str, event_id: str, kind: AccrualKind) -> AccrualRecord | None:
        model = CheckIn if kind is AccrualKind.CHECK_IN else Review
        async with self._session("find_accrual") as db:
            result = await db.execute(
                select(model).where(model.user_id == user_id, model.event_id == event_id).limit(1)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return _to_check_in(row) if kind is AccrualKind.CHECK_IN else _to_review(row)

    async def _insert(self, row: CheckIn | Review, operation: str) -> None:
        async with self._session(operation) as db:
            db.add(row)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                if _is_unique_violation(exc):
                    raise DuplicateAccrualError() from exc
                raise

    async def create_check_in(self, record: CheckInRecord) -> CheckInRecord:
        row = CheckIn(
            user_id=record.user_id,
            event_id=record.event_id,
            check_in_code=record.check_in_code,
            points_earned=record.points_earned,
            created_at=datetime.now(timezone.utc),
        )
        await self._insert(row, "create_check_in")
        return _to_check_in(row)

    async def create_review(self, record: ReviewRecord) -> ReviewRecord:
        row = Review(
            user_id=record.user_id,
            event_id=record.event_id,
            rating=record.rating,
            review=record.text,
            liked=record.liked,
            has_purchased=record.has_purchased,
            points_earned=record.points_earned,
            created_at=datetime.now(timezone.utc),
        )
        await self._insert(row, "create_review")
        return _to_review(row)

    async def list_check_ins(self, user_id: str) -> list[CheckInRecord]:
        async with self._session("list_check_ins") as db:
            result = await db.execute(
                select(CheckIn).where(CheckIn.user_id == user_id).order_by(CheckIn.created_at.desc())
            )
            return [_to_check_in(row) for row in result.scalars()]

    async def list_reviews(self, user_id: str) -> list[ReviewRecord]:
        async with self._session("list_reviews") as db:
            result = await db.execute(
                select(Review).where(Review.user_id == user_id).order_by(Review.created_at.desc())
            )
            return [_to_review(row) for row in result.scalars()]

    async def list_event_reviews(self, event_id: str) -> list[ReviewRecord]:
        async with self._session("list_event_reviews") as db:
            result = await db.execute(
                select(Review).where(Review.event_id == event_id).order_by(Review.created_at.desc())
            )
            return [_to_review(row) for row in result.scalars()]

    # --- Tiers ---

    async def list_tiers(self) -> list[Tier]:
        async with self._session("list_tiers") as db:
            result = await db.execute(select(TierDefinition).order_by(TierDefinition.order))
            return [_to_tier(row) for row in result.scalars()]

    # --- Notification blobs ---

    async def read_notifications(self, account_id: str) -> NotificationSnapshot:
        async with self._session("read_notifications") as db:
            result = await db.execute(
                select(UserProfile.id, UserProfile.notifications, UserProfile.notifications_version)
                .where(or_(UserProfile.id == account_id, UserProfile.auth_id == account_id))
                .limit(1)
            )
            row = result.one_or_none()
            if row is None:
                raise ProfileNotFoundError(f"User profile not found: {account_id}")
            return NotificationSnapshot(
                profile_id=row.id,
                blobs=list(row.notifications or []),
                version=row.notifications_version or 0,
            )

    async def write_notifications(self, profile_id: str, blobs: list[str], expected_version: int) -> bool:
        async with self._session("write_notifications") as db:
            result = await db.execute(
                update(UserProfile)
                .where(
                    UserProfile.id == profile_id,
                    UserProfile.notifications_version == expected_version,
                )
                .values(
                    notifications=blobs,
                    notifications_version=expected_version + 1,
                    updated_at=func.now(),
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount == 1
