"""Check-in and review accrual with duplicate prevention and tier-change detection.

One submission moves through:

    Validating -> DuplicateCheck -> Persisting -> TotalsUpdate
        -> TierCompare -> NotificationEmit -> Done

with an early exit to Rejected from the first two states. Persisting is the
point of no return. Everything after TotalsUpdate runs as post-commit hooks
that are isolated from each other and can never change the caller's result.

Known inconsistency window: if TotalsUpdate fails after Persisting, the
record exists but the totals are stale. The failure is surfaced as a
non-retryable ``PersistenceError(partial=True)`` and logged as
``accrual_partial`` with the record id for operator repair; a retry would only
hit the duplicate check.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace

import structlog

from sampler.ledger.badges import BADGE_THRESHOLDS, count_achieved_badges, crossed_badges
from sampler.ledger.errors import (
    AlreadyAccruedError,
    DuplicateAccrualError,
    InvalidInputError,
    LedgerError,
    PersistenceError,
    ProfileNotFoundError,
)
from sampler.ledger.locks import KeyedLock
from sampler.ledger.store import LedgerStore
from sampler.ledger.tiers import TierTable, current_tier, tier_progress
from sampler.ledger.types import (
    AccrualKind,
    AccrualRecord,
    CheckInRecord,
    ReviewRecord,
    Tier,
    UserAccount,
    UserStatistics,
)
from sampler.notifications.entries import NotificationType
from sampler.notifications.service import NotificationService

logger = structlog.get_logger()

ALREADY_ACCRUED_MESSAGES = {
    AccrualKind.CHECK_IN: "You have already checked in to this event",
    AccrualKind.REVIEW: "You have already reviewed this event",
}


@dataclass(frozen=True)
class AccrualOutcome:
    """Everything a post-commit hook may need about a committed accrual."""

    record: AccrualRecord
    account: UserAccount
    old_total_points: int
    old_count: int
    old_tier: Tier | None

    @property
    def kind(self) -> AccrualKind:
        return self.record.kind

    @property
    def new_total_points(self) -> int:
        return self.account.total_points

    @property
    def new_count(self) -> int:
        return self.account.counter(self.kind)


PostCommitHook = Callable[[AccrualOutcome], Awaitable[None]]


# Column widths of the ledger tables.
MAX_USER_ID_LENGTH = 64
MAX_EVENT_ID_LENGTH = 64
MAX_CHECK_IN_CODE_LENGTH = 64
MAX_LIKED_LENGTH = 32


def _require_text(value: object, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidInputError(f"{field} must be at most {max_length} characters")
    return value


def _optional_text(value: str | None, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    if len(value) > max_length:
        raise InvalidInputError(f"{field} must be at most {max_length} characters")
    return value


def _require_points(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError("pointsEarned must be an integer")
    if value < 0:
        raise InvalidInputError("pointsEarned must not be negative")
    return value


class AccrualService:
    """Records check-ins and reviews and credits their points exactly once."""

    def __init__(
        self,
        store: LedgerStore,
        tiers: TierTable,
        notifications: NotificationService,
        badge_thresholds: Sequence[int] = BADGE_THRESHOLDS,
        hooks: Sequence[PostCommitHook] | None = None,
    ) -> None:
        self._store = store
        self._tiers = tiers
        self._notifications = notifications
        self._badge_thresholds = tuple(badge_thresholds)
        self._locks = KeyedLock()
        self.hooks: list[PostCommitHook] = (
            list(hooks)
            if hooks is not None
            else [self.emit_confirmation, self.emit_tier_change, self.emit_badge_earned]
        )

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def submit_check_in(
        self,
        user_id: str,
        event_id: str,
        check_in_code: str,
        points_earned: int,
    ) -> CheckInRecord:
        record = CheckInRecord(
            user_id=_require_text(user_id, "userID", MAX_USER_ID_LENGTH),
            event_id=_require_text(event_id, "eventID", MAX_EVENT_ID_LENGTH),
            check_in_code=_require_text(check_in_code, "checkInCode", MAX_CHECK_IN_CODE_LENGTH),
            points_earned=_require_points(points_earned),
        )
        return await self._accrue(record)  # type: ignore[return-value]

    async def submit_review(
        self,
        user_id: str,
        event_id: str,
        rating: int,
        text: str | None = None,
        has_purchased: bool | None = None,
        points_earned: int = 0,
        liked: str | None = None,
    ) -> ReviewRecord:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidInputError("rating must be an integer between 1 and 5")
        record = ReviewRecord(
            user_id=_require_text(user_id, "userID", MAX_USER_ID_LENGTH),
            event_id=_require_text(event_id, "eventID", MAX_EVENT_ID_LENGTH),
            rating=rating,
            text=text.strip() if text and text.strip() else None,
            has_purchased=has_purchased,
            liked=_optional_text(liked, "liked", MAX_LIKED_LENGTH),
            points_earned=_require_points(points_earned),
        )
        return await self._accrue(record)  # type: ignore[return-value]

    async def _accrue(self, record: AccrualRecord) -> AccrualRecord:
        kind = record.kind
        # Records are keyed by profile id whether the caller sent it or the auth id.
        account = await self._require_profile(record.user_id)
        record = replace(record, user_id=account.profile_id)
        log = logger.bind(kind=kind.value, user_id=record.user_id, event_id=record.event_id)

        async with self._locks.hold((record.user_id, record.event_id, kind)):
            if await self._store.find_accrual(record.user_id, record.event_id, kind) is not None:
                log.info("accrual_rejected_duplicate")
                raise AlreadyAccruedError(ALREADY_ACCRUED_MESSAGES[kind])

            # Totals may have moved while waiting on the lock.
            account = await self._require_profile(record.user_id)

            old_tier = await self._best_effort_tier(account.total_points)

            try:
                stored = await self._persist(record)
            except DuplicateAccrualError as exc:
                log.info("accrual_rejected_conflict")
                raise AlreadyAccruedError(ALREADY_ACCRUED_MESSAGES[kind]) from exc
            log = log.bind(record_id=stored.id)
            log.info("accrual_persisted", points_earned=stored.points_earned)

            try:
                updated = await self._store.add_points(account.profile_id, stored.points_earned, kind)
            except Exception as exc:
                log.error(
                    "accrual_partial",
                    profile_id=account.profile_id,
                    points_earned=stored.points_earned,
                    exc_info=True,
                )
                raise PersistenceError(
                    f"{kind.value} {stored.id} was recorded but totals were not updated",
                    partial=True,
                ) from exc

        log.info("accrual_totals_updated", total_points=updated.total_points)

        outcome = AccrualOutcome(
            record=stored,
            account=updated,
            old_total_points=account.total_points,
            old_count=account.counter(kind),
            old_tier=old_tier,
        )
        await self._run_hooks(outcome)
        return stored

    async def _persist(self, record: AccrualRecord) -> AccrualRecord:
        try:
            if isinstance(record, CheckInRecord):
                return await self._store.create_check_in(record)
            return await self._store.create_review(record)
        except LedgerError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Failed to record {record.kind.value}") from exc

    async def _best_effort_tier(self, points: int) -> Tier | None:
        """Tier bookkeeping must never block point accrual."""
        try:
            return current_tier(await self._tiers.list_tiers(), points)
        except Exception:
            logger.warning("tier_lookup_failed", points=points, exc_info=True)
            return None

    async def _run_hooks(self, outcome: AccrualOutcome) -> None:
        for hook in self.hooks:
            try:
                await hook(outcome)
            except Exception:
                logger.warning(
                    "post_commit_hook_failed",
                    hook=getattr(hook, "__name__", repr(hook)),
                    record_id=outcome.record.id,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Post-commit hooks
    # ------------------------------------------------------------------

    async def emit_confirmation(self, outcome: AccrualOutcome) -> None:
        record = outcome.record
        if isinstance(record, CheckInRecord):
            await self._notifications.notify(
                outcome.account.auth_id,
                NotificationType.CHECK_IN,
                title="Check-In Confirmed! \U0001f389",
                message=f"You earned {record.points_earned} points for checking in. Keep sampling to climb the tiers!",
                data={"eventId": record.event_id, "pointsEarned": record.points_earned, "checkInId": record.id},
            )
        else:
            await self._notifications.notify(
                outcome.account.auth_id,
                NotificationType.REVIEW,
                title="Thank You for Your Review! ⭐",
                message=(
                    f"You earned {record.points_earned} points! "
                    "Your feedback helps others discover great products."
                ),
                data={"eventId": record.event_id, "pointsEarned": record.points_earned, "rating": record.rating},
            )

    async def emit_tier_change(self, outcome: AccrualOutcome) -> None:
        old_tier = outcome.old_tier
        if old_tier is None:
            return
        new_tier = current_tier(await self._tiers.list_tiers(), outcome.new_total_points)
        if new_tier is None or new_tier.order == old_tier.order:
            return

        logger.info(
            "tier_changed",
            profile_id=outcome.account.profile_id,
            old_tier=old_tier.name,
            new_tier=new_tier.name,
        )
        await self._notifications.notify(
            outcome.account.auth_id,
            NotificationType.TIER_CHANGED,
            title=f"Congratulations! You're now {new_tier.name}! \U0001f38a",
            message="You've unlocked new rewards and benefits. Keep sampling to reach the next tier!",
            data={
                "oldTierId": old_tier.id,
                "newTierId": new_tier.id,
                "oldTierName": old_tier.name,
                "newTierName": new_tier.name,
            },
        )

    async def emit_badge_earned(self, outcome: AccrualOutcome) -> None:
        reached = crossed_badges(outcome.old_count, outcome.new_count, self._badge_thresholds)
        if not reached:
            return
        threshold = reached[-1]
        if outcome.kind is AccrualKind.CHECK_IN:
            badge_type, activity = "checkIns", "event check-ins"
        else:
            badge_type, activity = "reviews", "sampling reviews"
        await self._notifications.notify(
            outcome.account.auth_id,
            NotificationType.BADGE_EARNED,
            title="New Badge Unlocked! \U0001f3c5",
            message=f"You've reached {threshold} {activity}. Amazing work!",
            data={"badgeType": badge_type, "threshold": threshold},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _require_profile(self, user_or_auth_id: str) -> UserAccount:
        account = await self._store.get_profile(user_or_auth_id)
        if account is None:
            raise ProfileNotFoundError(f"User profile not found: {user_or_auth_id}")
        return account

    async def get_statistics(self, auth_id: str) -> UserStatistics:
        account = await self._require_profile(auth_id)
        badges = count_achieved_badges(account.total_events, self._badge_thresholds) + count_achieved_badges(
            account.total_reviews, self._badge_thresholds
        )
        return UserStatistics(
            total_points=account.total_points,
            event_check_ins=account.total_events,
            sampling_reviews=account.total_reviews,
            badge_achievements=badges,
        )

    async def get_tier_progress(self, auth_id: str) -> dict:
        account = await self._require_profile(auth_id)
        return tier_progress(await self._tiers.list_tiers(), account.total_points)

    async def _canonical_user_id(self, user_or_auth_id: str) -> str:
        account = await self._store.get_profile(user_or_auth_id)
        return account.profile_id if account is not None else user_or_auth_id

    async def list_check_ins(self, user_id: str) -> list[CheckInRecord]:
        return await self._store.list_check_ins(await self._canonical_user_id(user_id))

    async def list_reviews(self, user_id: str) -> list[ReviewRecord]:
        return await self._store.list_reviews(await self._canonical_user_id(user_id))

    async def list_event_reviews(self, event_id: str) -> list[ReviewRecord]:
        return await self._store.list_event_reviews(event_id)
