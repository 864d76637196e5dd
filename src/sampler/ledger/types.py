"""Domain records shared by the ledger stores and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar

PUSH_PREFERENCE_KEY = "enablePushNotifications"


class AccrualKind(str, Enum):
    """The two independent ledgers. A user may hold one record of each per event."""

    CHECK_IN = "check-in"
    REVIEW = "review"


@dataclass
class UserAccount:
    """Running totals and notification state for one user profile."""

    profile_id: str
    auth_id: str
    total_points: int = 0
    total_events: int = 0
    total_reviews: int = 0
    notification_preferences: dict[str, bool] = field(default_factory=dict)
    notifications: list[str] = field(default_factory=list)
    notifications_version: int = 0

    @property
    def push_enabled(self) -> bool:
        # Push is on unless the user explicitly switched it off.
        return self.notification_preferences.get(PUSH_PREFERENCE_KEY, True) is not False

    def counter(self, kind: AccrualKind) -> int:
        return self.total_events if kind is AccrualKind.CHECK_IN else self.total_reviews


@dataclass(frozen=True)
class CheckInRecord:
    kind: ClassVar[AccrualKind] = AccrualKind.CHECK_IN

    user_id: str
    event_id: str
    check_in_code: str
    points_earned: int
    id: str = ""
    created_at: datetime | None = None


@dataclass(frozen=True)
class ReviewRecord:
    kind: ClassVar[AccrualKind] = AccrualKind.REVIEW

    user_id: str
    event_id: str
    rating: int
    points_earned: int = 0
    text: str | None = None
    has_purchased: bool | None = None
    liked: str | None = None
    id: str = ""
    created_at: datetime | None = None


AccrualRecord = CheckInRecord | ReviewRecord


@dataclass(frozen=True)
class Tier:
    """A named reward rank reached at ``required_points``."""

    id: str
    order: int
    name: str
    required_points: int
    description: str | None = None
    image_url: str | None = None
    benefits: tuple[str, ...] = ()


@dataclass(frozen=True)
class UserStatistics:
    total_points: int
    event_check_ins: int
    sampling_reviews: int
    badge_achievements: int


@dataclass(frozen=True)
class NotificationSnapshot:
    """Raw notification blobs of one account plus the version token they were read at."""

    profile_id: str
    blobs: list[str]
    version: int
