"""Pydantic request/response models for ledger endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from sampler.ledger.types import CheckInRecord, ReviewRecord, Tier, UserStatistics

# --- Requests ---
# Value rules (non-empty ids within column widths, non-negative points, rating 1-5) are enforced by
# AccrualService so every caller gets the same 400 response.


class CheckInRequest(BaseModel):
    user_id: str
    event_id: str
    check_in_code: str
    points_earned: int


class ReviewRequest(BaseModel):
    user_id: str
    event_id: str
    rating: int
    review: str | None = None
    has_purchased: bool | None = None
    liked: str | None = None
    points_earned: int = 0


# --- Records ---


class CheckInResponse(BaseModel):
    id: str
    user_id: str
    event_id: str
    check_in_code: str
    points_earned: int
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: CheckInRecord) -> CheckInResponse:
        return cls(
            id=record.id,
            user_id=record.user_id,
            event_id=record.event_id,
            check_in_code=record.check_in_code,
            points_earned=record.points_earned,
            created_at=record.created_at,
        )


class ReviewResponse(BaseModel):
    id: str
    user_id: str
    event_id: str
    rating: int
    review: str | None = None
    has_purchased: bool | None = None
    liked: str | None = None
    points_earned: int
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: ReviewRecord) -> ReviewResponse:
        return cls(
            id=record.id,
            user_id=record.user_id,
            event_id=record.event_id,
            rating=record.rating,
            review=record.text,
            has_purchased=record.has_purchased,
            liked=record.liked,
            points_earned=record.points_earned,
            created_at=record.created_at,
        )


class CheckInListResponse(BaseModel):
    check_ins: list[CheckInResponse]
    total: int


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    total: int


# --- Statistics / tiers ---


class StatisticsResponse(BaseModel):
    total_points: int
    event_check_ins: int
    sampling_reviews: int
    badge_achievements: int

    @classmethod
    def from_statistics(cls, stats: UserStatistics) -> StatisticsResponse:
        return cls(
            total_points=stats.total_points,
            event_check_ins=stats.event_check_ins,
            sampling_reviews=stats.sampling_reviews,
            badge_achievements=stats.badge_achievements,
        )


class TierResponse(BaseModel):
    id: str
    order: int
    name: str
    required_points: int
    description: str | None = None
    image_url: str | None = None
    benefits: list[str] = []

    @classmethod
    def from_tier(cls, tier: Tier) -> TierResponse:
        return cls(
            id=tier.id,
            order=tier.order,
            name=tier.name,
            required_points=tier.required_points,
            description=tier.description,
            image_url=tier.image_url,
            benefits=list(tier.benefits),
        )


class TierListResponse(BaseModel):
    tiers: list[TierResponse]


class TierProgressResponse(BaseModel):
    points: int
    tier: TierResponse | None = None
    next_tier: TierResponse | None = None
    points_into_tier: int
    points_for_tier: int
    points_to_next: int
