"""Ledger API endpoints: accrual submission, history, statistics and tiers."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sampler.dependencies import get_accrual_service, get_tier_table
from sampler.ledger.accrual_service import AccrualService
from sampler.ledger.schemas import (
    CheckInListResponse,
    CheckInRequest,
    CheckInResponse,
    ReviewListResponse,
    ReviewRequest,
    ReviewResponse,
    StatisticsResponse,
    TierListResponse,
    TierProgressResponse,
    TierResponse,
)
from sampler.ledger.tiers import TierTable

router = APIRouter(prefix="/api/v1", tags=["Ledger"])


# ── Accrual ──


@router.post("/check-ins", response_model=CheckInResponse, status_code=201)
async def submit_check_in(
    body: CheckInRequest,
    service: AccrualService = Depends(get_accrual_service),
):
    """Record an event check-in and credit its points."""
    record = await service.submit_check_in(
        user_id=body.user_id,
        event_id=body.event_id,
        check_in_code=body.check_in_code,
        points_earned=body.points_earned,
    )
    return CheckInResponse.from_record(record)


@router.post("/reviews", response_model=ReviewResponse, status_code=201)
async def submit_review(
    body: ReviewRequest,
    service: AccrualService = Depends(get_accrual_service),
):
    """Record a sampling review and credit its points."""
    record = await service.submit_review(
        user_id=body.user_id,
        event_id=body.event_id,
        rating=body.rating,
        text=body.review,
        has_purchased=body.has_purchased,
        points_earned=body.points_earned,
        liked=body.liked,
    )
    return ReviewResponse.from_record(record)


# ── History ──


@router.get("/users/{user_id}/check-ins", response_model=CheckInListResponse)
async def list_user_check_ins(user_id: str, service: AccrualService = Depends(get_accrual_service)):
    records = await service.list_check_ins(user_id)
    return CheckInListResponse(check_ins=[CheckInResponse.from_record(r) for r in records], total=len(records))


@router.get("/users/{user_id}/reviews", response_model=ReviewListResponse)
async def list_user_reviews(user_id: str, service: AccrualService = Depends(get_accrual_service)):
    records = await service.list_reviews(user_id)
    return ReviewListResponse(reviews=[ReviewResponse.from_record(r) for r in records], total=len(records))


@router.get("/events/{event_id}/reviews", response_model=ReviewListResponse)
async def list_event_reviews(event_id: str, service: AccrualService = Depends(get_accrual_service)):
    records = await service.list_event_reviews(event_id)
    return ReviewListResponse(reviews=[ReviewResponse.from_record(r) for r in records], total=len(records))


# ── Statistics and tiers ──


@router.get("/users/{auth_id}/statistics", response_model=StatisticsResponse)
async def get_statistics(auth_id: str, service: AccrualService = Depends(get_accrual_service)):
    """Profile totals plus the number of badge thresholds reached."""
    stats = await service.get_statistics(auth_id)
    return StatisticsResponse.from_statistics(stats)


@router.get("/users/{auth_id}/tier-progress", response_model=TierProgressResponse)
async def get_tier_progress(auth_id: str, service: AccrualService = Depends(get_accrual_service)):
    progress = await service.get_tier_progress(auth_id)
    return TierProgressResponse(
        points=progress["points"],
        tier=TierResponse.from_tier(progress["tier"]) if progress["tier"] else None,
        next_tier=TierResponse.from_tier(progress["next_tier"]) if progress["next_tier"] else None,
        points_into_tier=progress["points_into_tier"],
        points_for_tier=progress["points_for_tier"],
        points_to_next=progress["points_to_next"],
    )


@router.get("/tiers", response_model=TierListResponse)
async def list_tiers(tiers: TierTable = Depends(get_tier_table)):
    """All tiers ascending by order."""
    return TierListResponse(tiers=[TierResponse.from_tier(t) for t in await tiers.list_tiers()])
