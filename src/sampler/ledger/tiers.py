"""Tier table lookup and point-threshold computation.

Tiers are read fresh from the store on every call because thresholds can
change between requests. Everything below ``TierTable`` is pure.

Tie-break: two tiers sharing the same ``required_points`` is a data-quality
anomaly. ``current_tier`` resolves it by preferring the tier with the larger
``order`` so the result never depends on the input ordering.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sampler.ledger.types import Tier

if TYPE_CHECKING:
    from sampler.ledger.store import LedgerStore


def _rank(tier: Tier) -> tuple[int, int]:
    return (tier.required_points, tier.order)


def current_tier(tiers: Sequence[Tier], points: int) -> Tier | None:
    """Highest tier whose threshold ``points`` has reached.

    Falls back to the base tier (lowest threshold) when no threshold is met.
    Returns None only for an empty tier set.
    """
    if not tiers:
        return None

    for tier in sorted(tiers, key=_rank, reverse=True):
        if tier.required_points <= points:
            return tier

    lowest = min(t.required_points for t in tiers)
    return max((t for t in tiers if t.required_points == lowest), key=lambda t: t.order)


def next_tier(tiers: Sequence[Tier], points: int) -> Tier | None:
    """First tier whose threshold is still above ``points``, or None at the top."""
    for tier in sorted(tiers, key=_rank):
        if tier.required_points > points:
            return tier
    return None


def tier_progress(tiers: Sequence[Tier], points: int) -> dict:
    """Compute progress info for a point total.

    ``points_for_tier`` is the width of the current band; at the top tier it
    is 1 so clients can render a full progress bar without dividing by zero.
    """
    current = current_tier(tiers, points)
    upcoming = next_tier(tiers, points)

    floor = current.required_points if current else 0
    points_into_tier = max(points - floor, 0)

    if upcoming is None:
        points_for_tier = 1
        points_to_next = 0
    else:
        points_for_tier = max(upcoming.required_points - floor, 1)
        points_to_next = upcoming.required_points - points

    return {
        "tier": current,
        "next_tier": upcoming,
        "points": points,
        "points_into_tier": points_into_tier,
        "points_for_tier": points_for_tier,
        "points_to_next": points_to_next,
    }


class TierTable:
    """Read-only view over the store's tier catalog."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    async def list_tiers(self) -> list[Tier]:
        """All tiers ascending by ``order``."""
        tiers = await self._store.list_tiers()
        return sorted(tiers, key=lambda t: t.order)
