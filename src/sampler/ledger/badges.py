"""Activity badges earned at fixed check-in and review counts.

The same thresholds apply to both counters, so a user holding 25 check-ins
and 10 reviews has earned three badges.
"""

from __future__ import annotations

from collections.abc import Sequence

BADGE_THRESHOLDS: tuple[int, ...] = (10, 25, 50, 100, 250)


def count_achieved_badges(count: int, thresholds: Sequence[int] = BADGE_THRESHOLDS) -> int:
    return sum(1 for threshold in thresholds if count >= threshold)


def crossed_badges(
    old_count: int,
    new_count: int,
    thresholds: Sequence[int] = BADGE_THRESHOLDS,
) -> list[int]:
    """Thresholds newly reached when a counter moves from ``old_count`` to ``new_count``."""
    return sorted(t for t in thresholds if old_count < t <= new_count)
