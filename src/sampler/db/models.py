"""ORM models for the ledger tables.

Tables are created by Alembic (``alembic/versions``). Notifications are kept
on the profile row as an array of independently JSON-serialized strings;
``notifications_version`` is the compare-and-swap token for that array.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sampler.db.base import Base


def _uuid() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# User profiles
# ---------------------------------------------------------------------------


class UserProfile(Base):
    """Running totals and notification blobs for one user."""

    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    auth_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    total_points: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    total_events: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    notification_preferences: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict, server_default="{}")
    notifications: Mapped[list[str]] = mapped_column(ARRAY(Text), default=list, server_default="{}")
    notifications_version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Accrual ledgers
# ---------------------------------------------------------------------------


class CheckIn(Base):
    """Immutable check-in record. One per (user, event)."""

    __tablename__ = "check_ins"
    __table_args__ = (UniqueConstraint("user_id", "event_id", name="check_ins_user_id_event_id_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id: Mapped[str] = mapped_column(String(64), nullable=False)
    check_in_code: Mapped[str] = mapped_column(String(64), nullable=False)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Review(Base):
    """Immutable review record. One per (user, event), independent of check-ins."""

    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("user_id", "event_id", name="reviews_user_id_event_id_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rating: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    review: Mapped[str | None] = mapped_column(Text, nullable=True)
    liked: Mapped[str | None] = mapped_column(String(32), nullable=True)
    has_purchased: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


class TierDefinition(Base):
    """Reward tier catalog. Read-only for the ledger."""

    __tablename__ = "tiers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    order: Mapped[int] = mapped_column("order", Integer, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    required_points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    benefits: Mapped[list[str]] = mapped_column(ARRAY(String(128)), default=list, server_default="{}")
