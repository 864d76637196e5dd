"""SQL ledger store against a real PostgreSQL database.

Skipped unless SAMPLER_TEST_DATABASE_URL points at a disposable database.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sampler.db.base import Base
from sampler.db.models import TierDefinition, UserProfile
from sampler.ledger.errors import DuplicateAccrualError, ProfileNotFoundError
from sampler.ledger.sql_store import SqlLedgerStore
from sampler.ledger.types import AccrualKind, CheckInRecord, ReviewRecord

DATABASE_URL = os.environ.get("SAMPLER_TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not DATABASE_URL, reason="SAMPLER_TEST_DATABASE_URL not set")


@pytest_asyncio.fixture
async def sql_store() -> AsyncGenerator[SqlLedgerStore, None]:
    engine = create_async_engine(DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text("TRUNCATE TABLE check_ins, reviews, tiers, user_profiles CASCADE"))

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        db.add(UserProfile(id="profile-1", auth_id="auth-1"))
        db.add_all([
            TierDefinition(id="t1", order=1, name="Bronze", required_points=0),
            TierDefinition(id="t2", order=2, name="Silver", required_points=500, benefits=["Early access"]),
        ])
        await db.commit()

    yield SqlLedgerStore(factory)
    await engine.dispose()


@pytest.mark.asyncio
async def test_profile_lookup(sql_store):
    by_auth = await sql_store.get_profile("auth-1")
    assert by_auth.profile_id == "profile-1"
    assert by_auth.total_points == 0
    assert await sql_store.get_profile("missing") is None


@pytest.mark.asyncio
async def test_check_in_is_unique_per_event(sql_store):
    stored = await sql_store.create_check_in(CheckInRecord("profile-1", "e1", "CODE", 25))
    assert stored.id
    assert stored.created_at is not None
    with pytest.raises(DuplicateAccrualError):
        await sql_store.create_check_in(CheckInRecord("profile-1", "e1", "CODE", 25))
    found = await sql_store.find_accrual("profile-1", "e1", AccrualKind.CHECK_IN)
    assert found.id == stored.id


@pytest.mark.asyncio
async def test_review_ledger_is_independent(sql_store):
    await sql_store.create_check_in(CheckInRecord("profile-1", "e1", "CODE", 25))
    review = await sql_store.create_review(ReviewRecord("profile-1", "e1", rating=4, text="Nice", liked="flavor"))
    assert review.liked == "flavor"
    assert [r.id for r in await sql_store.list_event_reviews("e1")] == [review.id]


@pytest.mark.asyncio
async def test_add_points_is_atomic(sql_store):
    await asyncio.gather(*(sql_store.add_points("profile-1", 10, AccrualKind.CHECK_IN) for _ in range(10)))
    account = await sql_store.get_profile("profile-1")
    assert account.total_points == 100
    assert account.total_events == 10


@pytest.mark.asyncio
async def test_add_points_unknown_profile(sql_store):
    with pytest.raises(ProfileNotFoundError):
        await sql_store.add_points("ghost", 1, AccrualKind.REVIEW)


@pytest.mark.asyncio
async def test_tiers_in_order(sql_store):
    tiers = await sql_store.list_tiers()
    assert [t.name for t in tiers] == ["Bronze", "Silver"]
    assert tiers[1].benefits == ("Early access",)


@pytest.mark.asyncio
async def test_notification_cas(sql_store):
    snapshot = await sql_store.read_notifications("auth-1")
    assert await sql_store.write_notifications(snapshot.profile_id, ['{"x": 1}'], snapshot.version) is True
    assert await sql_store.write_notifications(snapshot.profile_id, ["stale"], snapshot.version) is False
    assert (await sql_store.read_notifications("profile-1")).blobs == ['{"x": 1}']
