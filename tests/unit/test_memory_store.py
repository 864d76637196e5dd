"""Memory store contract tests."""

import pytest

from sampler.ledger.errors import DuplicateAccrualError, ProfileNotFoundError
from sampler.ledger.types import AccrualKind, CheckInRecord, ReviewRecord


@pytest.mark.asyncio
async def test_get_profile_by_either_id(store):
    assert (await store.get_profile("profile-1")).auth_id == "auth-1"
    assert (await store.get_profile("auth-1")).profile_id == "profile-1"
    assert await store.get_profile("nobody") is None


@pytest.mark.asyncio
async def test_returned_profile_is_a_copy(store):
    account = await store.get_profile("profile-1")
    account.total_points = 999
    account.notification_preferences["x"] = False
    fresh = await store.get_profile("profile-1")
    assert fresh.total_points == 0
    assert fresh.notification_preferences == {}


@pytest.mark.asyncio
async def test_add_points_updates_matching_counter(store):
    await store.add_points("profile-1", 30, AccrualKind.CHECK_IN)
    account = await store.add_points("profile-1", 5, AccrualKind.REVIEW)
    assert (account.total_points, account.total_events, account.total_reviews) == (35, 1, 1)


@pytest.mark.asyncio
async def test_add_points_unknown_profile(store):
    with pytest.raises(ProfileNotFoundError):
        await store.add_points("ghost", 1, AccrualKind.CHECK_IN)


@pytest.mark.asyncio
async def test_conditional_create(store):
    stored = await store.create_check_in(CheckInRecord("profile-1", "e1", "C", 10))
    assert stored.id
    with pytest.raises(DuplicateAccrualError):
        await store.create_check_in(CheckInRecord("profile-1", "e1", "C", 10))
    # The review ledger is independent.
    await store.create_review(ReviewRecord("profile-1", "e1", rating=5))


@pytest.mark.asyncio
async def test_notification_cas(store):
    snapshot = await store.read_notifications("auth-1")
    assert await store.write_notifications(snapshot.profile_id, ["a"], snapshot.version) is True
    assert await store.write_notifications(snapshot.profile_id, ["b"], snapshot.version) is False
    assert (await store.read_notifications("auth-1")).blobs == ["a"]


@pytest.mark.asyncio
async def test_read_notifications_unknown(store):
    with pytest.raises(ProfileNotFoundError):
        await store.read_notifications("ghost")
