"""Notification API integration tests."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from sampler.notifications.entries import NotificationEntry, NotificationType

BASE = "/api/v1/accounts/auth-1/notifications"


async def _seed(runtime, count: int) -> list[NotificationEntry]:
    entries = []
    for i in range(count):
        entry = NotificationEntry.create(NotificationType.EVENT_ADDED, f"Event {i}", "New sampling event nearby")
        entries.append(await runtime.notification_log.append("auth-1", entry))
    return entries


@pytest.mark.asyncio
async def test_list_defaults_to_twenty(client: AsyncClient, runtime):
    await _seed(runtime, 25)
    data = (await client.get(BASE)).json()
    assert data["total"] == 20
    assert data["notifications"][0]["title"] == "Event 24"
    assert data["notifications"][0]["is_read"] is False


@pytest.mark.asyncio
async def test_list_limit(client: AsyncClient, runtime):
    await _seed(runtime, 5)
    data = (await client.get(BASE, params={"limit": 2})).json()
    assert data["total"] == 2


@pytest.mark.asyncio
async def test_unread_and_count(client: AsyncClient, runtime):
    entries = await _seed(runtime, 12)
    response = await client.post(f"{BASE}/{entries[0].id}/read")
    assert response.status_code == 200

    unread = (await client.get(f"{BASE}/unread")).json()
    assert unread["total"] == 10
    count = (await client.get(f"{BASE}/unread-count")).json()
    assert count == {"unread_count": 11}


@pytest.mark.asyncio
async def test_mark_unknown_notification(client: AsyncClient, runtime):
    await _seed(runtime, 1)
    response = await client.post(f"{BASE}/missing/read")
    assert response.status_code == 404
    assert response.json()["code"] == "notification_not_found"


@pytest.mark.asyncio
async def test_read_all(client: AsyncClient, runtime):
    await _seed(runtime, 3)
    data = (await client.post(f"{BASE}/read-all")).json()
    assert data["count"] == 3
    assert (await client.get(f"{BASE}/unread-count")).json()["unread_count"] == 0


@pytest.mark.asyncio
async def test_delete_and_clear(client: AsyncClient, runtime):
    entries = await _seed(runtime, 3)
    assert (await client.delete(f"{BASE}/{entries[1].id}")).status_code == 200
    assert (await client.delete(f"{BASE}/{entries[1].id}")).status_code == 404

    cleared = (await client.delete(BASE)).json()
    assert cleared["count"] == 2
    assert (await client.get(BASE)).json()["total"] == 0


@pytest.mark.asyncio
async def test_unknown_account(client: AsyncClient):
    response = await client.get("/api/v1/accounts/ghost/notifications")
    assert response.status_code == 404
    assert response.json()["code"] == "profile_not_found"
