"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ["SAMPLER_STORE_BACKEND"] = "memory"
os.environ["SAMPLER_PUSH_PROVIDER"] = "none"
os.environ["SAMPLER_LOG_FORMAT"] = "console"

from sampler.config import get_settings  # noqa: E402
from sampler.dependencies import LedgerRuntime, close_ledger, init_ledger  # noqa: E402
from sampler.ledger.store import MemoryLedgerStore  # noqa: E402
from sampler.ledger.types import Tier, UserAccount  # noqa: E402
from sampler.notifications.push import BasePushChannel  # noqa: E402

get_settings.cache_clear()


class RecordingPushChannel(BasePushChannel):
    """Push channel double that remembers every send."""

    name = "recording"

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.result = True
        self.error: Exception | None = None
        self.closed = False

    async def send(self, account_id, title, message, type_, data):
        if self.error is not None:
            raise self.error
        self.sent.append({"account_id": account_id, "title": title, "message": message, "type": type_, "data": data})
        return self.result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def tiers() -> list[Tier]:
    return [
        Tier(id="tier-bronze", order=1, name="Bronze", required_points=0, benefits=("Welcome sample",)),
        Tier(id="tier-silver", order=2, name="Silver", required_points=500),
        Tier(id="tier-gold", order=3, name="Gold", required_points=1000, description="Priority sampling"),
        Tier(id="tier-platinum", order=4, name="Platinum", required_points=2500),
    ]


@pytest.fixture
def store(tiers: list[Tier]) -> MemoryLedgerStore:
    """Memory store seeded with one fresh profile and the standard tier set."""
    memory = MemoryLedgerStore(tiers=tiers)
    memory.add_profile(UserAccount(profile_id="profile-1", auth_id="auth-1"))
    return memory


@pytest.fixture
def push_channel() -> RecordingPushChannel:
    return RecordingPushChannel()


@pytest_asyncio.fixture
async def runtime(store: MemoryLedgerStore, push_channel: RecordingPushChannel) -> AsyncGenerator[LedgerRuntime, None]:
    """Process-wide ledger runtime over the memory store."""
    rt = init_ledger(get_settings(), store=store, push_channel=push_channel)
    yield rt
    await close_ledger()


@pytest_asyncio.fixture
async def client(runtime: LedgerRuntime) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client. The runtime fixture stands in for the app lifespan."""
    from sampler.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
