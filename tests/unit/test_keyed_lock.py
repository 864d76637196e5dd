"""KeyedLock tests: mutual exclusion per key, cleanup after release."""

import asyncio

import pytest

from sampler.ledger.locks import KeyedLock


@pytest.mark.asyncio
async def test_same_key_serializes():
    locks = KeyedLock()
    active = 0
    peak = 0

    async def worker():
        nonlocal active, peak
        async with locks.hold("k"):
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            active -= 1

    await asyncio.gather(*(worker() for _ in range(10)))
    assert peak == 1


@pytest.mark.asyncio
async def test_different_keys_run_concurrently():
    locks = KeyedLock()
    entered = asyncio.Event()

    async def first():
        async with locks.hold("a"):
            await asyncio.wait_for(entered.wait(), timeout=1)

    async def second():
        async with locks.hold("b"):
            entered.set()

    await asyncio.gather(first(), second())


@pytest.mark.asyncio
async def test_lock_dropped_after_release():
    locks = KeyedLock()
    async with locks.hold(("user", "event")):
        assert locks.locked(("user", "event"))
        assert len(locks) == 1
    assert len(locks) == 0
    assert not locks.locked(("user", "event"))


@pytest.mark.asyncio
async def test_lock_released_on_error():
    locks = KeyedLock()
    with pytest.raises(RuntimeError):
        async with locks.hold("k"):
            raise RuntimeError("boom")
    assert len(locks) == 0
