"""Ledger runtime wiring and shared FastAPI dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from sampler import database, redis_client
from sampler.config import Settings
from sampler.ledger.accrual_service import AccrualService
from sampler.ledger.sql_store import SqlLedgerStore
from sampler.ledger.store import LedgerStore, MemoryLedgerStore
from sampler.ledger.tiers import TierTable
from sampler.notifications.dispatcher import NotificationDispatcher
from sampler.notifications.log import NotificationLog
from sampler.notifications.push import BasePushChannel, create_push_channel
from sampler.notifications.service import NotificationService

logger = structlog.get_logger()


@dataclass
class LedgerRuntime:
    store: LedgerStore
    tiers: TierTable
    notifications: NotificationService
    accruals: AccrualService

    @property
    def notification_log(self) -> NotificationLog:
        return self.notifications.log


_runtime: LedgerRuntime | None = None


def _create_store(settings: Settings) -> LedgerStore:
    backend = settings.store_backend
    if backend == "memory":
        return MemoryLedgerStore()
    if backend == "sql":
        return SqlLedgerStore(database.get_session_factory())
    msg = f"Unsupported store backend: {backend}"
    raise ValueError(msg)


def _create_channel(settings: Settings) -> BasePushChannel:
    redis = redis_client.get_redis() if redis_client.is_initialized() else None
    return create_push_channel(settings, redis=redis)


def build_runtime(
    settings: Settings,
    store: LedgerStore | None = None,
    push_channel: BasePushChannel | None = None,
) -> LedgerRuntime:
    """Assemble the services without touching module state."""
    store = store or _create_store(settings)
    channel = push_channel or _create_channel(settings)

    notifications = NotificationService(
        NotificationLog(
            store,
            capacity=settings.notification_capacity,
            cas_retries=settings.notification_cas_retries,
        ),
        NotificationDispatcher(store, channel, timeout_seconds=settings.push_timeout_seconds),
    )
    tiers = TierTable(store)
    accruals = AccrualService(
        store,
        tiers,
        notifications,
        badge_thresholds=settings.badge_thresholds,
    )
    return LedgerRuntime(store=store, tiers=tiers, notifications=notifications, accruals=accruals)


def init_ledger(
    settings: Settings,
    store: LedgerStore | None = None,
    push_channel: BasePushChannel | None = None,
) -> LedgerRuntime:
    """Initialize the process-wide ledger runtime."""
    global _runtime  # noqa: PLW0603
    _runtime = build_runtime(settings, store=store, push_channel=push_channel)
    logger.info(
        "ledger_initialized",
        store=type(_runtime.store).__name__,
        push_provider=_runtime.notifications.dispatcher.channel.name,
    )
    return _runtime


async def close_ledger() -> None:
    """Wait for in-flight pushes, then release the channel and store."""
    global _runtime  # noqa: PLW0603
    if _runtime is None:
        return
    runtime, _runtime = _runtime, None
    await runtime.notifications.drain()
    await runtime.notifications.dispatcher.channel.close()
    await runtime.store.close()


def get_runtime() -> LedgerRuntime:
    if _runtime is None:
        msg = "Ledger not initialized. Call init_ledger() first."
        raise RuntimeError(msg)
    return _runtime


def get_accrual_service() -> AccrualService:
    """FastAPI dependency for the accrual service."""
    return get_runtime().accruals


def get_notification_log() -> NotificationLog:
    """FastAPI dependency for the notification log."""
    return get_runtime().notification_log


def get_tier_table() -> TierTable:
    return get_runtime().tiers
