"""Best-effort push dispatch, gated by the account's notification preferences."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog

from sampler.ledger.store import LedgerStore
from sampler.notifications.entries import NotificationEntry
from sampler.notifications.push import BasePushChannel

logger = structlog.get_logger()


def stringify_data(data: dict[str, Any]) -> dict[str, str]:
    """Push payloads carry string values only."""
    return {str(key): value if isinstance(value, str) else json.dumps(value, default=str) for key, value in data.items()}


class NotificationDispatcher:
    """Fan a stored notification out to the push channel.

    ``dispatch`` is advisory: it never raises, and every failure (preference
    lookup, delivery error, timeout) comes back as False.
    """

    def __init__(self, store: LedgerStore, channel: BasePushChannel, timeout_seconds: float = 10.0) -> None:
        self._store = store
        self._channel = channel
        self._timeout = timeout_seconds

    @property
    def channel(self) -> BasePushChannel:
        return self._channel

    async def dispatch(self, account_id: str, entry: NotificationEntry) -> bool:
        try:
            account = await asyncio.wait_for(self._store.get_profile(account_id), timeout=self._timeout)
            if account is None:
                logger.warning("push_account_missing", account_id=account_id, notification_id=entry.id)
                return False
            if not account.push_enabled:
                logger.info("push_disabled_by_user", account_id=account_id, notification_id=entry.id)
                return False

            delivered = await asyncio.wait_for(
                self._channel.send(
                    account_id,
                    entry.title,
                    entry.message,
                    entry.type.value,
                    stringify_data(entry.data),
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("push_dispatch_timeout", account_id=account_id, notification_id=entry.id)
            return False
        except Exception:
            logger.warning("push_dispatch_failed", account_id=account_id, notification_id=entry.id, exc_info=True)
            return False

        return bool(delivered)
