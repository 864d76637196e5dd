"""
Push delivery channels with provider abstraction.

Supports Redis pub/sub fan-out (picked up by the socket bridge), an HTTP
push function, and a null channel for environments without push.
Provider is selected via configuration.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import httpx
import structlog

from sampler.config import Settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()


class BasePushChannel(ABC):
    """Abstract base class for push delivery providers."""

    name = "base"

    @abstractmethod
    async def send(
        self,
        account_id: str,
        title: str,
        message: str,
        type_: str,
        data: dict[str, str],
    ) -> bool:
        """Deliver one push message. Returns True on success."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Release provider resources."""


class NullPushChannel(BasePushChannel):
    """Push disabled for this deployment. Nothing is ever delivered."""

    name = "none"

    async def send(
        self,
        account_id: str,
        title: str,
        message: str,
        type_: str,
        data: dict[str, str],
    ) -> bool:
        logger.debug("push_skipped", account_id=account_id, provider=self.name)
        return False


class RedisPushChannel(BasePushChannel):
    """Publish to ``ws:user:{account_id}`` for per-user socket delivery."""

    name = "redis"

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def send(
        self,
        account_id: str,
        title: str,
        message: str,
        type_: str,
        data: dict[str, str],
    ) -> bool:
        payload = {
            "event": "notification",
            "data": {
                "type": type_,
                "title": title,
                "message": message,
                "data": data,
            },
        }
        try:
            await self._redis.publish(f"ws:user:{account_id}", json.dumps(payload))
        except Exception:
            logger.warning("push_send_failed", account_id=account_id, provider=self.name, exc_info=True)
            return False
        logger.info("push_sent", account_id=account_id, type=type_, provider=self.name)
        return True


class HttpPushChannel(BasePushChannel):
    """Send via the push function's HTTP API.

    The function answers ``{"success": true}`` with status 200 when the
    message was handed to the messaging provider.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), headers=headers, timeout=timeout)

    async def _post(self, path: str, payload: dict) -> bool:
        response = await self._client.post(path, json=payload)
        try:
            body = response.json()
        except ValueError:
            logger.warning("push_response_unparseable", path=path, status=response.status_code)
            body = {}
        if response.status_code == 200 and body.get("success"):
            return True
        logger.warning(
            "push_function_error",
            path=path,
            status=response.status_code,
            error=body.get("error", "Unknown error"),
        )
        return False

    async def send(
        self,
        account_id: str,
        title: str,
        message: str,
        type_: str,
        data: dict[str, str],
    ) -> bool:
        try:
            delivered = await self._post(
                "/send-user-push",
                {"userId": account_id, "title": title, "message": message, "data": {"type": type_, **data}},
            )
        except httpx.HTTPError:
            logger.warning("push_send_failed", account_id=account_id, provider=self.name, exc_info=True)
            return False
        if delivered:
            logger.info("push_sent", account_id=account_id, type=type_, provider=self.name)
        return delivered

    async def send_batch(
        self,
        account_ids: list[str],
        title: str,
        message: str,
        type_: str,
        data: dict[str, str] | None = None,
    ) -> bool:
        """Broadcast one message to several accounts in a single call."""
        if not account_ids:
            return False
        try:
            return await self._post(
                "/send-batch-push",
                {"userIds": account_ids, "title": title, "message": message, "data": {"type": type_, **(data or {})}},
            )
        except httpx.HTTPError:
            logger.warning("push_batch_failed", user_count=len(account_ids), exc_info=True)
            return False

    async def ping(self) -> bool:
        """Check that the push function is deployed and reachable."""
        try:
            response = await self._client.get("/ping")
        except httpx.HTTPError:
            logger.warning("push_ping_failed", exc_info=True)
            return False
        return response.status_code == 200

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def create_push_channel(settings: Settings, redis: Redis | None = None) -> BasePushChannel:
    """Create push channel based on configuration."""
    provider_name = settings.push_provider

    if provider_name == "none":
        return NullPushChannel()
    if provider_name == "redis":
        if redis is None:
            msg = "Redis push provider requires an initialized Redis client"
            raise ValueError(msg)
        return RedisPushChannel(redis)
    if provider_name == "http":
        if not settings.push_function_url:
            msg = "HTTP push provider requires SAMPLER_PUSH_FUNCTION_URL"
            raise ValueError(msg)
        return HttpPushChannel(
            base_url=settings.push_function_url,
            api_key=settings.push_api_key,
            timeout=settings.push_timeout_seconds,
        )
    msg = f"Unsupported push provider: {provider_name}"
    raise ValueError(msg)
