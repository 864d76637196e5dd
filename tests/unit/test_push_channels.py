"""Push channel tests: Redis fan-out, HTTP push function, provider selection."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from sampler.config import Settings
from sampler.notifications.push import (
    HttpPushChannel,
    NullPushChannel,
    RedisPushChannel,
    create_push_channel,
)


def _http_channel(handler) -> HttpPushChannel:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://push.test")
    return HttpPushChannel(base_url="http://push.test", client=client)


class TestRedisPushChannel:
    @pytest.mark.asyncio
    async def test_publishes_to_user_channel(self):
        redis = AsyncMock()
        channel = RedisPushChannel(redis)
        assert await channel.send("auth-1", "Title", "Body", "checkIn", {"eventId": "e1"}) is True

        redis.publish.assert_awaited_once()
        topic, payload = redis.publish.call_args.args
        assert topic == "ws:user:auth-1"
        assert json.loads(payload) == {
            "event": "notification",
            "data": {"type": "checkIn", "title": "Title", "message": "Body", "data": {"eventId": "e1"}},
        }

    @pytest.mark.asyncio
    async def test_publish_failure_returns_false(self):
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")
        assert await RedisPushChannel(redis).send("auth-1", "t", "m", "review", {}) is False


class TestHttpPushChannel:
    @pytest.mark.asyncio
    async def test_send_posts_user_push(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        channel = _http_channel(handler)
        assert await channel.send("auth-1", "Title", "Body", "review", {"rating": "5"}) is True
        assert seen["path"] == "/send-user-push"
        assert seen["body"] == {
            "userId": "auth-1",
            "title": "Title",
            "message": "Body",
            "data": {"type": "review", "rating": "5"},
        }

    @pytest.mark.asyncio
    async def test_unsuccessful_body(self):
        channel = _http_channel(lambda request: httpx.Response(200, json={"success": False, "error": "no targets"}))
        assert await channel.send("auth-1", "t", "m", "checkIn", {}) is False

    @pytest.mark.asyncio
    async def test_server_error(self):
        channel = _http_channel(lambda request: httpx.Response(500, text="oops"))
        assert await channel.send("auth-1", "t", "m", "checkIn", {}) is False

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert await _http_channel(handler).send("auth-1", "t", "m", "checkIn", {}) is False

    @pytest.mark.asyncio
    async def test_send_batch(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        channel = _http_channel(handler)
        assert await channel.send_batch(["a", "b"], "New event", "Come by", "eventAdded") is True
        assert seen["path"] == "/send-batch-push"
        assert seen["body"]["userIds"] == ["a", "b"]
        assert seen["body"]["data"] == {"type": "eventAdded"}

    @pytest.mark.asyncio
    async def test_send_batch_empty(self):
        channel = _http_channel(lambda request: pytest.fail("no request expected"))
        assert await channel.send_batch([], "t", "m", "eventAdded") is False

    @pytest.mark.asyncio
    async def test_ping(self):
        channel = _http_channel(lambda request: httpx.Response(200, json={"ok": True}))
        assert await channel.ping() is True


class TestCreatePushChannel:
    def test_none(self):
        assert isinstance(create_push_channel(Settings(push_provider="none")), NullPushChannel)

    def test_redis_requires_client(self):
        with pytest.raises(ValueError):
            create_push_channel(Settings(push_provider="redis"))

    def test_redis(self):
        assert isinstance(create_push_channel(Settings(push_provider="redis"), redis=AsyncMock()), RedisPushChannel)

    def test_http_requires_url(self):
        with pytest.raises(ValueError):
            create_push_channel(Settings(push_provider="http", push_function_url=""))

    @pytest.mark.asyncio
    async def test_http(self):
        channel = create_push_channel(Settings(push_provider="http", push_function_url="http://push.test/"))
        assert isinstance(channel, HttpPushChannel)
        await channel.close()

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_push_channel(Settings(push_provider="pigeon"))


@pytest.mark.asyncio
async def test_null_channel_never_delivers():
    assert await NullPushChannel().send("auth-1", "t", "m", "checkIn", {}) is False
