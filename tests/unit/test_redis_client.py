"""Redis helpers for counters and readiness."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from garage import redis_client


@pytest.fixture
def fake_redis(monkeypatch):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[3, True])
    client = MagicMock()
    client.pipeline.return_value = pipe
    client.ping = AsyncMock(return_value=True)
    monkeypatch.setattr(redis_client, "_client", client)
    return client


@pytest.mark.asyncio
class TestRedisHelpers:

    async def test_count_in_window_increments_and_expires(self, fake_redis):
        assert await redis_client.count_in_window("ratelimit:all:ip:1:5", 60) == 3
        pipe = fake_redis.pipeline.return_value
        pipe.incr.assert_called_once_with("ratelimit:all:ip:1:5")
        pipe.expire.assert_called_once_with("ratelimit:all:ip:1:5", 61)

    async def test_count_in_window_without_redis(self, monkeypatch):
        monkeypatch.setattr(redis_client, "_client", None)
        with pytest.raises(RuntimeError):
            await redis_client.count_in_window("k", 60)

    async def test_status_ok(self, fake_redis):
        assert await redis_client.redis_status() == "ok"

    async def test_status_reports_ping_failure(self, fake_redis):
        fake_redis.ping.side_effect = ConnectionError("refused")
        assert await redis_client.redis_status() == "error: refused"

    async def test_status_before_init(self, monkeypatch):
        monkeypatch.setattr(redis_client, "_client", None)
        assert (await redis_client.redis_status()).startswith("error: Redis not initialized")
