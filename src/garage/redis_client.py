"""Redis access for request counters and the readiness check.

Redis is optional at runtime: until ``init_redis`` has run, ``get_redis``
raises and callers fall back to unthrottled behaviour.
"""

from typing import Any

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 50) -> None:
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Return the shared client, or raise RuntimeError before startup."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client


async def count_in_window(key: str, window_seconds: int) -> int:
    """Increment ``key`` and return its count within the current window.

    The key expires one second after the window closes.
    """
    pipe = get_redis().pipeline()
    pipe.incr(key)
    pipe.expire(key, window_seconds + 1)
    results: list[Any] = await pipe.execute()
    return int(results[0])


async def redis_status() -> str:
    """``"ok"`` if Redis answers a PING, otherwise the failure text."""
    try:
        await get_redis().ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"
