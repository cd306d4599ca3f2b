"""Token ID generation for newly minted cars."""

from __future__ import annotations

import time
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from garage.db.models import Car

_RANDOM_BITS = 20


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class BitSource(Protocol):
    def getrandbits(self, k: int, /) -> int: ...


def new_token_id(rng: BitSource, now_ms: int | None = None) -> int:
    """Millisecond timestamp in the high bits, random bits in the low ones.

    Always positive and below 2**63 so it fits a BIGINT column.
    """
    if now_ms is None:
        now_ms = _now_ms()
    return ((now_ms << _RANDOM_BITS) | rng.getrandbits(_RANDOM_BITS)) & ((1 << 63) - 1) or 1


async def allocate_token_id(db: AsyncSession, rng: BitSource, attempts: int = 5) -> int:
    """Generate a token id not yet used by any car.

    The primary key on ``cars.token_id`` still guards against a concurrent
    allocation of the same id.
    """
    for _ in range(attempts):
        token_id = new_token_id(rng)
        existing = await db.execute(select(Car.token_id).where(Car.token_id == token_id))
        if existing.scalar_one_or_none() is None:
            return token_id
    msg = f"could not allocate a free token id after {attempts} attempts"
    raise RuntimeError(msg)
