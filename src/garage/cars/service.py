"""Garage queries: the cars a user owns."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from garage.db.models import Car


async def list_cars(db: AsyncSession, user_id: str) -> list[Car]:
    """All cars owned by ``user_id``, newest first."""
    result = await db.execute(
        select(Car)
        .where(Car.owner_id == user_id)
        .order_by(Car.created_at.desc(), Car.token_id.desc())
    )
    return list(result.scalars().all())
