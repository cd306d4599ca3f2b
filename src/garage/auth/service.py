"""User lookup and just-in-time provisioning."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from garage.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from garage.auth.identity import VerifiedIdentity

logger = structlog.get_logger()


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by identity-provider subject id."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


def _apply_profile(user: User, identity: VerifiedIdentity) -> bool:
    """Copy provider profile fields onto ``user``. Returns True if anything changed."""
    wallet = identity.wallet_address or user.wallet_address
    changes = {"wallet_address": wallet, "email": identity.email}
    # A username chosen by the user is never overwritten by the provider
    if not user.username_set:
        changes["username"] = identity.username

    changed = False
    for field, value in changes.items():
        if getattr(user, field) != value:
            setattr(user, field, value)
            changed = True
    return changed


async def provision_user(db: AsyncSession, identity: VerifiedIdentity, starting_coins: int = 0) -> User:
    """Create the user on first sight, or refresh profile fields from the provider.

    Commits when it writes anything.
    """
    if identity.wallet_address is None:
        msg = "cannot provision a user without a wallet"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    user = await get_user_by_id(db, identity.user_id)
    if user is None:
        user = User(
            id=identity.user_id,
            wallet_address=identity.wallet_address,
            email=identity.email,
            username=identity.username,
            username_set=False,
            coins=starting_coins,
            reserved_coins=0,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # A concurrent request created the same user first
            await db.rollback()
            user = await get_user_by_id(db, identity.user_id)
            if user is None:
                raise
        else:
            logger.info("user_created", user_id=user.id, wallet=user.wallet_address)
            return user

    if _apply_profile(user, identity):
        user.updated_at = now
        await db.commit()
    return user
