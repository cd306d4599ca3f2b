"""Gacha draw and settlement.

Opening a box runs in four phases, none of which holds a database
transaction open across the mint call:

1. reserve: one conditional UPDATE moves the box cost into
   ``users.reserved_coins`` if the spendable balance covers it. Two concurrent
   draws cannot both reserve the same coins.
2. draw: weighted reward selection and token id allocation.
3. mint: external call, bounded by ``mint_timeout``. On failure the
   reservation is released and nothing else changes.
4. settle: one transaction inserts the car and turns the reservation into a
   real debit. Shielded from caller cancellation because the mint already
   happened.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from garage.auth.service import get_user_by_id
from garage.db.models import Car, User
from garage.gacha.catalog import BoxDefinition, RewardEntry
from garage.gacha.errors import (
    InsufficientFunds,
    InvalidBoxType,
    MintFailed,
    SettlementInconsistency,
    UserNotFound,
)
from garage.gacha.selector import select_random_reward
from garage.gacha.token_ids import allocate_token_id
from garage.minting.client import BaseMinter, MintError

logger = structlog.get_logger()


@dataclass(frozen=True)
class OpenBoxResult:
    box_type: str
    reward: RewardEntry
    token_id: int
    tx_hash: str
    spent: int
    remaining_coins: int


@dataclass(frozen=True)
class BoxSummary:
    type: str
    cost_coins: int
    can_afford: bool
    rewards: tuple[RewardEntry, ...]


@dataclass(frozen=True)
class BoxListing:
    user_coins: int
    boxes: list[BoxSummary]


async def _spendable_coins(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(User.coins - User.reserved_coins).where(User.id == user_id)
    )
    return result.scalar_one_or_none() or 0


class GachaService:
    """Box listing and box opening against one catalog, minter and store."""

    def __init__(
        self,
        catalog: Mapping[str, BoxDefinition],
        minter: BaseMinter,
        session_factory: async_sessionmaker[AsyncSession],
        rng: random.Random | None = None,
        mint_timeout: float = 60.0,
    ) -> None:
        self.catalog = catalog
        self.minter = minter
        self.session_factory = session_factory
        self.rng = rng or random.SystemRandom()
        self.mint_timeout = mint_timeout

    def get_box(self, box_type: str) -> BoxDefinition:
        box = self.catalog.get(box_type)
        if box is None:
            raise InvalidBoxType(box_type, self.catalog.keys())
        return box

    # ── Read side ──

    async def list_boxes(self, user_id: str) -> BoxListing:
        """Catalog with per-box affordability. An unknown user has a balance of zero."""
        async with self.session_factory() as db:
            user = await get_user_by_id(db, user_id)
        coins = user.spendable_coins if user is not None else 0
        return BoxListing(
            user_coins=coins,
            boxes=[
                BoxSummary(
                    type=box.type,
                    cost_coins=box.cost_coins,
                    can_afford=user is not None and coins >= box.cost_coins,
                    rewards=box.rewards,
                )
                for box in self.catalog.values()
            ],
        )

    # ── Write side ──

    async def open_box(self, user_id: str, box_type: str) -> OpenBoxResult:
        """Spend the box cost and mint a randomly drawn car to the user's wallet.

        Raises:
            InvalidBoxType, UserNotFound, InsufficientFunds: before any side effect.
            MintFailed: the mint did not happen; the balance is untouched.
            SettlementInconsistency: the car is on-chain but not recorded locally.
        """
        box = self.get_box(box_type)
        cost = box.cost_coins

        async with self.session_factory() as db:
            user = await get_user_by_id(db, user_id)
            if user is None:
                raise UserNotFound(user_id)
            wallet_address = user.wallet_address

            await self._reserve(db, user_id, cost)
            try:
                reward = select_random_reward(box.rewards, self.rng)
                token_id = await allocate_token_id(db, self.rng)
            except BaseException:
                await asyncio.shield(self._release(user_id, cost))
                raise

        try:
            tx_hash = await asyncio.wait_for(
                self.minter.mint(wallet_address, token_id, reward.model_name, reward.series),
                timeout=self.mint_timeout,
            )
        except (MintError, asyncio.TimeoutError) as exc:
            logger.warning(
                "mint_failed",
                user_id=user_id,
                box_type=box_type,
                token_id=token_id,
                error=str(exc) or type(exc).__name__,
            )
            await asyncio.shield(self._release(user_id, cost))
            raise MintFailed(str(exc)) from exc
        except BaseException:
            await asyncio.shield(self._release(user_id, cost))
            raise

        remaining = await asyncio.shield(
            self._settle(user_id, box, reward, token_id, tx_hash)
        )
        logger.info(
            "box_opened",
            user_id=user_id,
            box_type=box_type,
            model=reward.model_name,
            rarity=reward.rarity,
            token_id=token_id,
            tx_hash=tx_hash,
            remaining=remaining,
        )
        return OpenBoxResult(
            box_type=box.type,
            reward=reward,
            token_id=token_id,
            tx_hash=tx_hash,
            spent=cost,
            remaining_coins=remaining,
        )

    async def _reserve(self, db: AsyncSession, user_id: str, cost: int) -> None:
        """Hold ``cost`` coins for an in-flight draw, or raise InsufficientFunds."""
        result = await db.execute(
            update(User)
            .where(User.id == user_id, User.coins - User.reserved_coins >= cost)
            .values(reserved_coins=User.reserved_coins + cost)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            current = await _spendable_coins(db, user_id)
            raise InsufficientFunds(required=cost, current=current)
        await db.commit()

    async def _release(self, user_id: str, cost: int) -> None:
        """Give back a reservation after a draw that did not mint."""
        try:
            async with self.session_factory() as db, db.begin():
                await db.execute(
                    update(User)
                    .where(User.id == user_id, User.reserved_coins >= cost)
                    .values(reserved_coins=User.reserved_coins - cost)
                    .execution_options(synchronize_session=False)
                )
        except Exception:
            # Coins stay held; the client still gets the original failure
            logger.exception("reservation_release_failed", user_id=user_id, amount=cost)

    async def _settle(
        self,
        user_id: str,
        box: BoxDefinition,
        reward: RewardEntry,
        token_id: int,
        tx_hash: str,
    ) -> int:
        """Record the car and debit the reserved coins in one transaction."""
        cost = box.cost_coins
        try:
            async with self.session_factory() as db, db.begin():
                db.add(Car(
                    token_id=token_id,
                    owner_id=user_id,
                    model_name=reward.model_name,
                    series=reward.series,
                    rarity=reward.rarity,
                    box_type=box.type,
                    mint_tx_hash=tx_hash,
                    created_at=datetime.now(timezone.utc),
                ))
                result = await db.execute(
                    update(User)
                    .where(User.id == user_id, User.reserved_coins >= cost, User.coins >= cost)
                    .values(
                        coins=User.coins - cost,
                        reserved_coins=User.reserved_coins - cost,
                        updated_at=datetime.now(timezone.utc),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    msg = f"no coin reservation of {cost} found for user {user_id}"
                    raise RuntimeError(msg)
                remaining = await _spendable_coins(db, user_id)
        except Exception as exc:
            logger.error(
                "settlement_inconsistency",
                user_id=user_id,
                box_type=box.type,
                token_id=token_id,
                tx_hash=tx_hash,
                model=reward.model_name,
                error=str(exc),
                exc_info=exc,
            )
            raise SettlementInconsistency(user_id, token_id, tx_hash, box.type) from exc
        return remaining
