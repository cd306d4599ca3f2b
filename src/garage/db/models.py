"""ORM models for users and minted cars.

Table definitions mirror alembic/versions/001_garage_baseline.py.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from garage.db.base import Base


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table. Primary key is the identity-provider subject id."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        CheckConstraint("reserved_coins >= 0", name="ck_users_reserved_non_negative"),
        CheckConstraint("reserved_coins <= coins", name="ck_users_reserved_within_coins"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    wallet_address: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    username_set: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    coins: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    # Coins held by draws whose mint is still in flight
    reserved_coins: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    cars: Mapped[list[Car]] = relationship("Car", back_populates="owner")

    @property
    def spendable_coins(self) -> int:
        return self.coins - self.reserved_coins


# ---------------------------------------------------------------------------
# Cars (minted gacha rewards)
# ---------------------------------------------------------------------------


class Car(Base):
    """A car NFT minted by a gacha draw. Immutable once written."""

    __tablename__ = "cars"

    token_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    owner_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    model_name: Mapped[str] = mapped_column(String(128), nullable=False)
    series: Mapped[str] = mapped_column(String(64), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    box_type: Mapped[str] = mapped_column(String(32), nullable=False)
    mint_tx_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    owner: Mapped[User] = relationship("User", back_populates="cars")
