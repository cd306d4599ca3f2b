"""Baseline: users and cars.

Revision ID: 001_garage_baseline
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_garage_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users (id is the identity-provider subject) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(128) PRIMARY KEY,
            wallet_address VARCHAR(64) UNIQUE NOT NULL,
            email VARCHAR(320),
            username VARCHAR(64),
            username_set BOOLEAN NOT NULL DEFAULT false,
            coins INTEGER NOT NULL DEFAULT 0,
            reserved_coins INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ,
            CONSTRAINT ck_users_coins_non_negative CHECK (coins >= 0),
            CONSTRAINT ck_users_reserved_non_negative CHECK (reserved_coins >= 0),
            CONSTRAINT ck_users_reserved_within_coins CHECK (reserved_coins <= coins)
        )
    """)

    # --- Cars ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS cars (
            token_id BIGINT PRIMARY KEY,
            owner_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            model_name VARCHAR(128) NOT NULL,
            series VARCHAR(64) NOT NULL,
            rarity VARCHAR(16) NOT NULL,
            box_type VARCHAR(32) NOT NULL,
            mint_tx_hash VARCHAR(128) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_cars_owner_id
        ON cars(owner_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS cars CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
