"""Shared test fixtures.

Tests run against a throwaway SQLite database (aiosqlite) with the schema
created from the ORM metadata; identity and minting collaborators are
replaced by in-memory doubles.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from garage.auth.identity import IdentityError, IdentityProvider, VerifiedIdentity
from garage.database import close_db, get_engine, get_session_factory, init_db
from garage.db.base import Base
from garage.db.models import User
from garage.gacha.catalog import load_catalog
from garage.gacha.service import GachaService
from garage.main import create_app
from garage.minting.client import BaseMinter, MintError

TEST_USER_ID = "did:privy:test-user"
TEST_WALLET = "0x00000000000000000000000000000000000000aa"
TEST_TOKEN = "valid-test-token"


class FakeIdentityProvider(IdentityProvider):
    """Accepts a fixed set of tokens."""

    def __init__(self, identities: dict[str, VerifiedIdentity] | None = None) -> None:
        self.identities = dict(identities or {})

    async def verify(self, token: str) -> VerifiedIdentity:
        try:
            return self.identities[token]
        except KeyError:
            msg = "unknown token"
            raise IdentityError(msg) from None


class FakeMinter(BaseMinter):
    """Records mint calls. Can be told to fail, stall, or run a hook mid-mint."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, str, str]] = []
        self.fail_with: Exception | None = None
        self.delay: float = 0.0
        self.on_mint: Callable[[int], Awaitable[None]] | None = None

    async def mint(self, wallet_address: str, token_id: int, model_name: str, series: str) -> str:
        self.calls.append((wallet_address, token_id, model_name, series))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.on_mint is not None:
            await self.on_mint(token_id)
        if self.fail_with is not None:
            raise self.fail_with
        return f"0x{token_id:064x}"


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database with the full schema."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'garage.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield get_session_factory()
    await close_db()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for test setup and assertions."""
    async with session_factory() as session:
        yield session


async def create_user(
    factory: async_sessionmaker[AsyncSession],
    user_id: str = TEST_USER_ID,
    coins: int = 0,
    wallet: str = TEST_WALLET,
) -> None:
    async with factory() as db:
        db.add(User(
            id=user_id,
            wallet_address=wallet,
            coins=coins,
            reserved_coins=0,
            username_set=False,
            created_at=datetime.now(timezone.utc),
        ))
        await db.commit()


async def fetch_user(factory: async_sessionmaker[AsyncSession], user_id: str = TEST_USER_ID) -> User | None:
    async with factory() as db:
        return await db.get(User, user_id)


@pytest.fixture
def fake_minter() -> FakeMinter:
    return FakeMinter()


@pytest.fixture
def gacha_service(session_factory, fake_minter) -> GachaService:
    return GachaService(
        catalog=load_catalog(),
        minter=fake_minter,
        session_factory=session_factory,
        rng=random.Random(1234),
        mint_timeout=5.0,
    )


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider({
        TEST_TOKEN: VerifiedIdentity(
            user_id=TEST_USER_ID,
            wallet_address=TEST_WALLET,
            email="racer@example.com",
            username="racer",
        ),
        "no-wallet-token": VerifiedIdentity(user_id="did:privy:walletless", wallet_address=None),
    })


@pytest.fixture
def app(gacha_service, identity_provider) -> FastAPI:
    """The application with collaborators already on app.state (lifespan is not run)."""
    application = create_app()
    application.state.identity_provider = identity_provider
    application.state.gacha_service = gacha_service
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app. Unhandled errors come back as 500 responses."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient) -> AsyncClient:
    """Client carrying a bearer token the fake identity provider accepts."""
    client.headers["Authorization"] = f"Bearer {TEST_TOKEN}"
    return client
