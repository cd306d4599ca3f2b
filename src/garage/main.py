"""FastAPI application factory."""

from __future__ import annotations

import random
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from garage.auth.identity import create_identity_provider
from garage.cars.router import router as cars_router
from garage.config import get_settings
from garage.database import close_db, get_session_factory, init_db
from garage.gacha.catalog import load_catalog
from garage.gacha.router import router as gacha_router
from garage.gacha.service import GachaService
from garage.health.router import router as health_router
from garage.middleware import setup_middleware
from garage.minting.client import create_minter
from garage.redis_client import close_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle.

    Collaborators live on ``app.state`` so tests can swap in doubles.
    """
    settings = get_settings()
    # Fail fast on a broken catalog before accepting traffic
    catalog = load_catalog(settings.catalog_path)

    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    minter = create_minter(settings)
    identity_provider = create_identity_provider(settings)
    app.state.identity_provider = identity_provider
    app.state.gacha_service = GachaService(
        catalog=catalog,
        minter=minter,
        session_factory=get_session_factory(),
        rng=random.SystemRandom(),
        mint_timeout=settings.mint_timeout_seconds,
    )
    logger.info("startup_complete", boxes=list(catalog), minter=settings.minter_backend)

    yield

    await minter.aclose()
    await identity_provider.aclose()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Garage Gacha API",
        description="Open gacha boxes with in-app coins and mint car NFTs",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(gacha_router)
    app.include_router(cars_router)

    return app


app = create_app()
