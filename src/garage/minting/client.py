"""
Minting collaborator with backend abstraction.

Supports an HTTP minting relayer (default) and a mock backend for local
development. Backend is selected via configuration.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from abc import ABC, abstractmethod

import httpx
import structlog

from garage.config import Settings

logger = structlog.get_logger()


class MintError(Exception):
    """The car could not be minted (on-chain revert, relayer or network failure)."""


class BaseMinter(ABC):
    """Abstract base class for car NFT minting backends."""

    @abstractmethod
    async def mint(self, wallet_address: str, token_id: int, model_name: str, series: str) -> str:
        """Mint ``token_id`` to ``wallet_address``. Returns the transaction hash."""
        ...

    async def aclose(self) -> None:
        """Release any held resources."""
        return None


class HttpMinter(BaseMinter):
    """Mint through an HTTP relayer that signs and submits the transaction.

    The relayer answers once the transaction is confirmed, with a JSON body
    containing ``txHash``.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    async def mint(self, wallet_address: str, token_id: int, model_name: str, series: str) -> str:
        """Submit the mint and wait for the relayer's confirmation."""
        try:
            response = await self._client.post(
                self.url,
                json={
                    "to": wallet_address,
                    "tokenId": str(token_id),
                    "modelName": model_name,
                    "series": series,
                },
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("mint_request_failed", wallet=wallet_address, token_id=token_id, error=str(exc))
            msg = f"mint request failed: {exc}"
            raise MintError(msg) from exc

        tx_hash = body.get("txHash") if isinstance(body, dict) else None
        if not isinstance(tx_hash, str) or not tx_hash:
            msg = "minting relayer returned no transaction hash"
            raise MintError(msg)

        logger.info("car_minted", wallet=wallet_address, token_id=token_id, tx_hash=tx_hash)
        return tx_hash

    async def aclose(self) -> None:
        await self._client.aclose()


class MockMinter(BaseMinter):
    """Pretend to mint: waits ``delay`` seconds and returns a fake hash."""

    def __init__(self, delay: float = 3.0) -> None:
        self.delay = delay

    async def mint(self, wallet_address: str, token_id: int, model_name: str, series: str) -> str:
        """Return a ``0xMOCK...`` transaction hash without touching any chain."""
        logger.info("mock_mint_started", wallet=wallet_address, token_id=token_id, model=model_name, series=series)
        if self.delay:
            await asyncio.sleep(self.delay)
        tx_hash = f"0xMOCK{time.time_ns() // 1_000_000}{secrets.token_hex(6)}"
        logger.info("mock_mint_done", token_id=token_id, tx_hash=tx_hash)
        return tx_hash


def create_minter(settings: Settings) -> BaseMinter:
    """Create the minting backend based on configuration."""
    backend = settings.minter_backend.lower()

    if backend == "http":
        return HttpMinter(
            url=settings.minter_url,
            api_key=settings.minter_api_key,
            timeout=settings.mint_timeout_seconds,
        )
    if backend == "mock":
        return MockMinter(delay=settings.mock_mint_delay_seconds)
    msg = f"Unsupported minter backend: {backend}"
    raise ValueError(msg)
