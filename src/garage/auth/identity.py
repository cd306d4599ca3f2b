"""
Identity provider abstraction.

Verifies bearer credentials issued by the external identity provider (Privy)
and resolves the caller's profile and embedded wallet.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx
import jwt
import structlog

from garage.config import Settings

logger = structlog.get_logger()


class IdentityError(Exception):
    """The bearer credential could not be verified."""


@dataclass(frozen=True)
class VerifiedIdentity:
    user_id: str
    wallet_address: str | None
    email: str | None = None
    username: str | None = None


def derive_username(twitter: str | None, discord: str | None, email: str | None) -> str | None:
    """Pick a display username: Twitter, then Discord, then the email local part."""
    if twitter:
        return twitter
    if discord:
        return discord
    if email:
        return email.split("@")[0] or None
    return None


class IdentityProvider(ABC):
    """Turns a bearer token into a verified identity."""

    @abstractmethod
    async def verify(self, token: str) -> VerifiedIdentity:
        """Raise ``IdentityError`` when the token is invalid or expired."""
        ...

    async def aclose(self) -> None:
        return None


class PrivyIdentityProvider(IdentityProvider):
    """Verify Privy access tokens (ES256 JWTs) and fetch the user over the REST API."""

    ISSUER = "privy.io"

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        verification_key: str,
        api_base: str = "https://auth.privy.io/api/v1",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.app_id = app_id
        self.verification_key = verification_key
        self.api_base = api_base.rstrip("/")
        self._client = client or httpx.AsyncClient(
            auth=(app_id, app_secret),
            headers={"privy-app-id": app_id},
            timeout=timeout,
        )

    def _decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.verification_key,
                algorithms=["ES256"],
                issuer=self.ISSUER,
                audience=self.app_id,
                options={"require": ["sub", "exp", "iss", "aud"]},
            )
        except jwt.InvalidTokenError as exc:
            raise IdentityError(str(exc)) from exc

    async def _fetch_user(self, user_id: str) -> dict[str, Any]:
        try:
            response = await self._client.get(f"{self.api_base}/users/{user_id}")
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("identity_lookup_failed", user_id=user_id, error=str(exc))
            msg = f"could not load user profile: {exc}"
            raise IdentityError(msg) from exc

    async def verify(self, token: str) -> VerifiedIdentity:
        claims = self._decode(token)
        user_id = claims["sub"]
        profile = await self._fetch_user(user_id)
        return _identity_from_profile(user_id, profile)

    async def aclose(self) -> None:
        await self._client.aclose()


def _identity_from_profile(user_id: str, profile: dict[str, Any]) -> VerifiedIdentity:
    """Extract wallet, email and username from a Privy user object.

    The embedded (Privy-managed) wallet wins over any externally linked one.
    """
    accounts: list[dict[str, Any]] = profile.get("linked_accounts") or []

    def first(kind: str, **match: Any) -> dict[str, Any] | None:  # noqa: ANN401
        for account in accounts:
            if account.get("type") == kind and all(account.get(k) == v for k, v in match.items()):
                return account
        return None

    wallet = first("wallet", wallet_client_type="privy") or first("wallet")
    email = first("email")
    twitter = first("twitter_oauth")
    discord = first("discord_oauth")

    email_address = email.get("address") if email else None
    return VerifiedIdentity(
        user_id=user_id,
        wallet_address=wallet["address"].lower() if wallet and wallet.get("address") else None,
        email=email_address,
        username=derive_username(
            twitter.get("username") if twitter else None,
            discord.get("username") if discord else None,
            email_address,
        ),
    )


def create_identity_provider(settings: Settings) -> IdentityProvider:
    """Create the identity provider from configuration."""
    return PrivyIdentityProvider(
        app_id=settings.privy_app_id,
        app_secret=settings.privy_app_secret,
        verification_key=settings.privy_verification_key,
        api_base=settings.privy_api_base,
        timeout=settings.identity_timeout_seconds,
    )
