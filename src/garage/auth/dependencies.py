"""FastAPI authentication dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from garage.auth.identity import IdentityError, IdentityProvider, VerifiedIdentity
from garage.auth.service import provision_user
from garage.config import get_settings
from garage.database import get_session

_bearer = HTTPBearer(auto_error=False)


def get_identity_provider(request: Request) -> IdentityProvider:
    """The identity provider attached to the application at startup."""
    return request.app.state.identity_provider


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    provider: IdentityProvider = Depends(get_identity_provider),
    db: AsyncSession = Depends(get_session),
) -> VerifiedIdentity:
    """
    Verify the bearer token and make sure the caller has a local user row.

    Raises 401 for a missing or invalid token, 400 when no wallet is linked.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="No token provided")

    try:
        identity = await provider.verify(credentials.credentials)
    except IdentityError as e:
        raise HTTPException(status_code=401, detail="Unauthorized") from e

    if not identity.wallet_address:
        raise HTTPException(status_code=400, detail="User has no linked wallet")

    await provision_user(db, identity, starting_coins=get_settings().starting_coins)
    return identity
