"""FastAPI auth dependencies.

Learn: These are used as Depends() — either per route or at the
include_router level — to reject a request before the service layer
ever sees it.

Two auth mechanisms:
1. require_api_key: x-api-key header for tenant applications
2. get_current_identity: Bearer token verified by the identity provider
"""

import hmac
from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException

from client_service.auth.provider import (
    IdentityProvider,
    TokenError,
    get_identity_provider,
    org_claim,
)
from client_service.config import settings

logger = structlog.get_logger()


class CurrentIdentity:
    """The provider-authenticated caller.

    subject is the provider's user id; org_id is the active org claim
    of the session, if any. Both are external references.
    """

    def __init__(self, subject: str, org_id: Optional[str] = None):
        self.subject = subject
        self.org_id = org_id

    def __repr__(self) -> str:
        return f"CurrentIdentity(subject={self.subject!r}, org_id={self.org_id!r})"


def get_api_key() -> str:
    """Expected shared secret. Separate dependency so tests can override it."""
    return settings.api_key


async def require_api_key(
    x_api_key: Optional[str] = Header(None),
    expected: str = Depends(get_api_key),
) -> None:
    """Reject the request unless x-api-key matches the configured secret."""
    if not expected:
        logger.error("auth.api_key_not_configured")
        raise HTTPException(status_code=500, detail="Server misconfiguration")

    if not x_api_key or not hmac.compare_digest(
        x_api_key.encode(), expected.encode()
    ):
        raise HTTPException(status_code=401, detail="Invalid API key")


async def get_current_identity(
    authorization: Optional[str] = Header(None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> CurrentIdentity:
    """Verify the Bearer token with the provider (401 on any failure)."""
    if not authorization:
        raise _unauthorized("Missing authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise _unauthorized("Invalid authorization header")

    try:
        claims = await provider.verify_token(token.strip())
    except TokenError as e:
        raise _unauthorized(str(e))

    return CurrentIdentity(subject=claims["sub"], org_id=org_claim(claims))


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )
