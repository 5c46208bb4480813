"""Third-party identity provider client.

Learn: The provider owns the signing keys and the user profiles. We only
need two things from it:
- verify_token(): check a session JWT (JWKS/RS256 in production, a shared
  HS256 secret for local development) and return its claims
- fetch_user(): read the user's profile over the provider's backend API

Signature maths is PyJWT's job; this module just wires it to settings.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx
import jwt
import structlog

from client_service.config import Settings, settings
from client_service.errors import ProviderError

logger = structlog.get_logger()


class TokenError(Exception):
    """Raised when a bearer token cannot be verified."""


@dataclass
class ProviderProfile:
    """Profile fields as reported by the provider."""

    user_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    phone: Optional[str] = None

    def as_profile(self) -> dict:
        """Sparse profile payload: fields the provider did not report are left out."""
        fields = {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "image_url": self.image_url,
            "phone": self.phone,
        }
        return {k: v for k, v in fields.items() if v is not None}


def org_claim(claims: dict) -> Optional[str]:
    """Active org of a session token.

    v1 tokens carry `org_id`; v2 tokens nest it as `o.id`. v1 wins when
    both are present.
    """
    if claims.get("org_id"):
        return claims["org_id"]
    nested = claims.get("o")
    if isinstance(nested, dict) and nested.get("id"):
        return nested["id"]
    return None


def _first_value(items: list, key: str, primary_id: Optional[str]) -> Optional[str]:
    if not items:
        return None
    for item in items:
        if primary_id and item.get("id") == primary_id:
            return item.get(key)
    return items[0].get(key)


class IdentityProvider:
    """Verifies provider tokens and fetches provider-side profiles."""

    def __init__(
        self,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._jwks_client: Optional[jwt.PyJWKClient] = None

    def _signing_key(self, token: str):
        if self.config.provider_jwks_url:
            if self._jwks_client is None:
                self._jwks_client = jwt.PyJWKClient(
                    self.config.provider_jwks_url,
                    cache_jwk_set=True,
                    lifespan=self.config.provider_jwks_cache_seconds,
                    timeout=self.config.provider_timeout_seconds,
                )
            return self._jwks_client.get_signing_key_from_jwt(token).key, ["RS256"]
        if self.config.provider_jwt_secret:
            return self.config.provider_jwt_secret, ["HS256"]
        raise TokenError("Token verification is not configured")

    async def verify_token(self, token: str) -> dict:
        """Verify a session token and return its claims. Raises TokenError."""
        try:
            # PyJWKClient fetches over blocking urllib; keep it off the event loop.
            key, algorithms = await asyncio.to_thread(self._signing_key, token)
            claims = jwt.decode(
                token,
                key,
                algorithms=algorithms,
                issuer=self.config.provider_issuer or None,
                options={
                    "require": ["sub", "exp"],
                    "verify_aud": False,
                    "verify_iss": bool(self.config.provider_issuer),
                },
            )
        except jwt.ExpiredSignatureError:
            raise TokenError("Token has expired")
        except jwt.PyJWKClientError as e:
            raise TokenError(f"Unable to fetch signing key: {e}")
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}")

        parties = self.config.provider_authorized_parties
        if parties and claims.get("azp") not in parties:
            raise TokenError("Invalid token: unauthorized party")
        return claims

    async def fetch_user(self, user_id: str) -> ProviderProfile:
        """GET /users/{id} from the provider's backend API."""
        async with httpx.AsyncClient(
            base_url=self.config.provider_api_url.rstrip("/"),
            timeout=self.config.provider_timeout_seconds,
            headers={"Authorization": f"Bearer {self.config.provider_secret_key}"},
            transport=self._transport,
        ) as client:
            try:
                resp = await client.get(f"/users/{user_id}")
                resp.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning("provider.fetch_user_failed", user_id=user_id, error=str(e))
                raise ProviderError("Failed to fetch user from identity provider") from e

        data = resp.json()
        return ProviderProfile(
            user_id=data.get("id", user_id),
            email=_first_value(
                data.get("email_addresses") or [],
                "email_address",
                data.get("primary_email_address_id"),
            ),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            image_url=data.get("image_url"),
            phone=_first_value(
                data.get("phone_numbers") or [],
                "phone_number",
                data.get("primary_phone_number_id"),
            ),
        )


_provider: Optional[IdentityProvider] = None


def get_identity_provider() -> IdentityProvider:
    """FastAPI dependency — one provider client per process."""
    global _provider
    if _provider is None:
        _provider = IdentityProvider()
    return _provider
