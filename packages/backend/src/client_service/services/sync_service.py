"""Provider sync — the single-tenant deployment mode.

Learn: When callers authenticate with the identity provider's session
token instead of the shared API key, there is no appId on the wire.
Those identities are stored under settings.provider_app_id, with the
provider's user/org ids as the external references. Everything else is
the resolver's upsert protocol unchanged.
"""

from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.auth.dependencies import CurrentIdentity
from client_service.auth.provider import IdentityProvider
from client_service.config import settings
from client_service.db.models import Organization, User
from client_service.errors import StoreError, ValidationError
from client_service.services.resolver import UNSET, IdentityResolver

logger = structlog.get_logger()


class SyncService:
    def __init__(
        self,
        db: AsyncSession,
        provider: IdentityProvider,
        app_id: Optional[str] = None,
    ):
        self.db = db
        self.provider = provider
        self.app_id = app_id or settings.provider_app_id
        self.resolver = IdentityResolver(db)

    async def sync_org(self, identity: CurrentIdentity) -> tuple[Organization, bool]:
        """Upsert the org from the session's org claim."""
        if not identity.org_id:
            raise ValidationError("No organization in token", field="org_id")
        try:
            org, created = await self.resolver.upsert_org(self.app_id, identity.org_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("sync.org_store_error", external_org_id=identity.org_id)
            raise StoreError("Failed to sync org") from e

        logger.info("sync.org", org_id=str(org.id), created=created)
        return org, created

    async def sync_user(self, identity: CurrentIdentity) -> tuple[User, bool]:
        """Pull the profile from the provider and upsert the user.

        Fields the provider does not report (e.g. a user without an email
        address) are left untouched on an existing row.
        """
        profile = await self.provider.fetch_user(identity.subject)

        try:
            org_id = UNSET
            if identity.org_id:
                org, _ = await self.resolver.upsert_org(self.app_id, identity.org_id)
                org_id = org.id
            user, created = await self.resolver.upsert_user(
                self.app_id,
                identity.subject,
                profile.as_profile(),
                org_id=org_id,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("sync.user_store_error", external_user_id=identity.subject)
            raise StoreError("Failed to sync user") from e

        logger.info("sync.user", user_id=str(user.id), created=created)
        return user, created
