"""Identity resolver — external (app, org, user) references to internal UUIDs.

Learn: This is the CORE of the service. resolve() is idempotent:
1. Upsert the org keyed by (app_id, external_org_id) — touch only
2. Upsert the user keyed by (app_id, external_user_id) — link the org,
   apply only the profile fields the caller supplied
3. Commit both, or roll back both

Both upserts are single INSERT ... ON CONFLICT statements (db/upsert.py),
so concurrent first contacts for the same key converge on one row via the
database's own conflict arbitration. No locks, no read-then-write, no
retries here. A failed resolve is reported as StoreError and the caller
simply calls again.
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.db.models import Organization, User
from client_service.db.upsert import upsert
from client_service.errors import StoreError, ValidationError

logger = structlog.get_logger()

PROFILE_COLUMNS = frozenset({"email", "first_name", "last_name", "image_url", "phone"})

# Marker for "caller did not mention this field" (distinct from None = clear it).
UNSET: Any = object()


@dataclass(frozen=True)
class Resolution:
    org_id: uuid.UUID
    user_id: uuid.UUID
    org_created: bool
    user_created: bool


def _require(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value


def sparse_profile(profile: Optional[Mapping[str, Any]]) -> dict:
    """Keep only known profile columns the caller supplied."""
    if not profile:
        return {}
    unknown = set(profile) - PROFILE_COLUMNS
    if unknown:
        raise ValidationError(
            f"Unknown profile field: {sorted(unknown)[0]}", field=sorted(unknown)[0]
        )
    return {k: v for k, v in profile.items() if v is not UNSET}


class IdentityResolver:
    """Idempotent create-or-lookup of orgs and users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def upsert_org(
        self,
        app_id: str,
        external_org_id: str,
        name: Optional[str] = UNSET,
    ) -> tuple[Organization, bool]:
        """Create the org on first contact, otherwise touch updated_at.

        name is written on insert and, if supplied, on update too.
        Does not commit.
        """
        insert_values = {"app_id": app_id, "external_id": external_org_id}
        update_values = {}
        if name is not UNSET:
            insert_values["name"] = name
            update_values["name"] = name
        return await upsert(
            self.db,
            Organization,
            conflict_on=("app_id", "external_id"),
            insert_values=insert_values,
            update_values=update_values,
        )

    async def upsert_user(
        self,
        app_id: str,
        external_user_id: str,
        profile: Optional[Mapping[str, Any]] = None,
        org_id: Optional[uuid.UUID] = UNSET,
    ) -> tuple[User, bool]:
        """Create or refresh a user. Does not commit.

        Only keys present in profile are written on update; an absent
        email never erases a stored one. org_id is linked when given.
        """
        changes = sparse_profile(profile)
        if org_id is not UNSET:
            changes["org_id"] = org_id
        return await upsert(
            self.db,
            User,
            conflict_on=("app_id", "external_id"),
            insert_values={
                "app_id": app_id,
                "external_id": external_user_id,
                **changes,
            },
            update_values=changes,
        )

    async def resolve(
        self,
        app_id: str,
        external_org_id: str,
        external_user_id: str,
        profile: Optional[Mapping[str, Any]] = None,
        org_name: Optional[str] = UNSET,
    ) -> Resolution:
        """Resolve external references to internal ids, creating rows as needed."""
        _require(app_id, "appId")
        _require(external_org_id, "externalOrgId")
        _require(external_user_id, "externalUserId")
        changes = sparse_profile(profile)

        log = logger.bind(
            app_id=app_id,
            external_org_id=external_org_id,
            external_user_id=external_user_id,
        )

        try:
            org, org_created = await self.upsert_org(
                app_id, external_org_id, name=org_name
            )
            user, user_created = await self.upsert_user(
                app_id, external_user_id, changes, org_id=org.id
            )
            resolution = Resolution(
                org_id=org.id,
                user_id=user.id,
                org_created=org_created,
                user_created=user_created,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.exception("resolve.store_error")
            raise StoreError("Failed to resolve identity") from e

        log.info(
            "resolve.completed",
            org_id=str(resolution.org_id),
            user_id=str(resolution.user_id),
            org_created=resolution.org_created,
            user_created=resolution.user_created,
            profile_fields=sorted(changes),
        )
        return resolution
