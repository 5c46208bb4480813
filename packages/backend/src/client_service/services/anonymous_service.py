"""Anonymous registration — users keyed by (app_id, email), no external id.

Learn: Same contract as the resolver, different key. register() upserts
the user on (app_id, email) and, for a user seen for the first time
without an org, creates a "Personal" org in the same transaction.

A concurrent register() for the same email blocks on the unique key
until the inserter commits and then sees the org already linked, so a
user never gets more than one auto-created org.
"""

import uuid
from collections.abc import Mapping
from typing import Any, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.db.models import (
    DEFAULT_ANONYMOUS_ORG_NAME,
    AnonymousOrg,
    AnonymousUser,
    utcnow,
)
from client_service.db.upsert import upsert
from client_service.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from client_service.services.resolver import UNSET
from client_service.services.user_query import clamp_page

logger = structlog.get_logger()

USER_PROFILE_COLUMNS = frozenset({"first_name", "last_name", "image_url", "phone"})
USER_MUTABLE_COLUMNS = USER_PROFILE_COLUMNS | {"email", "meta"}
ORG_MUTABLE_COLUMNS = frozenset({"name", "meta"})


def _check_changes(changes: Mapping[str, Any], allowed: frozenset) -> dict:
    if not changes:
        raise ValidationError("No fields to update")
    unknown = set(changes) - allowed
    if unknown:
        field = sorted(unknown)[0]
        raise ValidationError(f"Unknown field: {field}", field=field)
    return dict(changes)


class AnonymousService:
    """Self-registration plus read/patch of anonymous users and orgs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        app_id: str,
        email: str,
        profile: Optional[Mapping[str, Any]] = None,
        org_id: Optional[uuid.UUID] = None,
        metadata: Optional[dict] = UNSET,
    ) -> tuple[AnonymousUser, Optional[AnonymousOrg], bool]:
        """Create or refresh an anonymous user. Returns (user, org, created)."""
        if not app_id or not app_id.strip():
            raise ValidationError("appId is required", field="appId")
        if not email or not email.strip():
            raise ValidationError("email is required", field="email")

        changes = dict(profile or {})
        unknown = set(changes) - USER_PROFILE_COLUMNS
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Unknown profile field: {field}", field=field)
        if metadata is not UNSET:
            changes["meta"] = metadata

        try:
            org = None
            if org_id is not None:
                org = await self._get_org(org_id)
                if org is None or org.app_id != app_id:
                    raise NotFoundError("Anonymous org not found")
                changes["org_id"] = org.id

            user, created = await upsert(
                self.db,
                AnonymousUser,
                conflict_on=("app_id", "email"),
                insert_values={"app_id": app_id, "email": email, **changes},
                update_values=changes,
            )

            if user.org_id is None:
                org = AnonymousOrg(app_id=app_id, name=DEFAULT_ANONYMOUS_ORG_NAME)
                self.db.add(org)
                await self.db.flush()
                user.org_id = org.id
                await self.db.flush()
            elif org is None:
                org = await self._get_org(user.org_id)

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("anonymous.register_store_error", app_id=app_id)
            raise StoreError("Failed to create anonymous user") from e
        except NotFoundError:
            await self.db.rollback()
            raise

        logger.info(
            "anonymous.registered",
            app_id=app_id,
            user_id=str(user.id),
            org_id=str(user.org_id),
            created=created,
        )
        return user, org, created

    # ─── Users ──────────────────────────────────────────

    async def list_users(
        self, app_id: str, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> tuple[list[AnonymousUser], int, int, int]:
        limit, offset = clamp_page(limit, offset)
        items, total = await self._page(AnonymousUser, app_id, limit, offset)
        return items, total, limit, offset

    async def get_user(self, user_id: uuid.UUID) -> AnonymousUser:
        try:
            user = await self.db.get(AnonymousUser, user_id)
        except SQLAlchemyError as e:
            logger.exception("anonymous.get_user_store_error", user_id=str(user_id))
            raise StoreError("Failed to get anonymous user") from e
        if user is None:
            raise NotFoundError("Anonymous user not found")
        return user

    async def update_user(
        self, user_id: uuid.UUID, changes: Mapping[str, Any]
    ) -> AnonymousUser:
        """Apply a PATCH. Keys present are written (None clears), others kept."""
        changes = _check_changes(changes, USER_MUTABLE_COLUMNS)
        if "email" in changes and not changes["email"]:
            raise ValidationError("email cannot be empty", field="email")
        return await self._update(
            AnonymousUser,
            user_id,
            changes,
            not_found="Anonymous user not found",
            conflict="Email already registered for this app",
            failure="Failed to update anonymous user",
        )

    # ─── Orgs ───────────────────────────────────────────

    async def list_orgs(
        self, app_id: str, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> tuple[list[AnonymousOrg], int, int, int]:
        limit, offset = clamp_page(limit, offset)
        items, total = await self._page(AnonymousOrg, app_id, limit, offset)
        return items, total, limit, offset

    async def get_org(self, org_id: uuid.UUID) -> AnonymousOrg:
        try:
            org = await self._get_org(org_id)
        except SQLAlchemyError as e:
            logger.exception("anonymous.get_org_store_error", org_id=str(org_id))
            raise StoreError("Failed to get anonymous org") from e
        if org is None:
            raise NotFoundError("Anonymous org not found")
        return org

    async def update_org(
        self, org_id: uuid.UUID, changes: Mapping[str, Any]
    ) -> AnonymousOrg:
        changes = _check_changes(changes, ORG_MUTABLE_COLUMNS)
        if "name" in changes and not changes["name"]:
            raise ValidationError("name cannot be empty", field="name")
        return await self._update(
            AnonymousOrg,
            org_id,
            changes,
            not_found="Anonymous org not found",
            conflict="Anonymous org update conflicts with existing data",
            failure="Failed to update anonymous org",
        )

    # ─── Helpers ────────────────────────────────────────

    async def _get_org(self, org_id: uuid.UUID) -> Optional[AnonymousOrg]:
        return await self.db.get(AnonymousOrg, org_id)

    async def _page(self, model, app_id: str, limit: int, offset: int):
        if not app_id:
            raise ValidationError("appId is required", field="appId")
        condition = model.app_id == app_id
        try:
            result = await self.db.execute(
                select(model)
                .where(condition)
                .order_by(model.created_at, model.id)
                .limit(limit)
                .offset(offset)
            )
            items = list(result.scalars().all())
            total = await self.db.scalar(
                select(func.count()).select_from(model).where(condition)
            )
        except SQLAlchemyError as e:
            logger.exception("anonymous.list_store_error", table=model.__tablename__)
            raise StoreError(f"Failed to list {model.__tablename__.replace('_', ' ')}") from e
        return items, total or 0

    async def _update(self, model, row_id, changes, *, not_found, conflict, failure):
        values = {getattr(model, key): value for key, value in changes.items()}
        values[model.updated_at] = utcnow()
        try:
            result = await self.db.execute(
                update(model)
                .where(model.id == row_id)
                .values(values)
                .returning(model),
                execution_options={"populate_existing": True},
            )
            row = result.scalars().first()
            if row is None:
                await self.db.rollback()
                raise NotFoundError(not_found)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(conflict) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("anonymous.update_store_error", table=model.__tablename__)
            raise StoreError(failure) from e
        return row
