"""User query service — filtered, paginated listing scoped by tenant.

Learn: The page and the total come from one shared WHERE clause, so a
page can never disagree with its own total about which rows match.
Ordering is (created_at, id): created_at gives insertion order and id
breaks ties, which keeps offset pagination stable.

An externalOrgId that was never resolved is not an error — it is a
legitimate question whose answer is "nobody".
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.config import settings
from client_service.db.models import Organization, User
from client_service.errors import NotFoundError, StoreError, ValidationError

logger = structlog.get_logger()


@dataclass
class UserPage:
    items: list[User]
    total: int
    limit: int
    offset: int


def clamp_page(limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
    """Apply the configured default/maximum page size."""
    if limit is None:
        limit = settings.list_default_limit
    if limit < 1:
        raise ValidationError("limit must be at least 1", field="limit")
    offset = offset or 0
    if offset < 0:
        raise ValidationError("offset must be non-negative", field="offset")
    return min(limit, settings.list_max_limit), offset


class UserQueryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_org_id(
        self, app_id: str, external_org_id: str
    ) -> Optional[uuid.UUID]:
        result = await self.db.execute(
            select(Organization.id)
            .where(
                Organization.app_id == app_id,
                Organization.external_id == external_org_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_users(
        self,
        app_id: str,
        org_id: Optional[uuid.UUID] = None,
        external_org_id: Optional[str] = None,
        email: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> UserPage:
        if not app_id:
            raise ValidationError("appId is required", field="appId")
        limit, offset = clamp_page(limit, offset)

        try:
            if org_id is None and external_org_id:
                org_id = await self.find_org_id(app_id, external_org_id)
                if org_id is None:
                    return UserPage(items=[], total=0, limit=limit, offset=offset)

            conditions = [User.app_id == app_id]
            if org_id is not None:
                conditions.append(User.org_id == org_id)
            if email:
                conditions.append(User.email == email)

            result = await self.db.execute(
                select(User)
                .where(*conditions)
                .order_by(User.created_at, User.id)
                .limit(limit)
                .offset(offset)
            )
            items = list(result.scalars().all())
            total = await self.db.scalar(
                select(func.count()).select_from(User).where(*conditions)
            )
        except SQLAlchemyError as e:
            logger.exception("users.list_store_error", app_id=app_id)
            raise StoreError("Failed to list users") from e

        return UserPage(
            items=items,
            total=total or 0,
            limit=limit,
            offset=offset,
        )

    async def get_user(self, app_id: str, user_id: uuid.UUID) -> User:
        """One user of the tenant. Raises NotFoundError."""
        try:
            result = await self.db.execute(
                select(User).where(User.id == user_id, User.app_id == app_id)
            )
            user = result.scalars().first()
        except SQLAlchemyError as e:
            logger.exception("users.get_store_error", user_id=str(user_id))
            raise StoreError("Failed to get user") from e
        if user is None:
            raise NotFoundError("User not found")
        return user
