"""User listing API.

- GET /users → users of a tenant, filtered by org (internal or external
  id) and email, paginated
- GET /users/:id → one user of a tenant
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.config import settings
from client_service.db.engine import get_db
from client_service.schemas.common import ErrorResponse
from client_service.schemas.identity import UserEnvelope, UserList, UserRead
from client_service.services.user_query import UserQueryService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> UserQueryService:
    return UserQueryService(db)


@router.get(
    "/users",
    response_model=UserList,
    summary="List users filtered by app and org",
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def list_users(
    app_id: str = Query(..., alias="appId", min_length=1),
    org_id: Optional[uuid.UUID] = Query(None, alias="orgId"),
    external_org_id: Optional[str] = Query(None, alias="externalOrgId", min_length=1),
    email: Optional[str] = Query(None),
    limit: int = Query(settings.list_default_limit, ge=1, le=settings.list_max_limit),
    offset: int = Query(0, ge=0),
    svc: UserQueryService = Depends(_svc),
):
    page = await svc.list_users(
        app_id=app_id,
        org_id=org_id,
        external_org_id=external_org_id,
        email=email,
        limit=limit,
        offset=offset,
    )
    return UserList(
        users=[UserRead.model_validate(u) for u in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get(
    "/users/{user_id}",
    response_model=UserEnvelope,
    responses={404: {"model": ErrorResponse}},
)
async def get_user(
    user_id: uuid.UUID,
    app_id: str = Query(..., alias="appId", min_length=1),
    svc: UserQueryService = Depends(_svc),
):
    user = await svc.get_user(app_id, user_id)
    return UserEnvelope(user=UserRead.model_validate(user))
