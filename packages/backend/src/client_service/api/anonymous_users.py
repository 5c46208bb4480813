"""Anonymous users API.

Learn: Routes for email-keyed self-registration:
- POST /anonymous-users → create or refresh (upsert on appId + email),
  auto-creating a "Personal" org when none is given
- GET /anonymous-users → list by appId
- GET /anonymous-users/:id → one user
- PATCH /anonymous-users/:id → partial update (null clears a field)
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.config import settings
from client_service.db.engine import get_db
from client_service.schemas.anonymous import (
    AnonymousOrgRead,
    AnonymousRegistration,
    AnonymousUserCreate,
    AnonymousUserEnvelope,
    AnonymousUserList,
    AnonymousUserRead,
    AnonymousUserUpdate,
)
from client_service.schemas.common import ErrorResponse
from client_service.services.anonymous_service import AnonymousService
from client_service.services.resolver import UNSET

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> AnonymousService:
    return AnonymousService(db)


@router.post(
    "/anonymous-users",
    response_model=AnonymousRegistration,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_anonymous_user(
    body: AnonymousUserCreate,
    svc: AnonymousService = Depends(_svc),
):
    user, org, created = await svc.register(
        app_id=body.app_id,
        email=str(body.email),
        profile=body.profile(),
        org_id=body.org_id,
        metadata=body.metadata if "metadata" in body.model_fields_set else UNSET,
    )
    return AnonymousRegistration(
        anonymous_user=AnonymousUserRead.model_validate(user),
        anonymous_org=AnonymousOrgRead.model_validate(org) if org else None,
        created=created,
    )


@router.get("/anonymous-users", response_model=AnonymousUserList)
async def list_anonymous_users(
    app_id: str = Query(..., alias="appId", min_length=1),
    limit: int = Query(settings.list_default_limit, ge=1, le=settings.list_max_limit),
    offset: int = Query(0, ge=0),
    svc: AnonymousService = Depends(_svc),
):
    items, total, limit, offset = await svc.list_users(app_id, limit, offset)
    return AnonymousUserList(
        anonymous_users=[AnonymousUserRead.model_validate(u) for u in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/anonymous-users/{user_id}",
    response_model=AnonymousUserEnvelope,
    responses={404: {"model": ErrorResponse}},
)
async def get_anonymous_user(user_id: uuid.UUID, svc: AnonymousService = Depends(_svc)):
    user = await svc.get_user(user_id)
    return AnonymousUserEnvelope(anonymous_user=AnonymousUserRead.model_validate(user))


@router.patch(
    "/anonymous-users/{user_id}",
    response_model=AnonymousUserEnvelope,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_anonymous_user(
    user_id: uuid.UUID,
    body: AnonymousUserUpdate,
    svc: AnonymousService = Depends(_svc),
):
    user = await svc.update_user(user_id, body.changes())
    return AnonymousUserEnvelope(anonymous_user=AnonymousUserRead.model_validate(user))
