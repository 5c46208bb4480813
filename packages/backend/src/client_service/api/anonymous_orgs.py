"""Anonymous orgs API — list, get and rename the auto-created orgs."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.config import settings
from client_service.db.engine import get_db
from client_service.schemas.anonymous import (
    AnonymousOrgEnvelope,
    AnonymousOrgList,
    AnonymousOrgRead,
    AnonymousOrgUpdate,
)
from client_service.schemas.common import ErrorResponse
from client_service.services.anonymous_service import AnonymousService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> AnonymousService:
    return AnonymousService(db)


@router.get("/anonymous-orgs", response_model=AnonymousOrgList)
async def list_anonymous_orgs(
    app_id: str = Query(..., alias="appId", min_length=1),
    limit: int = Query(settings.list_default_limit, ge=1, le=settings.list_max_limit),
    offset: int = Query(0, ge=0),
    svc: AnonymousService = Depends(_svc),
):
    items, total, limit, offset = await svc.list_orgs(app_id, limit, offset)
    return AnonymousOrgList(
        anonymous_orgs=[AnonymousOrgRead.model_validate(o) for o in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/anonymous-orgs/{org_id}",
    response_model=AnonymousOrgEnvelope,
    responses={404: {"model": ErrorResponse}},
)
async def get_anonymous_org(org_id: uuid.UUID, svc: AnonymousService = Depends(_svc)):
    org = await svc.get_org(org_id)
    return AnonymousOrgEnvelope(anonymous_org=AnonymousOrgRead.model_validate(org))


@router.patch(
    "/anonymous-orgs/{org_id}",
    response_model=AnonymousOrgEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_anonymous_org(
    org_id: uuid.UUID,
    body: AnonymousOrgUpdate,
    svc: AnonymousService = Depends(_svc),
):
    org = await svc.update_org(org_id, body.changes())
    return AnonymousOrgEnvelope(anonymous_org=AnonymousOrgRead.model_validate(org))
