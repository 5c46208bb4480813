"""Provider sync API — Bearer-authenticated, single-tenant mode.

- POST /orgs/sync → upsert the org from the session's org claim
- POST /users/sync → fetch the provider profile and upsert the user
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.auth.dependencies import CurrentIdentity, get_current_identity
from client_service.auth.provider import IdentityProvider, get_identity_provider
from client_service.db.engine import get_db
from client_service.schemas.common import ErrorResponse
from client_service.schemas.identity import (
    OrgRead,
    OrgSyncResponse,
    UserRead,
    UserSyncResponse,
)
from client_service.services.sync_service import SyncService

router = APIRouter()


def _svc(
    db: AsyncSession = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> SyncService:
    return SyncService(db, provider)


@router.post(
    "/orgs/sync",
    response_model=OrgSyncResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def sync_org(
    identity: CurrentIdentity = Depends(get_current_identity),
    svc: SyncService = Depends(_svc),
):
    org, created = await svc.sync_org(identity)
    return OrgSyncResponse(org=OrgRead.model_validate(org), created=created)


@router.post(
    "/users/sync",
    response_model=UserSyncResponse,
    responses={401: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def sync_user(
    identity: CurrentIdentity = Depends(get_current_identity),
    svc: SyncService = Depends(_svc),
):
    user, created = await svc.sync_user(identity)
    return UserSyncResponse(user=UserRead.model_validate(user), created=created)
