"""Resolve API — POST /resolve.

Learn: The route stays thin. The body is validated by ResolveRequest, the
resolver does the work, errors surface through the app-level handlers
(400 validation, 500 store failure).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from client_service.db.engine import get_db
from client_service.schemas.common import ErrorResponse
from client_service.schemas.identity import ResolveRequest, ResolveResponse
from client_service.services.resolver import UNSET, IdentityResolver

router = APIRouter()


def _resolver(db: AsyncSession = Depends(get_db)) -> IdentityResolver:
    return IdentityResolver(db)


@router.post(
    "/resolve",
    response_model=ResolveResponse,
    summary="Resolve external org/user IDs to internal UUIDs (idempotent upsert)",
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def resolve(
    body: ResolveRequest,
    resolver: IdentityResolver = Depends(_resolver),
):
    resolution = await resolver.resolve(
        app_id=body.app_id,
        external_org_id=body.external_org_id,
        external_user_id=body.external_user_id,
        profile=body.profile(),
        org_name=body.org_name if "org_name" in body.model_fields_set else UNSET,
    )
    return ResolveResponse(
        org_id=resolution.org_id,
        user_id=resolution.user_id,
        org_created=resolution.org_created,
        user_created=resolution.user_created,
    )
