"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter, so every route of a tenant-facing router sits
behind the API key without repeating it per handler. The sync router
authenticates per route because it needs the resolved identity.
"""

from fastapi import APIRouter, Depends

from client_service.api.anonymous_orgs import router as anonymous_orgs_router
from client_service.api.anonymous_users import router as anonymous_users_router
from client_service.api.health import router as health_router
from client_service.api.resolve import router as resolve_router
from client_service.api.sync import router as sync_router
from client_service.api.users import router as users_router
from client_service.auth.dependencies import require_api_key

_api_key = [Depends(require_api_key)]

api_router = APIRouter()

# Open routes
api_router.include_router(health_router, tags=["health"])

# Tenant applications — shared API key
api_router.include_router(resolve_router, tags=["resolve"], dependencies=_api_key)
api_router.include_router(users_router, tags=["users"], dependencies=_api_key)
api_router.include_router(
    anonymous_users_router, tags=["anonymous-users"], dependencies=_api_key
)
api_router.include_router(
    anonymous_orgs_router, tags=["anonymous-orgs"], dependencies=_api_key
)

# Provider mode — Bearer token
api_router.include_router(sync_router, tags=["sync"])
