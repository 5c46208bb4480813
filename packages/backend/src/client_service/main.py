"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (the database pool).
Middleware, CORS, exception handlers and routers are all registered here.

Every error leaves the service as `{"error": "...", "details": ...}`:
domain errors carry their own status, request-shape failures become 400
with pydantic's field-level detail, HTTPException keeps its status.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from client_service import __version__
from client_service.api import api_router
from client_service.config import settings
from client_service.errors import ClientServiceError

logger = structlog.get_logger()

_VALIDATION_MESSAGES = {
    "body": "Invalid request body",
    "query": "Invalid query parameters",
    "path": "Invalid parameters",
    "header": "Invalid headers",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "client_service.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )
    if not settings.api_key:
        logger.warning("client_service.api_key_missing")

    yield

    logger.info("client_service.shutdown")

    from client_service.db.engine import engine
    await engine.dispose()


async def client_service_error_handler(request: Request, exc: ClientServiceError):
    if exc.status_code >= 500:
        logger.error("request.failed", error=exc.message, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    location = errors[0]["loc"][0] if errors and errors[0].get("loc") else "body"
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in errors
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": _VALIDATION_MESSAGES.get(location, "Invalid request"),
            "details": details,
        },
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Client Service",
        description="Resolves tenant applications' external org/user IDs to internal UUIDs",
        version=__version__,
        lifespan=lifespan,
    )

    from client_service.middleware.request_context import RequestContextMiddleware

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClientServiceError, client_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: client_service.main:app)
app = create_app()
