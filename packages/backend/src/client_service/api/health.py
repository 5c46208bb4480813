"""Health check endpoint.

Learn: Verifies the server is up and the database answers. Always 200;
`status` says whether dependencies are healthy.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from client_service import __version__
from client_service.db.engine import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and database connectivity."""
    checks = {"service": "client-service", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "ok" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
