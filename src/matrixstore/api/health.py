"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
database is reachable. Redis only backs rate limiting, so its absence is
reported but does not degrade the status.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from matrixstore import __version__
from matrixstore.db.engine import Database, get_database
from matrixstore.db.transactions import STORE_ERRORS
from matrixstore.redis_client import ping_redis

router = APIRouter()


@router.get("/health")
async def health_check(database: Database = Depends(get_database)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except STORE_ERRORS as e:
        checks["database"] = f"error: {e.__class__.__name__}"

    checks["redis"] = "ok" if await ping_redis() else "unavailable"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
