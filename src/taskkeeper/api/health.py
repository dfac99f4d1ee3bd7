"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and that
its dependencies are reachable. PostgreSQL is required; Redis only backs
rate limiting, so a missing Redis does not make the service unhealthy.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from taskkeeper import __version__
from taskkeeper.container import Container, get_container

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, container: Container = Depends(get_container)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check Postgres
    if container.engine is None:
        checks["database"] = "memory"
    else:
        try:
            async with container.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as e:
            checks["database"] = f"error: {e}"

    # Check Redis
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"

    status = "healthy" if checks["database"] in ("ok", "memory") else "degraded"
    return {"status": status, **checks}
