"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter, so every task route is behind the session gate
without each handler having to remember it. Health and auth routers are
open; the few auth routes that need a session declare it themselves.
"""

from fastapi import APIRouter, Depends

from taskkeeper.api.auth import router as auth_router
from taskkeeper.api.health import router as health_router
from taskkeeper.api.tasks import router as tasks_router
from taskkeeper.auth.dependencies import get_current_identity

# All protected routers require a valid session
_auth = [Depends(get_current_identity)]

api_router = APIRouter()

# Open routes: no session required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a valid session cookie
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
