"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all matrix routes without
relying on each handler to remember it. Health and account routes are
open (no auth required).
"""

from fastapi import APIRouter, Depends

from matrixstore.api.auth import router as auth_router
from matrixstore.api.health import router as health_router
from matrixstore.api.matrices import router as matrices_router
from matrixstore.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid bearer token
api_router.include_router(matrices_router, tags=["matrices"], dependencies=_auth)
