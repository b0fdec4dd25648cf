"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health and auth routers are open; admin and bulk
routers require an admin bearer token in the Authorization header. The
event stream does its own check because it also accepts ?token=.
"""

from fastapi import APIRouter, Depends

from campus_portal.api.admin import router as admin_router
from campus_portal.api.auth import router as auth_router
from campus_portal.api.bulk import router as bulk_router
from campus_portal.api.events import router as events_router
from campus_portal.api.health import router as health_router
from campus_portal.auth.dependencies import require_admin

_admin = [Depends(require_admin)]

api_router = APIRouter(prefix="/api/v1")

# Open routes (no auth)
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Admin routes: valid admin JWT required
api_router.include_router(admin_router, tags=["admin"], dependencies=_admin)
api_router.include_router(bulk_router, tags=["bulk"], dependencies=_admin)

# Event stream: header or query token, admin only
api_router.include_router(events_router, tags=["events"])
