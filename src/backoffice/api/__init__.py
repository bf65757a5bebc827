"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Unlike a blanket include_router(dependencies=...) gate, auth is
declared per route here because most routers mix access levels: the
contact form is public while the rest of /inquiries is not, and
deletes need an admin where reads do not.
"""

from fastapi import APIRouter

from backoffice.api.activity import router as activity_router
from backoffice.api.auth import router as auth_router
from backoffice.api.clients import router as clients_router
from backoffice.api.health import router as health_router
from backoffice.api.inquiries import router as inquiries_router
from backoffice.api.projects import router as projects_router
from backoffice.api.settings import router as settings_router
from backoffice.api.setup import router as setup_router
from backoffice.api.users import router as users_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(setup_router, tags=["setup"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(clients_router, tags=["clients"])
api_router.include_router(inquiries_router, tags=["inquiries"])
api_router.include_router(projects_router, tags=["projects"])
api_router.include_router(settings_router, tags=["settings"])
api_router.include_router(activity_router, tags=["activity"])
