"""API route modules."""

from fastapi import APIRouter

from teamspace.entrypoints.api.routes.audit import router as audit_router
from teamspace.entrypoints.api.routes.auth import router as auth_router
from teamspace.entrypoints.api.routes.documents import router as documents_router
from teamspace.entrypoints.api.routes.projects import router as projects_router
from teamspace.entrypoints.api.routes.teams import router as teams_router

# Create main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(auth_router)
api_router.include_router(teams_router)
api_router.include_router(projects_router)
api_router.include_router(documents_router)
api_router.include_router(audit_router)

__all__ = ["api_router"]
