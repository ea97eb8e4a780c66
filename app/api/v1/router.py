from fastapi import APIRouter

from app.api.v1.endpoints import communities, documents, incidents, users

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(communities.router, prefix="/communities", tags=["Communities"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(incidents.router, prefix="/incidents", tags=["Incidents"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])

__all__ = ["api_router"]
