"""Health check API endpoints."""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Health check status")
    version: str = Field(..., description="Running application version")
    service: str = Field(..., description="Service name")
    database: str = Field(..., description="Database connectivity status")


@router.get(
    "/",
    response_model=HealthCheckResponse,
    summary="Health check endpoint",
    description="Check if the service is running and its database is reachable",
    operation_id="get_service_health_status",
)
async def health_check(request: Request) -> HealthCheckResponse:
    """Health check endpoint."""
    db_client = getattr(request.app.state, "db", None)
    db_status = "unavailable"
    if db_client is not None:
        db_health = await db_client.health_check()
        db_status = db_health["status"]

    return HealthCheckResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        database=db_status,
    )
