from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import get_current_user
from app.dependencies import get_incident_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.incidents import IncidentAssign, IncidentCreate, IncidentStatusUpdate, IncidentUpdate
from app.services.incident_service import IncidentService
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse,
    summary="List community incidents",
    operation_id="list_incidents",
)
async def list_incidents(
    request: Request,
    community_id: UUID = Query(..., description="Community whose incidents are listed"),
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    incident_service: Annotated[IncidentService, Depends(get_incident_service)] = None,
) -> ApiResponse:
    incidents = await incident_service.list_incidents(current_user, community_id)
    return create_api_response(data=incidents, message="Incidents retrieved successfully", request=request)


@router.get(
    "/stats",
    response_model=ApiResponse,
    summary="Incident counts by status",
    operation_id="get_incident_stats",
)
async def get_incident_stats(
    request: Request,
    community_id: UUID = Query(..., description="Community whose incidents are counted"),
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    incident_service: Annotated[IncidentService, Depends(get_incident_service)] = None,
) -> ApiResponse:
    stats = await incident_service.get_stats(current_user, community_id)
    return create_api_response(data=stats, message="Incident statistics retrieved successfully", request=request)


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report incident",
    operation_id="create_incident",
)
async def create_incident(
    request: Request,
    body: IncidentCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    incident_service: Annotated[IncidentService, Depends(get_incident_service)] = None,
) -> ApiResponse:
    """Report an incident in a community the caller belongs to."""
    incident = await incident_service.create_incident(current_user, body)
    return create_api_response(data=incident, message="Incident created successfully", request=request)


@router.get(
    "/{incident_id}",
    response_model=ApiResponse,
    summary="Get incident",
    operation_id="get_incident",
)
async def get_incident(
    request: Request,
    incident_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    incident_service: Annotated[IncidentService, Depends(get_incident_service)] = None,
) -> ApiResponse:
    incident = await incident_service.get_incident(current_user, incident_id)
    return create_api_response(data=incident, message="Incident retrieved successfully", request=request)


@router.patch(
    "/{incident_id}",
    response_model=ApiResponse,
    summary="Update incident",
    operation_id="update_incident",
)
async def update_incident(
    request: Request,
    incident_id: UUID,
    body: IncidentUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    incident_service: Annotated[IncidentService, Depends(get_incident_service)] = None,
) -> ApiResponse:
    """Update title, description or priority (manager of the community)."""
    incident = await incident_service.update_incident(current_user, incident_id, body)
    return create_api_response(data=incident, message="Incident updated successfully", request=request)


@router.post(
    "/{incident_id}/assign",
    response_model=ApiResponse,
    summary="Assign incident",
    operation_id="assign_incident",
)
async def assign_incident(
    request: Request,
    incident_id: UUID,
    body: IncidentAssign,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    incident_service: Annotated[IncidentService, Depends(get_incident_service)] = None,
) -> ApiResponse:
    incident = await incident_service.assign_incident(current_user, incident_id, body.assignee_id)
    return create_api_response(data=incident, message="Incident assigned successfully", request=request)


@router.post(
    "/{incident_id}/status",
    response_model=ApiResponse,
    summary="Change incident status",
    operation_id="update_incident_status",
)
async def update_incident_status(
    request: Request,
    incident_id: UUID,
    body: IncidentStatusUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    incident_service: Annotated[IncidentService, Depends(get_incident_service)] = None,
) -> ApiResponse:
    incident = await incident_service.update_status(current_user, incident_id, body.status)
    return create_api_response(data=incident, message="Incident status updated successfully", request=request)


@router.delete(
    "/{incident_id}",
    response_model=ApiResponse,
    summary="Delete incident",
    operation_id="delete_incident",
)
async def delete_incident(
    request: Request,
    incident_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    incident_service: Annotated[IncidentService, Depends(get_incident_service)] = None,
) -> ApiResponse:
    await incident_service.delete_incident(current_user, incident_id)
    return create_api_response(data=None, message="Incident deleted successfully", request=request)
