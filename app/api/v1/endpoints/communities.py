from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from app.core.auth import get_current_user
from app.dependencies import get_community_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.communities import CommunityCreate, CommunityUpdate
from app.services.community_service import CommunityService
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse,
    summary="List accessible communities",
    operation_id="list_communities",
)
async def list_communities(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    community_service: Annotated[CommunityService, Depends(get_community_service)] = None,
) -> ApiResponse:
    communities = await community_service.list_communities(current_user)
    return create_api_response(data=communities, message="Communities retrieved successfully", request=request)


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create community",
    operation_id="create_community",
)
async def create_community(
    request: Request,
    body: CommunityCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    community_service: Annotated[CommunityService, Depends(get_community_service)] = None,
) -> ApiResponse:
    """Create a community in the caller's organization (admin only)."""
    community = await community_service.create_community(current_user, body)
    return create_api_response(data=community, message="Community created successfully", request=request)


@router.get(
    "/{community_id}",
    response_model=ApiResponse,
    summary="Get community",
    operation_id="get_community",
)
async def get_community(
    request: Request,
    community_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    community_service: Annotated[CommunityService, Depends(get_community_service)] = None,
) -> ApiResponse:
    community = await community_service.get_community(current_user, community_id)
    return create_api_response(data=community, message="Community retrieved successfully", request=request)


@router.patch(
    "/{community_id}",
    response_model=ApiResponse,
    summary="Update community",
    operation_id="update_community",
)
async def update_community(
    request: Request,
    community_id: UUID,
    body: CommunityUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    community_service: Annotated[CommunityService, Depends(get_community_service)] = None,
) -> ApiResponse:
    """Update a community (manager of the community or admin)."""
    community = await community_service.update_community(current_user, community_id, body)
    return create_api_response(data=community, message="Community updated successfully", request=request)


@router.delete(
    "/{community_id}",
    response_model=ApiResponse,
    summary="Delete community",
    operation_id="delete_community",
)
async def delete_community(
    request: Request,
    community_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    community_service: Annotated[CommunityService, Depends(get_community_service)] = None,
) -> ApiResponse:
    await community_service.delete_community(current_user, community_id)
    return create_api_response(data=None, message="Community deleted successfully", request=request)
