from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.core.auth import get_current_user
from app.dependencies import get_user_role_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.users import UserRolesUpdate
from app.services.user_role_service import UserRoleService
from app.utils.responses import create_api_response

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse,
    summary="List organization users with their roles",
    operation_id="list_users",
)
async def list_users(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    user_role_service: Annotated[UserRoleService, Depends(get_user_role_service)] = None,
) -> ApiResponse:
    users = await user_role_service.list_users(current_user)
    return create_api_response(data=users, message="Users retrieved successfully", request=request)


@router.get(
    "/community/{community_id}",
    response_model=ApiResponse,
    summary="List community members",
    operation_id="list_community_users",
)
async def list_community_users(
    request: Request,
    community_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    user_role_service: Annotated[UserRoleService, Depends(get_user_role_service)] = None,
) -> ApiResponse:
    users = await user_role_service.list_community_users(current_user, community_id)
    return create_api_response(data=users, message="Community users retrieved successfully", request=request)


@router.put(
    "/{user_id}/roles",
    response_model=ApiResponse,
    summary="Replace user roles",
    operation_id="set_user_roles",
)
async def set_user_roles(
    request: Request,
    user_id: UUID,
    body: UserRolesUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    user_role_service: Annotated[UserRoleService, Depends(get_user_role_service)] = None,
) -> ApiResponse:
    """Replace every role of a user in the caller's organization (admin only)."""
    roles = await user_role_service.set_roles(current_user, user_id, body.roles)
    return create_api_response(data=roles, message="User roles updated successfully", request=request)


@router.delete(
    "/{user_id}/roles",
    response_model=ApiResponse,
    summary="Revoke user roles",
    operation_id="revoke_user_roles",
)
async def revoke_user_roles(
    request: Request,
    user_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    user_role_service: Annotated[UserRoleService, Depends(get_user_role_service)] = None,
) -> ApiResponse:
    await user_role_service.revoke_roles(current_user, user_id)
    return create_api_response(data=None, message="User roles revoked successfully", request=request)
