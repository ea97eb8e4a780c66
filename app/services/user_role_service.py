"""Role management for the users of an organization.

Only admins read or change roles across the organization; managers can list
the members of their communities. Role writes revalidate the user pages and
the community pages, since community listings depend on the caller's roles.
"""

from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import PATHS_REVALIDATED, EventBus
from app.core.exceptions import ValidationError
from app.database.models import UserRole
from app.repositories.user_role_repository import UserRoleRepository
from app.schemas.auth import CurrentUser
from app.schemas.users import RoleAssignment, UserRolesResponse
from app.services.community_service import COMMUNITIES_PATH
from app.services.permission_service import PermissionService, Role
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

USERS_PATH = "/users"


def group_by_user(rows: List[UserRole]) -> List[UserRolesResponse]:
    grouped: Dict[UUID, List[RoleAssignment]] = defaultdict(list)
    for row in rows:
        grouped[row.user_id].append(RoleAssignment(role=Role(row.role), community_id=row.community_id))
    return [UserRolesResponse(user_id=user_id, roles=roles) for user_id, roles in grouped.items()]


class UserRoleService:
    def __init__(self, db_session: AsyncSession, bus: EventBus):
        self.repository = UserRoleRepository(db_session)
        self.permissions = PermissionService(db_session)
        self.bus = bus

    async def _revalidate(self, user_id: UUID) -> None:
        await self.bus.publish(
            PATHS_REVALIDATED, paths=[USERS_PATH, f"{USERS_PATH}/{user_id}", COMMUNITIES_PATH]
        )

    async def list_users(self, user: Optional[CurrentUser]) -> List[UserRolesResponse]:
        """Every user with a role in the caller's organization (admin only)."""
        grant = await self.permissions.require_permission(user, Role.ADMIN, redirect_to=USERS_PATH)
        if grant.organization_id is None:
            raise ValidationError("Caller has no organization")
        return group_by_user(await self.repository.list_for_organization(grant.organization_id))

    async def list_community_users(self, user: Optional[CurrentUser], community_id: UUID) -> List[UserRolesResponse]:
        await self.permissions.require_permission(user, Role.MANAGER, community_id, redirect_to=USERS_PATH)
        return group_by_user(await self.repository.list_for_community(community_id))

    async def set_roles(
        self, user: Optional[CurrentUser], target_user_id: UUID, roles: List[RoleAssignment]
    ) -> UserRolesResponse:
        """Replace every role of a user in the caller's organization.

        Args:
            user: Caller; must be an admin
            target_user_id: User whose roles are replaced
            roles: New role assignments; empty revokes all of them

        Returns:
            The user's roles after the write

        Raises:
            AuthFailed: If unauthenticated
            Forbidden: If the caller is not an admin
            ValidationError: If the caller would remove their own admin role
        """
        grant = await self.permissions.require_permission(user, Role.ADMIN, redirect_to=USERS_PATH)
        if grant.organization_id is None:
            raise ValidationError("Caller has no organization")
        if target_user_id == grant.user_id and not any(
            assignment.role == Role.ADMIN for assignment in roles
        ):
            raise ValidationError("Admins cannot remove their own admin role")

        rows = await self.repository.replace_for_user(
            target_user_id,
            grant.organization_id,
            [(assignment.role.value, assignment.community_id) for assignment in roles],
        )
        LOGGER.info(
            f"Set {len(rows)} roles for user {target_user_id}",
            extra={"target_user_id": str(target_user_id), "user_id": user.id},
        )
        await self._revalidate(target_user_id)
        return UserRolesResponse(
            user_id=target_user_id,
            roles=[RoleAssignment(role=Role(row.role), community_id=row.community_id) for row in rows],
        )

    async def revoke_roles(self, user: Optional[CurrentUser], target_user_id: UUID) -> None:
        await self.set_roles(user, target_user_id, [])
