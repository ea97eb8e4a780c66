"""Role-based permission checks.

Roles are ranked admin > manager > resident. A role row without a community
is a global grant; an admin row grants everything regardless of scope. Rows
are read fresh on every check.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthFailed, Forbidden
from app.database.models import Community, UserRole
from app.repositories.community_repository import CommunityRepository
from app.repositories.user_role_repository import UserRoleRepository
from app.schemas.auth import CurrentUser
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    RESIDENT = "resident"

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]


ROLE_RANK = {Role.RESIDENT: 1, Role.MANAGER: 2, Role.ADMIN: 3}


def role_grants(row: UserRole, required: Role, community_id: Optional[UUID] = None) -> bool:
    """Check whether one role row satisfies a requirement.

    Args:
        row: Role row of the caller
        required: Minimum role
        community_id: Community the action targets, if any

    Returns:
        True if the row grants the requirement
    """
    role = Role(row.role)
    if role == Role.ADMIN:
        return True
    if role.rank < required.rank:
        return False
    if community_id is None or row.community_id is None:
        return True
    return row.community_id == community_id


@dataclass
class PermissionGrant:
    """Result of a successful permission check."""

    user: CurrentUser
    roles: List[UserRole] = field(default_factory=list)

    @property
    def user_id(self) -> UUID:
        return UUID(self.user.id)

    @property
    def organization_id(self) -> Optional[UUID]:
        return self.roles[0].organization_id if self.roles else None

    @property
    def is_admin(self) -> bool:
        return any(row.role == Role.ADMIN.value for row in self.roles)


class PermissionService:
    def __init__(self, session: AsyncSession):
        self.user_roles = UserRoleRepository(session)
        self.communities = CommunityRepository(session)

    async def get_user_roles(self, user_id: UUID) -> List[UserRole]:
        return await self.user_roles.list_for_user(user_id)

    async def has_permission(self, user_id: UUID, role: Role, community_id: Optional[UUID] = None) -> bool:
        rows = await self.get_user_roles(user_id)
        return any(role_grants(row, Role(role), community_id) for row in rows)

    async def require_permission(
        self,
        user: Optional[CurrentUser],
        role: Role,
        community_id: Optional[UUID] = None,
        redirect_to: str = "/dashboard",
    ) -> PermissionGrant:
        """Require a minimum role, optionally scoped to a community.

        Args:
            user: Authenticated caller, or None
            role: Minimum role
            community_id: Community the action targets
            redirect_to: Page the caller is sent to when denied

        Returns:
            PermissionGrant with the caller's granting rows

        Raises:
            AuthFailed: If there is no authenticated caller
            Forbidden: If no role row grants the requirement
        """
        if user is None:
            raise AuthFailed("Authentication required")

        role = Role(role)
        rows = await self.get_user_roles(UUID(user.id))
        granting = [row for row in rows if role_grants(row, role, community_id)]
        if not granting:
            LOGGER.warning(
                f"Permission denied for user {user.id}: requires {role.value}",
                extra={"user_id": user.id, "community_id": str(community_id) if community_id else None},
            )
            raise Forbidden(
                f"Requires role {role.value}",
                redirect_to=f"{redirect_to}?error=insufficient_permissions",
            )
        return PermissionGrant(user=user, roles=granting)

    async def is_admin(self, user_id: UUID) -> bool:
        return await self.has_permission(user_id, Role.ADMIN)

    async def can_access_community(self, user_id: UUID, community_id: UUID) -> bool:
        return await self.has_permission(user_id, Role.RESIDENT, community_id)

    async def get_accessible_communities(self, user_id: UUID) -> List[Community]:
        """Admins see every community; others see their scoped ones, ordered by name."""
        rows = await self.get_user_roles(user_id)
        if any(row.role == Role.ADMIN.value for row in rows):
            return await self.communities.list_all_ordered()
        return await self.communities.list_by_ids({row.community_id for row in rows if row.community_id})
