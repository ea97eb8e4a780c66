"""Community management actions.

Every mutation checks the caller's role first and, on success, publishes
``paths.revalidated`` for the community pages so cached renderings are
evicted.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import PATHS_REVALIDATED, EventBus
from app.core.exceptions import NotFound, ValidationError
from app.core.page_cache import PageCache
from app.schemas.auth import CurrentUser
from app.schemas.communities import CommunityCreate, CommunityResponse, CommunityUpdate
from app.repositories.community_repository import CommunityRepository
from app.services.permission_service import PermissionService, Role
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

COMMUNITIES_PATH = "/communities"


def community_paths(community_id: Optional[UUID] = None) -> List[str]:
    """Page paths whose content depends on a community."""
    paths = [COMMUNITIES_PATH]
    if community_id is not None:
        paths.append(f"{COMMUNITIES_PATH}/{community_id}")
    return paths


class CommunityService:
    """Service for community CRUD with permission checks."""

    def __init__(self, db_session: AsyncSession, bus: EventBus, page_cache: Optional[PageCache] = None):
        """Initialize service.

        Args:
            db_session: SQLAlchemy async session
            bus: Application event bus used for page revalidation
            page_cache: Cache serving community listings
        """
        self.repository = CommunityRepository(db_session)
        self.permissions = PermissionService(db_session)
        self.bus = bus
        self.page_cache = page_cache

    async def _revalidate(self, community_id: Optional[UUID] = None) -> None:
        await self.bus.publish(PATHS_REVALIDATED, paths=community_paths(community_id))

    async def create_community(self, user: Optional[CurrentUser], data: CommunityCreate) -> CommunityResponse:
        """Create a community in the caller's organization.

        Raises:
            AuthFailed: If unauthenticated
            Forbidden: If the caller is not an admin
        """
        grant = await self.permissions.require_permission(user, Role.ADMIN, redirect_to=COMMUNITIES_PATH)
        if grant.organization_id is None:
            raise ValidationError("Caller has no organization")

        community = await self.repository.create(organization_id=grant.organization_id, **data.model_dump())
        LOGGER.info(
            f"Created community {community.id}",
            extra={"community_id": str(community.id), "user_id": user.id},
        )
        await self._revalidate(community.id)
        return CommunityResponse.model_validate(community)

    async def update_community(
        self, user: Optional[CurrentUser], community_id: UUID, data: CommunityUpdate
    ) -> CommunityResponse:
        """Update the fields set in ``data``.

        Raises:
            AuthFailed: If unauthenticated
            Forbidden: If the caller is not a manager of the community
            NotFound: If the community does not exist
        """
        await self.permissions.require_permission(
            user, Role.MANAGER, community_id, redirect_to=f"{COMMUNITIES_PATH}/{community_id}"
        )
        community = await self.repository.update(community_id, **data.model_dump(exclude_unset=True))
        if community is None:
            raise NotFound(f"Community {community_id} not found")

        LOGGER.info(f"Updated community {community_id}", extra={"community_id": str(community_id)})
        await self._revalidate(community_id)
        return CommunityResponse.model_validate(community)

    async def delete_community(self, user: Optional[CurrentUser], community_id: UUID) -> None:
        """Delete a community.

        Raises:
            AuthFailed: If unauthenticated
            Forbidden: If the caller is not an admin
            NotFound: If the community does not exist
        """
        await self.permissions.require_permission(user, Role.ADMIN, redirect_to=COMMUNITIES_PATH)
        if not await self.repository.delete(community_id):
            raise NotFound(f"Community {community_id} not found")

        LOGGER.info(f"Deleted community {community_id}", extra={"community_id": str(community_id)})
        await self._revalidate(community_id)

    async def list_communities(self, user: CurrentUser) -> List[CommunityResponse]:
        """Communities the caller can access, cached per user until revalidated."""
        user_id = UUID(user.id)

        async def load() -> List[CommunityResponse]:
            rows = await self.permissions.get_accessible_communities(user_id)
            return [CommunityResponse.model_validate(row) for row in rows]

        if self.page_cache is None:
            return await load()
        return await self.page_cache.get_or_load(COMMUNITIES_PATH, user.id, load)

    async def get_community(self, user: CurrentUser, community_id: UUID) -> CommunityResponse:
        await self.permissions.require_permission(user, Role.RESIDENT, community_id)
        community = await self.repository.get_by_id(community_id)
        if community is None:
            raise NotFound(f"Community {community_id} not found")
        return CommunityResponse.model_validate(community)
