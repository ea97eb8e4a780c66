"""Repository for role grants."""

from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import UserRole
from app.repositories.base_repository import BaseRepository


class UserRoleRepository(BaseRepository[UserRole]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserRole)

    async def list_for_user(self, user_id: UUID) -> List[UserRole]:
        """Fetch all role rows of a user straight from the database."""
        try:
            result = await self.session.execute(select(UserRole).where(UserRole.user_id == user_id))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing roles of", e) from e

    async def list_for_organization(self, organization_id: UUID) -> List[UserRole]:
        try:
            result = await self.session.execute(
                select(UserRole)
                .where(UserRole.organization_id == organization_id)
                .order_by(UserRole.user_id, UserRole.role)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e

    async def list_for_community(self, community_id: UUID) -> List[UserRole]:
        try:
            result = await self.session.execute(
                select(UserRole).where(UserRole.community_id == community_id).order_by(UserRole.role)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e

    async def replace_for_user(
        self,
        user_id: UUID,
        organization_id: UUID,
        grants: Iterable[Tuple[str, Optional[UUID]]],
    ) -> List[UserRole]:
        """Swap every role row of a user in the organization for ``grants`` in one commit.

        Args:
            user_id: User whose roles change
            organization_id: Organization the rows belong to
            grants: ``(role, community_id)`` pairs; empty revokes everything

        Returns:
            The inserted rows
        """
        try:
            await self.session.execute(
                delete(UserRole).where(
                    UserRole.user_id == user_id, UserRole.organization_id == organization_id
                )
            )
            rows = [
                UserRole(user_id=user_id, organization_id=organization_id, role=role, community_id=community_id)
                for role, community_id in grants
            ]
            self.session.add_all(rows)
            await self.session.commit()
            return rows
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("replacing roles of", e) from e
