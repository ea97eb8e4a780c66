"""Repository for communities."""

from typing import Iterable, List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Community
from app.repositories.base_repository import BaseRepository


class CommunityRepository(BaseRepository[Community]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Community)

    async def list_by_ids(self, community_ids: Iterable[UUID]) -> List[Community]:
        ids = list(community_ids)
        if not ids:
            return []
        try:
            result = await self.session.execute(
                select(Community).where(Community.id.in_(ids)).order_by(Community.name)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e

    async def list_all_ordered(self) -> List[Community]:
        try:
            result = await self.session.execute(select(Community).order_by(Community.name))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e
