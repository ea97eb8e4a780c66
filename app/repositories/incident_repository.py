"""Repository for community incidents."""

from typing import Dict, List
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Incident
from app.repositories.base_repository import BaseRepository


class IncidentRepository(BaseRepository[Incident]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Incident)

    async def list_for_community(self, community_id: UUID, limit: int = 200, offset: int = 0) -> List[Incident]:
        """Incidents of a community, newest first."""
        try:
            result = await self.session.execute(
                select(Incident)
                .where(Incident.community_id == community_id)
                .order_by(Incident.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e

    async def count_by_status(self, community_id: UUID) -> Dict[str, int]:
        try:
            result = await self.session.execute(
                select(Incident.status, func.count())
                .where(Incident.community_id == community_id)
                .group_by(Incident.status)
            )
            return {status: count for status, count in result.all()}
        except SQLAlchemyError as e:
            raise self._fail("counting", e) from e
