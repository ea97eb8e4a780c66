"""Repository for AI prompt templates."""

from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import PromptTemplate
from app.repositories.base_repository import BaseRepository


class PromptRepository(BaseRepository[PromptTemplate]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, PromptTemplate)

    async def get_active(self, name: str) -> Optional[PromptTemplate]:
        """Get the active template for a name, newest version first."""
        try:
            result = await self.session.execute(
                select(PromptTemplate)
                .where(PromptTemplate.name == name, PromptTemplate.is_active.is_(True))
                .order_by(PromptTemplate.version.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._fail("retrieving active", e) from e

    async def find_active_duplicates(self) -> Dict[str, List[PromptTemplate]]:
        """Group active templates by name, keeping only names with more than one row.

        Rows in each group are ordered newest first.
        """
        try:
            result = await self.session.execute(
                select(PromptTemplate)
                .where(PromptTemplate.is_active.is_(True))
                .order_by(PromptTemplate.name, PromptTemplate.version.desc(), PromptTemplate.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise self._fail("scanning", e) from e

        groups: Dict[str, List[PromptTemplate]] = defaultdict(list)
        for template in result.scalars().all():
            groups[template.name].append(template)
        return {name: rows for name, rows in groups.items() if len(rows) > 1}

    async def publish(
        self,
        name: str,
        template: str,
        variables: List[str],
        category: Optional[str] = None,
        document_type: Optional[str] = None,
    ) -> PromptTemplate:
        """Store a new active version and deactivate older ones of the same name."""
        try:
            result = await self.session.execute(
                select(PromptTemplate).where(PromptTemplate.name == name).order_by(PromptTemplate.version.desc())
            )
            existing = list(result.scalars().all())
            for row in existing:
                row.is_active = False
            # Deactivations must hit the partial unique index before the insert
            await self.session.flush()

            instance = PromptTemplate(
                name=name,
                version=(existing[0].version + 1) if existing else 1,
                template=template,
                variables=variables,
                category=category,
                document_type=document_type,
                is_active=True,
            )
            self.session.add(instance)
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("publishing", e) from e
