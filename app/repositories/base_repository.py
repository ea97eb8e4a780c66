from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DatabaseError
from app.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Base repository implementing common CRUD operations.

    Every method logs and wraps ``SQLAlchemyError`` in ``DatabaseError`` so
    callers only deal with the application error hierarchy.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        for field, value in (filters or {}).items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)
        return query

    def _fail(self, action: str, error: SQLAlchemyError) -> DatabaseError:
        self.logger.error(f"Error {action} {self.model.__name__}: {error}", exc_info=True)
        return DatabaseError(f"Failed {action} {self.model.__name__}", original_error=error)

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        """Get a record by its ID.

        Args:
            id: The UUID of the record

        Returns:
            The record if found, None otherwise
        """
        try:
            result = await self.session.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._fail("retrieving", e) from e

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 200,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[ModelType]:
        """Get all records with optional pagination, filtering and ordering.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            filters: Dictionary of field_name: value to filter by
            order_by: Column name to sort ascending by

        Returns:
            List of records
        """
        try:
            query = self._apply_filters(select(self.model), filters)
            if order_by and hasattr(self.model, order_by):
                query = query.order_by(getattr(self.model, order_by))
            result = await self.session.execute(query.offset(skip).limit(limit))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e

    async def create(self, **kwargs) -> ModelType:
        """Create and commit a new record."""
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("creating", e) from e

    async def update(self, id: UUID, **kwargs) -> Optional[ModelType]:
        """Update an existing record.

        Args:
            id: The UUID of the record to update
            **kwargs: Fields and values to update

        Returns:
            The updated record if found, None otherwise
        """
        try:
            instance = await self.get_by_id(id)
            if not instance:
                return None

            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)

            if hasattr(instance, "updated_at"):
                setattr(instance, "updated_at", datetime.now(timezone.utc))

            await self.session.flush()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("updating", e) from e

    async def delete(self, id: UUID) -> bool:
        """Delete a record by ID.

        Returns:
            True if deleted, False if not found
        """
        try:
            instance = await self.get_by_id(id)
            if not instance:
                return False
            await self.session.delete(instance)
            await self.session.flush()
            await self.session.commit()
            return True
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("deleting", e) from e

    async def delete_where(self, commit: bool = True, **filters) -> int:
        """Delete every record matching the filters and return the row count."""
        try:
            result = await self.session.execute(self._apply_filters(delete(self.model), filters))
            if commit:
                await self.session.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("bulk deleting", e) from e

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count records matching filters."""
        try:
            query = self._apply_filters(select(func.count()).select_from(self.model), filters)
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise self._fail("counting", e) from e
