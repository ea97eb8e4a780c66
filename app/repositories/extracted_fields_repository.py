"""Repository for typed records produced by field extraction."""

from datetime import date
from typing import Any, Dict, Optional, Type
from uuid import UUID

from sqlalchemy import Date, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import Base
from app.core.exceptions import DatabaseError
from app.database.models import ExtractedCommunication, ExtractedContract, ExtractedInvoice, ExtractedMinutes
from app.models.document_models import DocumentType
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

RECORD_MODELS: Dict[DocumentType, Type[Base]] = {
    DocumentType.ACTA: ExtractedMinutes,
    DocumentType.FACTURA: ExtractedInvoice,
    DocumentType.CONTRATO: ExtractedContract,
    DocumentType.COMUNICADO: ExtractedCommunication,
}


class ExtractedFieldsRepository:
    """Replace-by-document persistence for the typed extraction tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def replace(
        self,
        document_type: DocumentType,
        document_id: UUID,
        organization_id: UUID,
        record: Dict[str, Any],
    ) -> Optional[Base]:
        """Delete any earlier record of the document and insert the new one.

        Returns:
            The inserted row, or None when the type has no dedicated table
        """
        model = RECORD_MODELS.get(document_type)
        if model is None:
            return None

        columns = set(model.__table__.columns.keys()) - {"id", "document_id", "organization_id", "created_at"}
        try:
            await self.session.execute(delete(model).where(model.document_id == document_id))
            instance = model(
                document_id=document_id,
                organization_id=organization_id,
                **{key: _column_value(model, key, value) for key, value in record.items() if key in columns},
            )
            self.session.add(instance)
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(
                f"Failed to store {model.__tablename__} record: {e}",
                exc_info=True,
                extra={"document_id": str(document_id)},
            )
            raise DatabaseError(f"Failed to store {model.__tablename__} record", original_error=e) from e

    async def delete_all(self, document_id: UUID) -> None:
        """Drop the document's records from every typed table."""
        try:
            for model in RECORD_MODELS.values():
                await self.session.execute(delete(model).where(model.document_id == document_id))
        except SQLAlchemyError as e:
            LOGGER.error(f"Failed to delete extracted records: {e}", exc_info=True, extra={"document_id": str(document_id)})
            raise DatabaseError("Failed to delete extracted records", original_error=e) from e


def _column_value(model: Type[Base], key: str, value: Any) -> Any:
    # Records arrive JSON-shaped; Date columns need date objects
    if isinstance(value, str) and isinstance(model.__table__.columns[key].type, Date):
        try:
            # A timestamp keeps its calendar date
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            LOGGER.warning(
                f"Dropping unparseable {model.__tablename__}.{key} value",
                extra={"column": key, "value": value[:40]},
            )
            return None
    return value
