"""Repository for documents and their stage statuses."""

from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import InvalidStatusTransition, NotFound
from app.database.models import Document
from app.models.pipeline_models import PipelineStage, StageStatus, can_transition
from app.repositories.base_repository import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Document persistence with validated status writes."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def get_or_raise(self, document_id: UUID) -> Document:
        document = await self.get_by_id(document_id)
        if document is None:
            raise NotFound(f"Document {document_id} not found")
        return document

    async def list_for_community(self, community_id: UUID, limit: int = 100, offset: int = 0) -> List[Document]:
        return await self.get_all(
            skip=offset, limit=limit, filters={"community_id": community_id}, order_by="created_at"
        )

    @staticmethod
    def get_stage_status(document: Document, stage: PipelineStage) -> StageStatus:
        return StageStatus(getattr(document, stage.status_column))

    async def set_stage_status(
        self,
        document: Document,
        stage: PipelineStage,
        status: StageStatus,
        error: Optional[str] = None,
        **payload: Any,
    ) -> Document:
        """Write a stage status after checking the transition table.

        Args:
            document: Loaded document row
            stage: Stage whose status changes
            status: Target status
            error: Error message recorded on failure
            **payload: Stage output columns written in the same commit

        Returns:
            The updated document

        Raises:
            InvalidStatusTransition: If the write is not allowed
        """
        current = self.get_stage_status(document, stage)
        if not can_transition(current, status):
            raise InvalidStatusTransition(
                f"{stage.value}: {current.value} -> {status.value} is not allowed for document {document.id}"
            )

        setattr(document, stage.status_column, status.value)
        if status == StageStatus.FAILED:
            document.last_error = error
        for key, value in payload.items():
            if hasattr(document, key):
                setattr(document, key, value)

        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("writing stage status for", e) from e

        self.logger.debug(
            f"Document {document.id} {stage.value} -> {status.value}",
            extra={"document_id": str(document.id), "stage": stage.value},
        )
        return document

    async def reset_stages(self, document: Document, stages: Iterable[PipelineStage]) -> Document:
        """Return the given stages to pending; other stages are untouched."""
        for stage in stages:
            setattr(document, stage.status_column, StageStatus.PENDING.value)
        document.last_error = None

        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("resetting stages for", e) from e
        return document

    async def reload(self, document: Document) -> Document:
        """Discard the session's pending state and re-read the document row.

        A repository that failed mid-stage has rolled the session back, which
        expires every loaded instance; the row must be refreshed before its
        columns are read or written again.
        """
        try:
            await self.session.rollback()
            await self.session.refresh(document)
        except SQLAlchemyError as e:
            raise self._fail("reloading", e) from e
        return document

    async def find_by_hash(self, organization_id: UUID, file_hash: str) -> Optional[Document]:
        documents = await self.get_all(
            limit=1, filters={"organization_id": organization_id, "file_hash": file_hash}
        )
        return documents[0] if documents else None
