"""Repository for document chunks."""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import DocumentChunk
from app.models.document_models import Chunk
from app.repositories.base_repository import BaseRepository


class ChunkRepository(BaseRepository[DocumentChunk]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentChunk)

    async def replace_chunks(self, document_id: UUID, chunks: List[Chunk]) -> int:
        """Delete earlier chunks of the document and insert the new ones in one commit."""
        try:
            await self.delete_where(commit=False, document_id=document_id)
            self.session.add_all(
                [
                    DocumentChunk(
                        document_id=document_id,
                        chunk_index=chunk.index,
                        content=chunk.content,
                        token_count=chunk.token_count,
                        start_char=chunk.start_char,
                        end_char=chunk.end_char,
                    )
                    for chunk in chunks
                ]
            )
            await self.session.commit()
            return len(chunks)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._fail("replacing chunks of", e) from e

    async def list_for_document(self, document_id: UUID) -> List[DocumentChunk]:
        try:
            result = await self.session.execute(
                select(DocumentChunk)
                .where(DocumentChunk.document_id == document_id)
                .order_by(DocumentChunk.chunk_index)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing chunks of", e) from e
