"""Document management: upload, download, listing and deletion."""

import hashlib
import uuid
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, ValidationError
from app.database.models import Document, DocumentChunk
from app.models.pipeline_models import StageStatus
from app.repositories.chunk_repository import ChunkRepository
from app.repositories.community_repository import CommunityRepository
from app.repositories.document_repository import DocumentRepository
from app.repositories.extracted_fields_repository import ExtractedFieldsRepository
from app.schemas.auth import CurrentUser
from app.services.permission_service import PermissionService, Role
from app.services.storage_service import StorageService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"


def storage_path(organization_id: UUID, community_id: UUID, filename: str) -> str:
    """Object path of an uploaded file: ``{org}/{community}/{uuid}_{filename}``."""
    safe_name = filename.replace("/", "_").replace("\\", "_")
    return f"{organization_id}/{community_id}/{uuid.uuid4()}_{safe_name}"


class DocumentService:
    """Service for document business logic operations."""

    def __init__(self, db_session: AsyncSession, storage: StorageService):
        """Initialize service.

        Args:
            db_session: SQLAlchemy async session
            storage: Blob store holding the uploaded files
        """
        self.session = db_session
        self.repository = DocumentRepository(db_session)
        self.chunks = ChunkRepository(db_session)
        self.records = ExtractedFieldsRepository(db_session)
        self.communities = CommunityRepository(db_session)
        self.permissions = PermissionService(db_session)
        self.storage = storage

    async def get_document(self, user: CurrentUser, document_id: UUID) -> Document:
        """Load a document the caller may read.

        Raises:
            NotFound: If the document does not exist
            Forbidden: If the caller has no access to its community
        """
        document = await self.repository.get_or_raise(document_id)
        await self.permissions.require_permission(user, Role.RESIDENT, document.community_id)
        return document

    async def list_documents(
        self, user: CurrentUser, community_id: UUID, limit: int = 50, offset: int = 0
    ) -> List[Document]:
        await self.permissions.require_permission(user, Role.RESIDENT, community_id)
        return await self.repository.list_for_community(community_id, limit=limit, offset=offset)

    async def list_chunks(self, user: CurrentUser, document_id: UUID) -> List[DocumentChunk]:
        document = await self.get_document(user, document_id)
        return await self.chunks.list_for_document(document.id)

    async def download(self, user: CurrentUser, document_id: UUID) -> Tuple[Document, bytes]:
        """Fetch a document and its file bytes.

        Raises:
            NotFound: If the document or its stored file is missing
            TransportError: If the blob store fails
        """
        document = await self.get_document(user, document_id)
        content = await self.storage.download(document.file_path)
        return document, content

    async def upload(
        self,
        user: CurrentUser,
        community_id: UUID,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        level: int = 4,
    ) -> Document:
        """Store a file and create its document row with every stage pending.

        Args:
            user: Uploading user
            community_id: Community the document belongs to
            filename: Original filename
            content: File bytes
            content_type: MIME type reported by the client
            level: Processing level requested for the document

        Returns:
            The new document

        Raises:
            ValidationError: If the file is empty
            NotFound: If the community does not exist
            Forbidden: If the caller is not a member of the community
        """
        if not content:
            raise ValidationError("Uploaded file is empty")

        await self.permissions.require_permission(user, Role.RESIDENT, community_id)
        community = await self.communities.get_by_id(community_id)
        if community is None:
            raise NotFound(f"Community {community_id} not found")

        file_hash = hashlib.sha256(content).hexdigest()
        existing = await self.repository.find_by_hash(community.organization_id, file_hash)
        if existing is not None:
            LOGGER.info(
                f"File already uploaded as document {existing.id}",
                extra={"document_id": str(existing.id), "file_hash": file_hash},
            )

        path = storage_path(community.organization_id, community_id, filename)
        await self.storage.upload(path, content, content_type or PDF_MIME_TYPE)

        document = await self.repository.create(
            organization_id=community.organization_id,
            community_id=community_id,
            uploaded_by=UUID(user.id),
            filename=filename,
            file_path=path,
            file_size=len(content),
            file_hash=file_hash,
            mime_type=content_type or PDF_MIME_TYPE,
            processing_level=level,
            extraction_status=StageStatus.PENDING.value,
            classification_status=StageStatus.PENDING.value,
            metadata_status=StageStatus.PENDING.value,
            chunking_status=StageStatus.PENDING.value,
        )
        LOGGER.info(
            f"Uploaded document {document.id}",
            extra={"document_id": str(document.id), "size_bytes": len(content), "path": path},
        )
        return document

    async def delete_document(self, user: CurrentUser, document_id: UUID) -> None:
        """Remove the stored file, then the row with its chunks and extracted records.

        Raises:
            NotFound: If the document does not exist
            Forbidden: If the caller is not a manager of the community
        """
        document = await self.repository.get_or_raise(document_id)
        await self.permissions.require_permission(user, Role.MANAGER, document.community_id)

        await self.storage.remove(document.file_path)
        await self.records.delete_all(document.id)
        await self.repository.delete(document.id)
        LOGGER.info(f"Deleted document {document_id}", extra={"document_id": str(document_id)})
