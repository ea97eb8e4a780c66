"""Tests for document upload and deletion."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core.exceptions import Forbidden, NotFound, ValidationError
from app.database.models import Community, Document
from app.schemas.auth import CurrentUser
from app.services.document_service import DocumentService, storage_path

ORG_ID = uuid4()
COMMUNITY_ID = uuid4()


@pytest.fixture
def user():
    return CurrentUser(id=str(uuid4()))


@pytest.fixture
def storage():
    gateway = MagicMock()
    gateway.upload = AsyncMock(side_effect=lambda path, content, content_type: path)
    gateway.remove = AsyncMock()
    return gateway


@pytest.fixture
def service(storage):
    service = DocumentService(AsyncMock(), storage)
    service.permissions.require_permission = AsyncMock()
    return service


def test_storage_path_layout():
    path = storage_path(ORG_ID, COMMUNITY_ID, "actas/junio.pdf")
    org, community, name = path.split("/")

    assert (org, community) == (str(ORG_ID), str(COMMUNITY_ID))
    assert name.endswith("_actas_junio.pdf")


class TestUpload:
    @pytest.mark.asyncio
    async def test_creates_pending_document(self, service, storage, user):
        community = Community(id=COMMUNITY_ID, organization_id=ORG_ID, name="Sol")
        create = AsyncMock(side_effect=lambda **kwargs: Document(id=uuid4(), **kwargs))

        with patch.object(service.communities, "get_by_id", AsyncMock(return_value=community)), patch.object(
            service.repository, "find_by_hash", AsyncMock(return_value=None)
        ), patch.object(service.repository, "create", create):
            document = await service.upload(user, COMMUNITY_ID, "acta.pdf", b"%PDF-1.7", level=2)

        assert document.organization_id == ORG_ID
        assert document.processing_level == 2
        assert document.mime_type == "application/pdf"
        assert document.file_size == 8
        assert len(document.file_hash) == 64
        assert {
            document.extraction_status,
            document.classification_status,
            document.metadata_status,
            document.chunking_status,
        } == {"pending"}
        storage.upload.assert_awaited_once()
        assert storage.upload.await_args.args[0] == document.file_path

    @pytest.mark.asyncio
    async def test_empty_file_is_rejected(self, service, storage, user):
        with pytest.raises(ValidationError):
            await service.upload(user, COMMUNITY_ID, "acta.pdf", b"")
        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_community(self, service, storage, user):
        with patch.object(service.communities, "get_by_id", AsyncMock(return_value=None)):
            with pytest.raises(NotFound):
                await service.upload(user, COMMUNITY_ID, "acta.pdf", b"%PDF")
        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_member_is_forbidden(self, service, storage, user):
        service.permissions.require_permission.side_effect = Forbidden()

        with pytest.raises(Forbidden):
            await service.upload(user, COMMUNITY_ID, "acta.pdf", b"%PDF")
        storage.upload.assert_not_called()


class TestDelete:
    @pytest.mark.asyncio
    async def test_removes_file_records_and_row(self, service, storage, user):
        document = Document(
            id=uuid4(), organization_id=ORG_ID, community_id=COMMUNITY_ID, filename="a.pdf", file_path="o/c/a.pdf"
        )
        with patch.object(service.repository, "get_or_raise", AsyncMock(return_value=document)), patch.object(
            service.records, "delete_all", AsyncMock()
        ) as delete_records, patch.object(service.repository, "delete", AsyncMock(return_value=True)) as delete_row:
            await service.delete_document(user, document.id)

        storage.remove.assert_awaited_once_with("o/c/a.pdf")
        delete_records.assert_awaited_once_with(document.id)
        delete_row.assert_awaited_once_with(document.id)
        assert service.permissions.require_permission.await_args.args[1].value == "manager"
