"""API tests for document routes."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.core.exceptions import Forbidden, NotFound, ProcessingInProgress, TransportError
from app.database.models import Document
from app.dependencies import get_document_service, get_orchestrator, get_permission_service
from app.main import app
from app.models.pipeline_models import PipelineRunResult
from app.api.v1.endpoints.documents import download_headers


@pytest.fixture
def document():
    return Document(
        id=uuid4(),
        organization_id=uuid4(),
        community_id=uuid4(),
        filename="acta junio.pdf",
        file_path="org/com/acta junio.pdf",
        file_hash="abc123",
        processing_level=4,
        extraction_status="completed",
        classification_status="completed",
        metadata_status="completed",
        chunking_status="completed",
    )


@pytest.fixture
def document_service(document):
    service = MagicMock()
    service.get_document = AsyncMock(return_value=document)
    service.download = AsyncMock(return_value=(document, b"%PDF-1.7"))
    app.dependency_overrides[get_document_service] = lambda: service
    return service


@pytest.fixture
def permission_service():
    service = MagicMock()
    service.require_permission = AsyncMock()
    app.dependency_overrides[get_permission_service] = lambda: service
    return service


@pytest.fixture
def orchestrator():
    pipeline = MagicMock()
    app.dependency_overrides[get_orchestrator] = lambda: pipeline
    return pipeline


class TestDownloadHeaders:
    def test_attachment_with_encoded_name(self):
        headers = download_headers("acta junio.pdf", "abc123", 8, inline=False)

        assert headers["Content-Type"] == "application/pdf"
        assert headers["Content-Disposition"] == 'attachment; filename="acta%20junio.pdf"'
        assert headers["Content-Length"] == "8"
        assert headers["Cache-Control"] == "public, max-age=31536000"
        assert headers["ETag"] == '"abc123"'

    @pytest.mark.parametrize(
        "filename, encoded",
        [
            ("acta (1).pdf", "acta%20(1).pdf"),
            ("presupuesto_2024!.pdf", "presupuesto_2024!.pdf"),
            ("l'escala*.pdf", "l'escala*.pdf"),
            ("factura nº 3/2024.pdf", "factura%20n%C2%BA%203%2F2024.pdf"),
        ],
    )
    def test_filename_escaping_matches_browser_encoding(self, filename, encoded):
        headers = download_headers(filename, None, 1, inline=False)

        assert headers["Content-Disposition"] == f'attachment; filename="{encoded}"'

    def test_inline_without_hash(self):
        headers = download_headers("plano.dwg", None, 1, inline=True)

        assert headers["Content-Type"] == "application/octet-stream"
        assert headers["Content-Disposition"].startswith("inline;")
        assert "ETag" not in headers


class TestDownloadRoute:
    def test_returns_file(self, test_client, authenticated, document, document_service):
        response = test_client.get(f"/api/v1/documents/{document.id}/download?view=inline")

        assert response.status_code == 200
        assert response.content == b"%PDF-1.7"
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == 'inline; filename="acta%20junio.pdf"'
        assert response.headers["etag"] == '"abc123"'

    def test_missing_file_is_404(self, test_client, authenticated, document, document_service):
        document_service.download.side_effect = NotFound("File not found in storage: org/com/acta junio.pdf")

        response = test_client.get(f"/api/v1/documents/{document.id}/download")

        assert response.status_code == 404
        assert response.json()["detail"]["title"] == "Document Not Found"

    def test_storage_failure_is_500(self, test_client, authenticated, document, document_service):
        document_service.download.side_effect = TransportError("Storage download failed with status 502")

        response = test_client.get(f"/api/v1/documents/{document.id}/download")

        assert response.status_code == 500
        assert response.json()["detail"]["detail"] == "Failed to download file"


class TestDocumentRoutes:
    def test_get_document(self, test_client, authenticated, document, document_service):
        response = test_client.get(f"/api/v1/documents/{document.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is True
        assert body["data"]["filename"] == "acta junio.pdf"
        assert body["data"]["chunking_status"] == "completed"

    def test_forbidden_maps_to_403(self, test_client, authenticated, document, document_service):
        document_service.get_document.side_effect = Forbidden()

        response = test_client.get(f"/api/v1/documents/{document.id}")

        assert response.status_code == 403

    def test_process_reports_halted_run(self, test_client, authenticated, document, document_service, orchestrator):
        orchestrator.process = AsyncMock(
            return_value=PipelineRunResult(
                document_id=document.id, level=2, success=False, failed_stage="classification", error="timeout"
            )
        )

        response = test_client.post(f"/api/v1/documents/{document.id}/process", json={"level": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is False
        assert body["data"]["failed_stage"] == "classification"
        orchestrator.process.assert_awaited_once_with(document.id, 2, use_ai=True)

    def test_invalid_level_is_rejected(self, test_client, authenticated, document, document_service, orchestrator):
        response = test_client.post(f"/api/v1/documents/{document.id}/process", json={"level": 5})

        assert response.status_code == 422

    def test_reprocess_while_running_is_409(
        self, test_client, authenticated, document, document_service, permission_service, orchestrator
    ):
        orchestrator.reprocess = AsyncMock(side_effect=ProcessingInProgress("classification is running"))

        response = test_client.post(f"/api/v1/documents/{document.id}/reprocess", json={"level": 4})

        assert response.status_code == 409
        assert response.json()["detail"]["detail"] == "classification is running"
        permission_service.require_permission.assert_awaited_once()

    def test_reprocess_force(self, test_client, authenticated, document, document_service, permission_service, orchestrator):
        orchestrator.reprocess = AsyncMock(
            return_value=PipelineRunResult(document_id=document.id, level=1, success=True, completed_steps=1)
        )

        response = test_client.post(
            f"/api/v1/documents/{document.id}/reprocess", json={"level": 1, "force": True, "use_ai": False}
        )

        assert response.status_code == 200
        orchestrator.reprocess.assert_awaited_once_with(document.id, 1, use_ai=False, force=True)
