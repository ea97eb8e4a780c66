"""Tests for the Supabase storage gateway."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.core.exceptions import NotFound, TransportError
from app.services.storage_service import StorageService


@pytest.fixture
def storage():
    return StorageService("https://project.supabase.test/", "service-key", bucket="documents")


class TestStorageService:
    def test_object_url_is_quoted(self, storage):
        assert (
            storage._object_url("/org/com/acta junio.pdf")
            == "https://project.supabase.test/storage/v1/object/documents/org/com/acta%20junio.pdf"
        )

    @pytest.mark.asyncio
    async def test_download_returns_bytes(self, storage):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=httpx.Response(200, content=b"%PDF"))):
            assert await storage.download("org/com/acta.pdf") == b"%PDF"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 404])
    async def test_download_missing_object(self, storage, status_code):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=httpx.Response(status_code))):
            with pytest.raises(NotFound):
                await storage.download("org/com/acta.pdf")

    @pytest.mark.asyncio
    async def test_download_server_error(self, storage):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=httpx.Response(500, text="boom"))):
            with pytest.raises(TransportError):
                await storage.download("org/com/acta.pdf")

    @pytest.mark.asyncio
    async def test_download_network_error(self, storage):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(side_effect=httpx.ConnectError("refused"))):
            with pytest.raises(TransportError):
                await storage.download("org/com/acta.pdf")

    @pytest.mark.asyncio
    async def test_upload_sets_upsert_header(self, storage):
        post = AsyncMock(return_value=httpx.Response(200))
        with patch.object(httpx.AsyncClient, "post", post):
            assert await storage.upload("org/com/acta.pdf", b"%PDF", "application/pdf") == "org/com/acta.pdf"

        headers = post.await_args.kwargs["headers"]
        assert headers["x-upsert"] == "true"
        assert headers["Content-Type"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_remove_ignores_missing_object(self, storage):
        with patch.object(httpx.AsyncClient, "delete", AsyncMock(return_value=httpx.Response(404))):
            await storage.remove("org/com/acta.pdf")
