"""Storage gateway over Supabase Storage."""

from typing import Optional
from urllib.parse import quote

import httpx

from app.core.config import Settings
from app.core.exceptions import NotFound, TransportError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

NOT_FOUND_STATUSES = {400, 404}


class StorageService:
    """Fetch, store and remove files in a Supabase storage bucket.

    No retries are attempted here; a failed call surfaces immediately as
    ``NotFound`` or ``TransportError``.
    """

    def __init__(self, supabase_url: str, service_role_key: str, bucket: str = "documents", timeout: int = 60):
        self.url = supabase_url.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageService":
        return cls(
            supabase_url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
            bucket=settings.storage_bucket,
            timeout=settings.http_timeout,
        )

    def _object_url(self, path: str) -> str:
        return f"{self.base_api_url}/object/{self.bucket}/{quote(path.lstrip('/'))}"

    async def download(self, path: str) -> bytes:
        """Download a file.

        Args:
            path: Object path within the bucket

        Returns:
            Raw file bytes

        Raises:
            NotFound: If the object does not exist
            TransportError: On network or storage errors
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self._object_url(path), headers=self.headers)
        except httpx.HTTPError as e:
            LOGGER.error(f"Storage download failed: {e}", exc_info=True, extra={"path": path})
            raise TransportError(f"Storage download error: {e}", original_error=e) from e

        if response.status_code in NOT_FOUND_STATUSES:
            LOGGER.warning("Storage object not found", extra={"path": path, "status_code": response.status_code})
            raise NotFound(f"File not found in storage: {path}")
        if response.status_code != 200:
            LOGGER.error(
                f"Storage download failed: {response.text}",
                extra={"path": path, "status_code": response.status_code},
            )
            raise TransportError(f"Storage download failed with status {response.status_code}")

        LOGGER.debug("Downloaded file", extra={"path": path, "size_bytes": len(response.content)})
        return response.content

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Upload a file, overwriting any object already at the path.

        Returns:
            The stored object path
        """
        headers = {
            **self.headers,
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "true",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self._object_url(path), headers=headers, content=content)
        except httpx.HTTPError as e:
            LOGGER.error(f"Storage upload failed: {e}", exc_info=True, extra={"path": path})
            raise TransportError(f"Storage upload error: {e}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to upload file to Supabase: {response.text}",
                extra={"path": path, "status_code": response.status_code},
            )
            raise TransportError(f"Upload failed: {response.text}")
        return path

    async def remove(self, path: str) -> None:
        """Remove a file; a missing object is not an error."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.delete(self._object_url(path), headers=self.headers)
        except httpx.HTTPError as e:
            LOGGER.error(f"Storage remove failed: {e}", exc_info=True, extra={"path": path})
            raise TransportError(f"Storage remove error: {e}", original_error=e) from e

        if response.status_code not in (200, *NOT_FOUND_STATUSES):
            raise TransportError(f"Remove failed: {response.text}")
