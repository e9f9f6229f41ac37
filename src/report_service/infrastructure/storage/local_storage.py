"""Local Filesystem Storage Implementation

Async local blob storage for development and self-hosted deployments.
Uses aiofiles for non-blocking I/O to match S3Storage performance characteristics.
Blobs are served back by the static /media mount in main.py.
"""

import logging
import os
from pathlib import Path
from typing import BinaryIO

import aiofiles

from report_service.infrastructure.storage.provider import StorageError, StorageProvider

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536  # 64KB


class LocalStorage(StorageProvider):
    """Local filesystem storage provider for development and self-hosted deployments."""

    def __init__(self, base_path: str = None, public_base_url: str = None):
        """Initialize local storage provider.

        Args:
            base_path: Base directory for blob storage (default: ./data/media)
            public_base_url: URL prefix the blobs are served under
                (default: http://localhost:8005/media)
        """
        if not base_path:
            base_path = os.getenv("STORAGE_LOCAL_PATH", "./data/media")
        if not public_base_url:
            public_base_url = os.getenv("STORAGE_PUBLIC_BASE_URL", "http://localhost:8005/media")

        self.base_path = Path(base_path).resolve()
        self.public_base_url = public_base_url.rstrip("/")

        # Ensure directory exists on startup
        self.base_path.mkdir(parents=True, exist_ok=True)

        logger.info(f"Local storage initialized at: {self.base_path}")

    def _get_path(self, key: str) -> Path:
        """Get full filesystem path from storage key.

        Raises:
            StorageError: If path attempts directory traversal
        """
        # Security: Prevent directory traversal attacks (e.g., "../../etc/passwd")
        safe_path = (self.base_path / key).resolve()

        if not safe_path.is_relative_to(self.base_path):
            logger.error(f"Path traversal attempt detected: {key}")
            raise StorageError(f"Invalid storage key: {key}")

        return safe_path

    def _key_from_url(self, url: str) -> str:
        prefix = f"{self.public_base_url}/"
        if not url.startswith(prefix):
            raise StorageError(f"URL is not served by this storage: {url}")
        return url[len(prefix):]

    async def upload(
        self,
        file_stream: BinaryIO,
        key: str,
        content_type: str
    ) -> str:
        """Write blob to the local filesystem and return its public URL."""
        file_path = self._get_path(key)

        # Ensure subdirectories exist
        file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            file_stream.seek(0)

            async with aiofiles.open(file_path, 'wb') as out_file:
                while content := file_stream.read(CHUNK_SIZE):
                    await out_file.write(content)

        except OSError as e:
            logger.error(f"Local upload failed for {key}: {e}")
            raise StorageError(f"Local upload failed: {e}") from e

        logger.info(f"Uploaded blob to local storage: {file_path} ({content_type})")
        return f"{self.public_base_url}/{key}"

    async def delete(self, url: str) -> bool:
        """Delete blob from the local filesystem.

        Note:
            Attempts to clean up the empty media-type directory
        """
        try:
            file_path = self._get_path(self._key_from_url(url))
        except StorageError as e:
            logger.error(f"Cannot delete {url}: {e}")
            return False

        if not file_path.exists():
            logger.warning(f"Blob not found for deletion: {url}")
            return False

        try:
            os.remove(file_path)
            logger.info(f"Deleted blob from local storage: {file_path}")

            try:
                file_path.parent.rmdir()
            except OSError:
                # Directory not empty
                pass

            return True

        except OSError as e:
            logger.error(f"Failed to delete blob {url}: {e}")
            return False

    async def health_check(self) -> bool:
        """Check local storage health by verifying write access."""
        try:
            test_file = self.base_path / ".health_check"
            test_file.touch()
            test_file.unlink()

            logger.debug(f"Local storage health check passed: {self.base_path}")
            return True

        except OSError as e:
            logger.error(f"Local storage health check failed: {e}")
            return False
