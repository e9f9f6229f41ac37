"""Storage Provider Interface

Abstract base class defining the contract for blob storage implementations.
Supports both local filesystem (development/self-hosted) and S3 (enterprise/K8s).

The relational store only ever keeps the URL returned by upload(); every other
operation is addressed by that URL.
"""

from abc import ABC, abstractmethod
from typing import BinaryIO


class StorageError(Exception):
    """Raised when the blob store rejects a read or write"""


class StorageProvider(ABC):
    """Abstract storage provider interface for deployment-neutral blob storage."""

    @abstractmethod
    async def upload(
        self,
        file_stream: BinaryIO,
        key: str,
        content_type: str
    ) -> str:
        """Upload a blob and return the URL it can be retrieved from.

        Args:
            file_stream: Binary file stream
            key: Suggested object name (e.g., "picture/1731750000000-photo.jpg")
            content_type: MIME type (e.g., "image/jpeg")

        Returns:
            Stable URL of the stored blob

        Raises:
            StorageError: If upload fails
        """
        pass

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Delete a blob.

        Returns:
            True if deleted successfully, False otherwise (never raises)
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage backend is healthy and accessible.

        Returns:
            True if storage is healthy, False otherwise
        """
        pass
