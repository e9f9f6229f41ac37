"""Storage infrastructure module.

Provides deployment-neutral blob storage via the StorageProvider interface.
"""

from report_service.infrastructure.storage.factory import get_storage_provider, reset_storage_provider
from report_service.infrastructure.storage.provider import StorageError, StorageProvider
from report_service.infrastructure.storage.local_storage import LocalStorage
from report_service.infrastructure.storage.s3_storage import S3Storage
from report_service.infrastructure.storage.media_fetcher import MediaFetcher, MediaFetchError

__all__ = [
    "get_storage_provider",
    "reset_storage_provider",
    "StorageError",
    "StorageProvider",
    "LocalStorage",
    "S3Storage",
    "MediaFetcher",
    "MediaFetchError",
]
