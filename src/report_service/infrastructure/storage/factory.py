"""Storage Provider Factory

Factory pattern for deployment-neutral storage selection.
Chooses between local filesystem and S3 based on STORAGE_PROVIDER env var.
"""

import logging
import os
from typing import Optional

from report_service.infrastructure.storage.provider import StorageProvider
from report_service.infrastructure.storage.local_storage import LocalStorage
from report_service.infrastructure.storage.s3_storage import S3Storage

logger = logging.getLogger(__name__)

# Singleton instance to avoid recreating sessions
_storage_instance: Optional[StorageProvider] = None


def get_storage_provider() -> StorageProvider:
    """Get or create the global storage provider instance.

    Environment Variables:
        STORAGE_PROVIDER: "local" or "s3" (default: "local")

        For local storage:
            STORAGE_LOCAL_PATH: Base directory (default: "./data/media")
            STORAGE_PUBLIC_BASE_URL: URL prefix blobs are served under
                (default: "http://localhost:8005/media")

        For S3 storage:
            S3_BUCKET_NAME: S3 bucket name (required)
            S3_REGION: AWS region (default: "us-east-1")
            S3_ENDPOINT_URL: Custom endpoint for MinIO/LocalStack (optional)
            S3_PUBLIC_BASE_URL: Public URL prefix for objects (optional)
            AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY (optional, boto3 defaults)

    Example:
        ```
        # Self-hosted deployment (docker-compose)
        STORAGE_PROVIDER=local
        STORAGE_LOCAL_PATH=/data/media

        # MinIO
        STORAGE_PROVIDER=s3
        S3_BUCKET_NAME=incident-media
        S3_ENDPOINT_URL=http://minio:9000
        ```
    """
    global _storage_instance

    if _storage_instance is not None:
        return _storage_instance

    provider_type = os.getenv("STORAGE_PROVIDER", "local").lower()

    logger.info(f"Initializing storage provider: {provider_type}")

    if provider_type == "s3":
        bucket_name = os.getenv("S3_BUCKET_NAME")
        endpoint_url = os.getenv("S3_ENDPOINT_URL")

        _storage_instance = S3Storage(
            bucket_name=bucket_name,
            region=os.getenv("S3_REGION", "us-east-1"),
            endpoint_url=endpoint_url,
            access_key=os.getenv("AWS_ACCESS_KEY_ID"),
            secret_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            public_base_url=os.getenv("S3_PUBLIC_BASE_URL")
        )

        logger.info(
            f"S3 storage provider initialized: "
            f"bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS'}"
        )

    else:
        local_path = os.getenv("STORAGE_LOCAL_PATH", "./data/media")

        _storage_instance = LocalStorage(
            base_path=local_path,
            public_base_url=os.getenv("STORAGE_PUBLIC_BASE_URL")
        )

        logger.info(f"Local storage provider initialized: path={local_path}")

    return _storage_instance


def reset_storage_provider():
    """Reset the global storage provider instance.

    Used for testing or reconfiguration. Should not be called in production code.
    """
    global _storage_instance
    _storage_instance = None
    logger.warning("Storage provider instance reset")
