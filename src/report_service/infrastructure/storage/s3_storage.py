"""S3/MinIO Storage Implementation

Production-ready S3-compatible blob storage using aioboto3 for non-blocking async I/O.
Supports AWS S3 and self-hosted MinIO for enterprise deployments.
"""

import logging
import os
from typing import BinaryIO

import aioboto3
from botocore.exceptions import ClientError

from report_service.infrastructure.storage.provider import StorageError, StorageProvider

logger = logging.getLogger(__name__)


class S3Storage(StorageProvider):
    """S3/MinIO storage provider for production Kubernetes deployments.

    Objects are addressed by their public URL, so the bucket must be readable
    by whoever fetches attachment media (browsers, the export assembler).
    """

    def __init__(
        self,
        bucket_name: str = None,
        region: str = None,
        endpoint_url: str = None,
        access_key: str = None,
        secret_key: str = None,
        public_base_url: str = None
    ):
        """Initialize S3 storage provider.

        Args:
            bucket_name: S3 bucket name (required)
            region: AWS region (default: us-east-1)
            endpoint_url: Custom S3 endpoint for MinIO/LocalStack (optional)
            access_key: AWS access key ID (optional, falls back to env)
            secret_key: AWS secret access key (optional, falls back to env)
            public_base_url: URL prefix objects are reachable under (optional,
                derived from endpoint/bucket/region when omitted)

        Raises:
            ValueError: If bucket_name is not provided
        """
        self.bucket_name = bucket_name or os.getenv("S3_BUCKET_NAME")
        self.region = region or os.getenv("S3_REGION", "us-east-1")
        self.endpoint_url = endpoint_url or os.getenv("S3_ENDPOINT_URL")
        self.access_key = access_key or os.getenv("AWS_ACCESS_KEY_ID")
        self.secret_key = secret_key or os.getenv("AWS_SECRET_ACCESS_KEY")

        if not self.bucket_name:
            raise ValueError(
                "S3_BUCKET_NAME environment variable or bucket_name parameter is required"
            )

        public_base_url = public_base_url or os.getenv("S3_PUBLIC_BASE_URL")
        if not public_base_url:
            if self.endpoint_url:
                public_base_url = f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}"
            else:
                public_base_url = f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com"
        self.public_base_url = public_base_url.rstrip("/")

        self.session = aioboto3.Session(
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region
        )

        logger.info(
            f"S3 storage initialized - bucket: {self.bucket_name}, "
            f"region: {self.region}, "
            f"endpoint: {self.endpoint_url or 'AWS'}"
        )

    def _client(self):
        return self.session.client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url
        )

    def _key_from_url(self, url: str) -> str:
        prefix = f"{self.public_base_url}/"
        if not url.startswith(prefix):
            raise StorageError(f"URL is not served by bucket {self.bucket_name}: {url}")
        return url[len(prefix):]

    async def upload(
        self,
        file_stream: BinaryIO,
        key: str,
        content_type: str
    ) -> str:
        """Upload blob to the S3 bucket and return its public URL."""
        try:
            async with self._client() as s3:
                file_stream.seek(0)

                await s3.upload_fileobj(
                    file_stream,
                    self.bucket_name,
                    key,
                    ExtraArgs={"ContentType": content_type}
                )

        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(f"S3 upload failed (error: {error_code}): {e}")
            raise StorageError(f"S3 upload failed: {error_code}") from e
        except Exception as e:
            logger.error(f"S3 upload failed: {e}")
            raise StorageError(f"S3 upload failed: {e}") from e

        logger.info(f"Uploaded blob to S3: s3://{self.bucket_name}/{key}")
        return f"{self.public_base_url}/{key}"

    async def delete(self, url: str) -> bool:
        """Delete blob from S3.

        Note:
            S3 delete_object succeeds even if object doesn't exist
        """
        try:
            key = self._key_from_url(url)
            async with self._client() as s3:
                await s3.delete_object(Bucket=self.bucket_name, Key=key)
            logger.info(f"Deleted blob from S3: s3://{self.bucket_name}/{key}")
            return True

        except Exception as e:
            logger.error(f"S3 delete failed for {url}: {e}")
            return False

    async def health_check(self) -> bool:
        """Check S3 storage health by verifying bucket access."""
        try:
            async with self._client() as s3:
                await s3.list_objects_v2(Bucket=self.bucket_name, MaxKeys=1)
                logger.debug(f"S3 health check passed for bucket: {self.bucket_name}")
                return True

        except Exception as e:
            logger.error(f"S3 health check failed: {e}")
            return False
