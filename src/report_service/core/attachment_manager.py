"""
Attachment Manager

Core business logic for report attachments. Binaries go to the storage
provider first; the metadata row is only written once the upload succeeded,
so a row never references a URL that failed to upload.
"""

import logging
import re
import time
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.config.settings import settings
from report_service.core.exceptions import InvalidAttachment, UploadFailed
from report_service.core.ownership import OwnershipGuard
from report_service.infrastructure.database.models import AttachmentDB
from report_service.infrastructure.storage import StorageError, StorageProvider, get_storage_provider
from report_service.models.report import (
    DEFAULT_ATTACHMENT_DESCRIPTION,
    DEFAULT_ATTACHMENT_TITLE,
    NO_MEDIA_URL,
    Attachment,
    GeoPoint,
    MediaFile,
    MediaType,
)

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def to_attachment(attachment_db: AttachmentDB) -> Attachment:
    """Convert an attachment row into the domain model"""
    return Attachment(
        attachment_id=attachment_db.attachment_id,
        report_id=attachment_db.report_id,
        media_type=MediaType(attachment_db.media_type),
        title=attachment_db.title,
        description=attachment_db.description,
        media_url=attachment_db.media_url,
        location=GeoPoint(**attachment_db.location) if attachment_db.location else None,
        metadata=attachment_db.attachment_metadata,
        created_at=attachment_db.created_at,
        updated_at=attachment_db.updated_at
    )


class AttachmentManager:
    """Business logic for attachment management"""

    def __init__(
        self,
        storage: Optional[StorageProvider] = None,
        guard: Optional[OwnershipGuard] = None
    ):
        # Get storage provider from factory (deployment-neutral)
        self.storage = storage or get_storage_provider()
        self.guard = guard or OwnershipGuard()

    def _validate_file(self, media: MediaFile) -> None:
        """
        Validate media before upload

        Raises:
            InvalidAttachment: If validation fails
        """
        if media.size == 0:
            raise InvalidAttachment(f"Empty file: {media.filename}")

        if media.size > settings.max_file_size_bytes:
            raise InvalidAttachment(
                f"File too large: {media.size} bytes (max: {settings.max_file_size_mb}MB)"
            )

    def _build_key(self, media_type: MediaType, filename: str) -> str:
        """Storage key: {media_type}/{epoch_ms}-{filename without whitespace}"""
        safe_name = _WHITESPACE_RE.sub("_", filename or "upload")
        return f"{media_type.value}/{int(time.time() * 1000)}-{safe_name}"

    async def _upload(self, media: MediaFile, media_type: MediaType) -> str:
        self._validate_file(media)
        key = self._build_key(media_type, media.filename)

        try:
            return await self.storage.upload(
                file_stream=BytesIO(media.content),
                key=key,
                content_type=media.content_type
            )
        except StorageError as e:
            logger.error(f"Upload of {key} failed: {e}")
            raise UploadFailed(f"Failed to upload file: {media.filename}") from e

    async def _discard_blob(self, url: str) -> None:
        """Best-effort blob removal; failures leave an orphaned blob behind"""
        if not url or url == NO_MEDIA_URL:
            return
        if not await self.storage.delete(url):
            logger.warning(f"Could not delete blob {url}, leaving it orphaned")

    async def create_attachment(
        self,
        report_id: str,
        caller_id: Optional[str],
        media: Optional[MediaFile],
        media_type: MediaType,
        db: AsyncSession,
        title: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[GeoPoint] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Attachment:
        """
        Create an attachment on a report

        Args:
            report_id: Owning report
            caller_id: Local user id of the caller
            media: Binary payload (ignored for documents)
            media_type: Immutable media classification
            db: Database session
            title: Optional title (default "Untitled Attachment")
            description: Optional description (default "No description")
            location: Optional geographic point
            metadata: Optional opaque metadata

        Returns:
            The created attachment

        Raises:
            Unauthorized / NotFound: From the ownership guard
            InvalidAttachment: If media or metadata validation fails
            UploadFailed: If the blob store rejects the upload (no row is written)
        """
        # Lock the report so a concurrent delete cannot race the insert
        await self.guard.require_report(report_id, caller_id, db, for_update=True)

        if metadata is not None and not isinstance(metadata, dict):
            raise InvalidAttachment("metadata must be a JSON object")

        media_url = NO_MEDIA_URL
        if media is not None and media_type.carries_binary:
            media_url = await self._upload(media, media_type)

        now = datetime.utcnow()
        attachment_db = AttachmentDB(
            report_id=report_id,
            media_type=media_type,
            title=title or DEFAULT_ATTACHMENT_TITLE,
            description=description or DEFAULT_ATTACHMENT_DESCRIPTION,
            media_url=media_url,
            location=location.model_dump() if location else None,
            attachment_metadata=metadata,
            created_at=now,
            updated_at=now
        )
        db.add(attachment_db)
        await db.commit()

        logger.info(
            f"User {caller_id} created {media_type.value} attachment "
            f"{attachment_db.attachment_id} on report {report_id}"
        )
        return to_attachment(attachment_db)

    async def get_attachment(
        self,
        attachment_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> Attachment:
        attachment_db, _ = await self.guard.require_attachment(attachment_id, caller_id, db)
        return to_attachment(attachment_db)

    async def get_attachments(
        self,
        report_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> List[Attachment]:
        """All attachments of a report in creation order"""
        await self.guard.require_report(report_id, caller_id, db)

        stmt = (
            select(AttachmentDB)
            .where(AttachmentDB.report_id == report_id)
            .order_by(AttachmentDB.created_at, AttachmentDB.attachment_id)
        )
        result = await db.execute(stmt)
        return [to_attachment(a) for a in result.scalars().all()]

    async def get_attachment_counts_by_type(
        self,
        report_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> Dict[MediaType, int]:
        """Attachment count per media type, zero entries included"""
        await self.guard.require_report(report_id, caller_id, db)

        stmt = (
            select(AttachmentDB.media_type, func.count())
            .where(AttachmentDB.report_id == report_id)
            .group_by(AttachmentDB.media_type)
        )
        result = await db.execute(stmt)

        counts = {media_type: 0 for media_type in MediaType}
        for media_type, count in result.all():
            counts[MediaType(media_type)] = count
        return counts

    async def update_attachment_info(
        self,
        attachment_id: str,
        caller_id: Optional[str],
        db: AsyncSession,
        title: Optional[str] = None,
        description: Optional[str] = None
    ) -> Attachment:
        """Patch title and/or description; None leaves a field unchanged"""
        attachment_db, _ = await self.guard.require_attachment(attachment_id, caller_id, db)

        if title is not None:
            attachment_db.title = title
        if description is not None:
            attachment_db.description = description
        attachment_db.updated_at = datetime.utcnow()
        await db.commit()

        logger.info(f"Updated info of attachment {attachment_id}")
        return to_attachment(attachment_db)

    async def add_attachment_media(
        self,
        attachment_id: str,
        caller_id: Optional[str],
        media: MediaFile,
        db: AsyncSession
    ) -> Attachment:
        """
        Replace the binary of an attachment

        The new blob is uploaded before the record changes. If the upload fails
        the record keeps its previous URL; the previous blob is only removed
        once the new URL is committed.

        Raises:
            UploadFailed: If the blob store rejects the upload
        """
        attachment_db, _ = await self.guard.require_attachment(attachment_id, caller_id, db)

        media_type = MediaType(attachment_db.media_type)
        if not media_type.carries_binary:
            return to_attachment(attachment_db)

        previous_url = attachment_db.media_url
        attachment_db.media_url = await self._upload(media, media_type)
        attachment_db.updated_at = datetime.utcnow()
        await db.commit()

        await self._discard_blob(previous_url)

        logger.info(f"Replaced media of attachment {attachment_id}")
        return to_attachment(attachment_db)

    async def remove_attachment_media(
        self,
        attachment_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> Attachment:
        """Remove the binary of an attachment, keeping its metadata"""
        attachment_db, _ = await self.guard.require_attachment(attachment_id, caller_id, db)

        if not MediaType(attachment_db.media_type).carries_binary:
            return to_attachment(attachment_db)

        await self._discard_blob(attachment_db.media_url)

        attachment_db.media_url = NO_MEDIA_URL
        attachment_db.updated_at = datetime.utcnow()
        await db.commit()

        logger.info(f"Removed media of attachment {attachment_id}")
        return to_attachment(attachment_db)

    async def delete_attachment(
        self,
        attachment_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> None:
        """
        Delete an attachment

        The blob is removed first on a best-effort basis: a failed blob
        delete is logged and the record is deleted anyway.
        """
        attachment_db, _ = await self.guard.require_attachment(attachment_id, caller_id, db)

        await self._discard_blob(attachment_db.media_url)

        await db.delete(attachment_db)
        await db.commit()

        logger.info(f"User {caller_id} deleted attachment {attachment_id}")
