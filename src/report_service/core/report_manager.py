"""
Report Manager

Core business logic for incident reports. Every operation takes the caller id
explicitly and goes through the ownership guard before touching data.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.config.settings import settings
from report_service.core.exceptions import HasAttachments, Unauthorized
from report_service.core.ownership import OwnershipGuard
from report_service.infrastructure.database.models import AttachmentDB, ReportDB
from report_service.models.report import (
    DEFAULT_REPORT_DESCRIPTION,
    DEFAULT_REPORT_TITLE,
    GeoPoint,
    Report,
)

logger = logging.getLogger(__name__)


def to_report(report_db: ReportDB) -> Report:
    """Convert a report row into the domain model"""
    return Report(
        report_id=report_db.report_id,
        user_id=report_db.user_id,
        title=report_db.title,
        description=report_db.description,
        tags=list(report_db.tags or []),
        location=GeoPoint(**report_db.location) if report_db.location else None,
        created_at=report_db.created_at,
        updated_at=report_db.updated_at
    )


def dedupe_tags(tag_lists: List[List[str]]) -> List[str]:
    """Flatten tag lists, dropping repeats while keeping first-seen order"""
    return list(dict.fromkeys(tag for tags in tag_lists for tag in tags))


class ReportManager:
    """Business logic for report management"""

    def __init__(self, guard: Optional[OwnershipGuard] = None):
        self.guard = guard or OwnershipGuard()

    async def _count_attachments(self, report_id: str, db: AsyncSession) -> int:
        stmt = select(func.count()).select_from(AttachmentDB).where(
            AttachmentDB.report_id == report_id
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    async def create_empty_report(self, caller_id: Optional[str], db: AsyncSession) -> str:
        """
        Create a report in the default empty state

        Returns:
            The new report id

        Raises:
            Unauthorized: If there is no caller identity
        """
        if not caller_id:
            raise Unauthorized()

        now = datetime.utcnow()
        report_db = ReportDB(
            user_id=caller_id,
            title=DEFAULT_REPORT_TITLE,
            description=DEFAULT_REPORT_DESCRIPTION,
            tags=[],
            created_at=now,
            updated_at=now
        )
        db.add(report_db)
        await db.commit()

        logger.info(f"User {caller_id} created report {report_db.report_id}")
        return report_db.report_id

    async def get_report(self, report_id: str, caller_id: Optional[str], db: AsyncSession) -> Report:
        """
        Get a report owned by the caller

        Raises:
            Unauthorized: If the caller is missing or is not the owner
            NotFound: If the report does not exist
        """
        report_db = await self.guard.require_report(report_id, caller_id, db)
        return to_report(report_db)

    async def list_reports(self, caller_id: Optional[str], db: AsyncSession) -> List[Report]:
        """List every report owned by the caller, newest first"""
        if not caller_id:
            raise Unauthorized()

        stmt = (
            select(ReportDB)
            .where(ReportDB.user_id == caller_id)
            .order_by(ReportDB.created_at.desc(), ReportDB.report_id)
        )
        result = await db.execute(stmt)
        return [to_report(r) for r in result.scalars().all()]

    async def update_report(
        self,
        report_id: str,
        caller_id: Optional[str],
        title: Optional[str],
        description: Optional[str],
        tags: List[str],
        db: AsyncSession
    ) -> Report:
        """
        Replace title, description and tags of a report

        Last write wins; the three fields are always overwritten together.
        """
        report_db = await self.guard.require_report(report_id, caller_id, db)

        report_db.title = title
        report_db.description = description
        report_db.tags = list(tags or [])
        report_db.updated_at = datetime.utcnow()
        await db.commit()

        logger.info(f"User {caller_id} updated report {report_id}")
        return to_report(report_db)

    async def delete_report(self, report_id: str, caller_id: Optional[str], db: AsyncSession) -> None:
        """
        Delete a report that has no attachments

        The report row is locked while attachments are counted so a concurrent
        attachment insert cannot slip in between the check and the delete.

        Raises:
            HasAttachments: If any attachment still references the report
        """
        await self.guard.require_report(report_id, caller_id, db, for_update=True)

        count = await self._count_attachments(report_id, db)
        if count > 0:
            await db.rollback()
            raise HasAttachments(report_id, count)

        await db.execute(delete(ReportDB).where(ReportDB.report_id == report_id))
        await db.commit()

        logger.info(f"User {caller_id} deleted report {report_id}")

    async def discard_empty_report(
        self,
        report_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> bool:
        """
        Delete a report abandoned in its default empty state

        Returns:
            True if the report was deleted, False if it held user edits

        Raises:
            HasAttachments: If any attachment still references the report
        """
        report_db = await self.guard.require_report(report_id, caller_id, db, for_update=True)

        count = await self._count_attachments(report_id, db)
        if count > 0:
            await db.rollback()
            raise HasAttachments(report_id, count)

        if not to_report(report_db).is_default_empty:
            await db.rollback()
            return False

        await db.execute(delete(ReportDB).where(ReportDB.report_id == report_id))
        await db.commit()

        logger.info(f"Discarded empty report {report_id}")
        return True

    async def get_recent_tags(self, caller_id: Optional[str], db: AsyncSession) -> List[str]:
        """Tags of the caller's most recently updated reports, de-duplicated"""
        if not caller_id:
            raise Unauthorized()

        stmt = (
            select(ReportDB.tags)
            .where(ReportDB.user_id == caller_id)
            .order_by(ReportDB.updated_at.desc())
            .limit(settings.recent_tags_report_limit)
        )
        result = await db.execute(stmt)
        return dedupe_tags([tags or [] for tags in result.scalars().all()])
