"""
Ownership Guard

Resolves reports and attachments for a caller and enforces that the caller
owns the report involved. Rows are re-read on every call.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.core.exceptions import NotFound, Unauthorized
from report_service.infrastructure.database.models import AttachmentDB, ReportDB

logger = logging.getLogger(__name__)


class OwnershipGuard:
    """Report ownership checks shared by the report, attachment and export paths"""

    async def _find_report(
        self,
        report_id: str,
        db: AsyncSession,
        for_update: bool = False
    ) -> ReportDB:
        stmt = (
            select(ReportDB)
            .where(ReportDB.report_id == report_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await db.execute(stmt)
        report_db = result.scalar_one_or_none()
        if report_db is None:
            raise NotFound("report", report_id)
        return report_db

    async def is_report_owner(
        self,
        report_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> bool:
        """
        Check whether the caller owns a report

        Raises:
            Unauthorized: If there is no caller identity
            NotFound: If the report does not exist
        """
        if not caller_id:
            raise Unauthorized()

        report_db = await self._find_report(report_id, db)
        return report_db.user_id == caller_id

    async def require_report(
        self,
        report_id: str,
        caller_id: Optional[str],
        db: AsyncSession,
        for_update: bool = False
    ) -> ReportDB:
        """
        Load a report the caller owns

        Args:
            report_id: Report ID
            caller_id: Local user id of the caller (None when unauthenticated)
            db: Database session
            for_update: Lock the report row for the rest of the transaction

        Returns:
            The report row

        Raises:
            Unauthorized: If there is no caller or the caller is not the owner
            NotFound: If the report does not exist
        """
        if not caller_id:
            raise Unauthorized()

        report_db = await self._find_report(report_id, db, for_update=for_update)
        if report_db.user_id != caller_id:
            logger.warning(f"User {caller_id} denied access to report {report_id}")
            raise Unauthorized()

        return report_db

    async def require_attachment(
        self,
        attachment_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> Tuple[AttachmentDB, ReportDB]:
        """
        Load an attachment whose owning report the caller owns

        Raises:
            Unauthorized: If there is no caller or the caller does not own the report
            NotFound: If the attachment or its report does not exist
        """
        if not caller_id:
            raise Unauthorized()

        stmt = (
            select(AttachmentDB)
            .where(AttachmentDB.attachment_id == attachment_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        attachment_db = result.scalar_one_or_none()
        if attachment_db is None:
            raise NotFound("attachment", attachment_id)

        report_db = await self.require_report(attachment_db.report_id, caller_id, db)
        return attachment_db, report_db
