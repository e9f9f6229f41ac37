"""
API Dependencies

Manager factories and caller resolution shared by the routers.

The service trusts identity headers set by the upstream gateway: X-User-ID
carries the identity-provider subject, which is resolved to the local user id
and passed explicitly into every manager call.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.core.attachment_manager import AttachmentManager
from report_service.core.export_assembler import ExportAssembler
from report_service.core.report_manager import ReportManager
from report_service.core.user_manager import UserManager
from report_service.infrastructure.database.client import get_db


def get_user_manager() -> UserManager:
    """Dependency for getting UserManager instance"""
    return UserManager()


def get_report_manager() -> ReportManager:
    """Dependency for getting ReportManager instance"""
    return ReportManager()


def get_attachment_manager() -> AttachmentManager:
    """Dependency for getting AttachmentManager instance"""
    return AttachmentManager()


def get_export_assembler(
    report_manager: ReportManager = Depends(get_report_manager),
    attachment_manager: AttachmentManager = Depends(get_attachment_manager)
) -> ExportAssembler:
    """Dependency for getting ExportAssembler instance"""
    return ExportAssembler(report_manager=report_manager, attachment_manager=attachment_manager)


async def get_caller_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
    db: AsyncSession = Depends(get_db),
    users: UserManager = Depends(get_user_manager)
) -> Optional[str]:
    """Local user id of the caller, None when unauthenticated or unknown"""
    return await users.resolve_caller_id(x_user_id, db)
