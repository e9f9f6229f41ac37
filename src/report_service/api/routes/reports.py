"""
Report API Routes

RESTful endpoints for incident reports and their export.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import StreamingResponse
from io import BytesIO
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.api.dependencies import (
    get_caller_id,
    get_export_assembler,
    get_report_manager,
)
from report_service.core.export_assembler import ExportAssembler
from report_service.core.report_manager import ReportManager
from report_service.infrastructure.database.client import get_db
from report_service.models import (
    DiscardReportResponse,
    RecentTagsResponse,
    Report,
    ReportCreatedResponse,
    UpdateReportRequest,
)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=ReportCreatedResponse,
    status_code=201,
    summary="Create Empty Report",
    description="""
Create a report in its default state ("Untitled Report", "No description", no tags).
The client edits it in place afterwards.

**Authorization**: Requires X-User-ID header from API Gateway
    """,
    responses={
        201: {"description": "Report created"},
        401: {"description": "No authenticated caller"}
    }
)
async def create_report(
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: ReportManager = Depends(get_report_manager)
) -> ReportCreatedResponse:
    """Create empty report"""
    report_id = await manager.create_empty_report(caller_id, db)
    return ReportCreatedResponse(report_id=report_id)


@router.get(
    "",
    response_model=List[Report],
    summary="List My Reports",
    description="Return every report owned by the caller, newest first.",
    responses={
        200: {"description": "Reports returned"},
        401: {"description": "No authenticated caller"}
    }
)
async def list_reports(
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: ReportManager = Depends(get_report_manager)
) -> List[Report]:
    """List caller's reports"""
    return await manager.list_reports(caller_id, db)


@router.get(
    "/tags/recent",
    response_model=RecentTagsResponse,
    summary="Recent Tags",
    description="""
Tags from the caller's most recently updated reports, de-duplicated in
first-seen order. Used for quick tag re-use in the editor.
    """,
    responses={
        200: {"description": "Tags returned"},
        401: {"description": "No authenticated caller"}
    }
)
async def recent_tags(
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: ReportManager = Depends(get_report_manager)
) -> RecentTagsResponse:
    """Get recent tags"""
    return RecentTagsResponse(tags=await manager.get_recent_tags(caller_id, db))


@router.get(
    "/{report_id}",
    response_model=Report,
    summary="Get Report",
    responses={
        200: {"description": "Report returned"},
        401: {"description": "Caller does not own the report"},
        404: {"description": "Report not found"}
    }
)
async def get_report(
    report_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: ReportManager = Depends(get_report_manager)
) -> Report:
    """Get report"""
    return await manager.get_report(report_id, caller_id, db)


@router.put(
    "/{report_id}",
    response_model=Report,
    summary="Update Report",
    description="""
Replace title, description and tags of a report. All three fields are written
together; concurrent edits resolve as last write wins.
    """,
    responses={
        200: {"description": "Report updated"},
        401: {"description": "Caller does not own the report"},
        404: {"description": "Report not found"}
    }
)
async def update_report(
    report_id: str,
    request: UpdateReportRequest,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: ReportManager = Depends(get_report_manager)
) -> Report:
    """Update report"""
    return await manager.update_report(
        report_id=report_id,
        caller_id=caller_id,
        title=request.title,
        description=request.description,
        tags=request.tags,
        db=db
    )


@router.delete(
    "/{report_id}",
    status_code=204,
    summary="Delete Report",
    description="""
Delete a report. Fails with 409 while any attachment still belongs to it;
attachments must be deleted first, deletion never cascades.
    """,
    responses={
        204: {"description": "Report deleted"},
        401: {"description": "Caller does not own the report"},
        404: {"description": "Report not found"},
        409: {"description": "Report has attachments"}
    }
)
async def delete_report(
    report_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: ReportManager = Depends(get_report_manager)
):
    """Delete report"""
    await manager.delete_report(report_id, caller_id, db)
    return Response(status_code=204)


@router.post(
    "/{report_id}/discard",
    response_model=DiscardReportResponse,
    summary="Discard Empty Report",
    description="""
Called when the user leaves the editor. Deletes the report only if it is still
in its default state (title and description untouched); otherwise nothing happens.
    """,
    responses={
        200: {"description": "Discard evaluated (see `discarded`)"},
        401: {"description": "Caller does not own the report"},
        404: {"description": "Report not found"},
        409: {"description": "Report has attachments"}
    }
)
async def discard_report(
    report_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: ReportManager = Depends(get_report_manager)
) -> DiscardReportResponse:
    """Discard empty report"""
    discarded = await manager.discard_empty_report(report_id, caller_id, db)
    return DiscardReportResponse(report_id=report_id, discarded=discarded)


@router.get(
    "/{report_id}/export",
    summary="Export Report",
    description="""
Download a zip archive holding a PDF summary of the report and a `media/`
folder with the original attachment files.

**Workflow**:
1. Ownership is verified before any media is fetched
2. The PDF lists report metadata and one block per attachment, with
   previews for pictures and sketches
3. Each attachment binary is fetched by URL and stored under `media/`
4. A failed download is noted in the PDF and skipped; the export still succeeds

**Response Format**:
- Content-Type: application/zip
- Content-Disposition: attachment; filename={{sanitized_title}}-{{report_id}}.zip
    """,
    responses={
        200: {"description": "Archive stream started"},
        401: {"description": "Caller does not own the report"},
        404: {"description": "Report not found"}
    }
)
async def export_report(
    report_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    assembler: ExportAssembler = Depends(get_export_assembler)
):
    """Export report"""
    bundle = await assembler.export_report(report_id, caller_id, db)

    return StreamingResponse(
        BytesIO(bundle.content),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{bundle.filename}"'}
    )
