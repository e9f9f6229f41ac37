"""
Attachment API Routes

RESTful endpoints for report attachments and their media.
"""

import json
import logging
from typing import List, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Response,
    UploadFile,
)
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.api.dependencies import get_attachment_manager, get_caller_id
from report_service.core.attachment_manager import AttachmentManager
from report_service.core.exceptions import InvalidAttachment
from report_service.infrastructure.database.client import get_db
from report_service.models import (
    Attachment,
    AttachmentCountsResponse,
    GeoPoint,
    MediaFile,
    MediaType,
    UpdateAttachmentInfoRequest,
)

router = APIRouter(prefix="/api/v1", tags=["attachments"])
logger = logging.getLogger(__name__)


async def _read_upload(file: Optional[UploadFile]) -> Optional[MediaFile]:
    if file is None or not file.filename:
        return None
    return MediaFile(
        content=await file.read(),
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream"
    )


def _parse_json_field(name: str, raw: Optional[str]):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"{name} must be valid JSON: {e}")


@router.post(
    "/reports/{report_id}/attachments",
    response_model=Attachment,
    status_code=201,
    summary="Create Attachment",
    description="""
Attach media to a report.

**Workflow**:
1. Verifies the caller owns the report
2. For picture/video/audio/sketch with a file: uploads the binary first
3. Writes the attachment record only after the upload succeeded
4. Documents carry no binary; their media URL is the "null" sentinel

**Request Format** (multipart/form-data):
- media_type: picture | video | audio | sketch | document (required)
- file: binary payload (optional)
- title / description: optional, default "Untitled Attachment" / "No description"
- location: optional JSON `{"longitude": .., "latitude": ..}`
- metadata: optional JSON object

**Authorization**: Requires X-User-ID header from API Gateway
    """,
    responses={
        201: {"description": "Attachment created"},
        400: {"description": "File validation failed"},
        401: {"description": "Caller does not own the report"},
        404: {"description": "Report not found"},
        502: {"description": "Blob store rejected the upload"}
    }
)
async def create_attachment(
    report_id: str,
    media_type: MediaType = Form(..., description="Attachment media type"),
    file: Optional[UploadFile] = File(None, description="Media file"),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None, description="JSON point"),
    metadata: Optional[str] = Form(None, description="JSON object"),
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: AttachmentManager = Depends(get_attachment_manager)
) -> Attachment:
    """Create attachment"""
    metadata_data = _parse_json_field("metadata", metadata)
    if metadata_data is not None and not isinstance(metadata_data, dict):
        raise HTTPException(status_code=400, detail="metadata must be a JSON object")

    location_data = _parse_json_field("location", location)
    try:
        point = GeoPoint(**location_data) if location_data else None
    except (TypeError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid location: {e}")

    try:
        return await manager.create_attachment(
            report_id=report_id,
            caller_id=caller_id,
            media=await _read_upload(file),
            media_type=media_type,
            db=db,
            title=title,
            description=description,
            location=point,
            metadata=metadata_data
        )
    except InvalidAttachment as e:
        logger.warning(f"Attachment validation failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/reports/{report_id}/attachments",
    response_model=List[Attachment],
    summary="List Report Attachments",
    responses={
        200: {"description": "Attachments returned"},
        401: {"description": "Caller does not own the report"},
        404: {"description": "Report not found"}
    }
)
async def list_attachments(
    report_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: AttachmentManager = Depends(get_attachment_manager)
) -> List[Attachment]:
    """List attachments of a report"""
    return await manager.get_attachments(report_id, caller_id, db)


@router.get(
    "/reports/{report_id}/attachments/counts",
    response_model=AttachmentCountsResponse,
    summary="Attachment Counts by Type",
    description="Count of attachments per media type, with zero entries for absent types.",
    responses={
        200: {"description": "Counts returned"},
        401: {"description": "Caller does not own the report"},
        404: {"description": "Report not found"}
    }
)
async def attachment_counts(
    report_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: AttachmentManager = Depends(get_attachment_manager)
) -> AttachmentCountsResponse:
    """Get attachment counts"""
    counts = await manager.get_attachment_counts_by_type(report_id, caller_id, db)
    return AttachmentCountsResponse(report_id=report_id, counts=counts, total=sum(counts.values()))


@router.get(
    "/attachments/{attachment_id}",
    response_model=Attachment,
    summary="Get Attachment",
    responses={
        200: {"description": "Attachment returned"},
        401: {"description": "Caller does not own the owning report"},
        404: {"description": "Attachment not found"}
    }
)
async def get_attachment(
    attachment_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: AttachmentManager = Depends(get_attachment_manager)
) -> Attachment:
    """Get attachment"""
    return await manager.get_attachment(attachment_id, caller_id, db)


@router.patch(
    "/attachments/{attachment_id}",
    response_model=Attachment,
    summary="Update Attachment Info",
    description="Patch title and/or description. Never touches the media binary.",
    responses={
        200: {"description": "Attachment updated"},
        401: {"description": "Caller does not own the owning report"},
        404: {"description": "Attachment not found"}
    }
)
async def update_attachment_info(
    attachment_id: str,
    request: UpdateAttachmentInfoRequest,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: AttachmentManager = Depends(get_attachment_manager)
) -> Attachment:
    """Update attachment info"""
    return await manager.update_attachment_info(
        attachment_id,
        caller_id,
        db,
        title=request.title,
        description=request.description
    )


@router.put(
    "/attachments/{attachment_id}/media",
    response_model=Attachment,
    summary="Replace Attachment Media",
    description="""
Upload a new binary for an attachment. The new file is stored first; the old
one is removed only after the record points at the new URL. If the upload
fails the attachment keeps its previous media. No-op for documents.
    """,
    responses={
        200: {"description": "Media replaced"},
        400: {"description": "File validation failed"},
        401: {"description": "Caller does not own the owning report"},
        404: {"description": "Attachment not found"},
        502: {"description": "Blob store rejected the upload"}
    }
)
async def add_attachment_media(
    attachment_id: str,
    file: UploadFile = File(..., description="Media file"),
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: AttachmentManager = Depends(get_attachment_manager)
) -> Attachment:
    """Replace attachment media"""
    media = await _read_upload(file)
    if media is None:
        raise HTTPException(status_code=400, detail="file is required")

    try:
        return await manager.add_attachment_media(attachment_id, caller_id, media, db)
    except InvalidAttachment as e:
        logger.warning(f"Attachment validation failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/attachments/{attachment_id}/media",
    response_model=Attachment,
    summary="Remove Attachment Media",
    description="Delete the binary and reset the media URL to the \"null\" sentinel. No-op for documents.",
    responses={
        200: {"description": "Media removed"},
        401: {"description": "Caller does not own the owning report"},
        404: {"description": "Attachment not found"}
    }
)
async def remove_attachment_media(
    attachment_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: AttachmentManager = Depends(get_attachment_manager)
) -> Attachment:
    """Remove attachment media"""
    return await manager.remove_attachment_media(attachment_id, caller_id, db)


@router.delete(
    "/attachments/{attachment_id}",
    status_code=204,
    summary="Delete Attachment",
    description="""
Delete an attachment: the binary first (best effort, a failure is logged and
leaves an orphaned blob), then the record.
    """,
    responses={
        204: {"description": "Attachment deleted"},
        401: {"description": "Caller does not own the owning report"},
        404: {"description": "Attachment not found"}
    }
)
async def delete_attachment(
    attachment_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db),
    manager: AttachmentManager = Depends(get_attachment_manager)
):
    """Delete attachment"""
    await manager.delete_attachment(attachment_id, caller_id, db)
    return Response(status_code=204)
