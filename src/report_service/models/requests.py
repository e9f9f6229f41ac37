"""
API Request and Response Models

Pydantic models for API input/output validation.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .report import MediaType


class UserSessionRequest(BaseModel):
    """Profile fields supplied by the identity provider on sign-in"""

    email: str = Field(..., description="Profile email")
    username: str = Field(..., description="Display name")
    avatar_url: str = Field(default="", description="Avatar URL")


class ReportCreatedResponse(BaseModel):
    """Response after creating an empty report"""

    report_id: str = Field(..., description="Unique report identifier")
    message: str = Field(default="Report created")


class UpdateReportRequest(BaseModel):
    """Full replacement of the mutable report fields"""

    title: Optional[str] = Field(None, description="Report title")
    description: Optional[str] = Field(None, description="Report description")
    tags: List[str] = Field(default_factory=list, description="Ordered tag list")


class DiscardReportResponse(BaseModel):
    """Result of discarding an abandoned report"""

    report_id: str
    discarded: bool


class RecentTagsResponse(BaseModel):
    """Tag suggestions drawn from recently updated reports"""

    tags: List[str] = Field(default_factory=list)


class UpdateAttachmentInfoRequest(BaseModel):
    """Metadata-only attachment patch; omitted fields stay unchanged"""

    title: Optional[str] = Field(None, description="Attachment title")
    description: Optional[str] = Field(None, description="Attachment description")


class AttachmentCountsResponse(BaseModel):
    """Attachment count per media type"""

    report_id: str
    counts: Dict[MediaType, int]
    total: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(default="healthy")
    service: str = Field(default="incident-report-service")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    storage_available: bool = Field(default=True)
    database_available: bool = Field(default=True)
