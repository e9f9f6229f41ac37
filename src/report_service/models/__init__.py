"""Data models for the Incident Report Service"""

from .report import (
    DEFAULT_ATTACHMENT_DESCRIPTION,
    DEFAULT_ATTACHMENT_TITLE,
    DEFAULT_REPORT_DESCRIPTION,
    DEFAULT_REPORT_TITLE,
    NO_MEDIA_URL,
    Attachment,
    ExportBundle,
    GeoPoint,
    MediaFile,
    MediaType,
    Report,
    User,
)
from .requests import (
    AttachmentCountsResponse,
    DiscardReportResponse,
    HealthResponse,
    RecentTagsResponse,
    ReportCreatedResponse,
    UpdateAttachmentInfoRequest,
    UpdateReportRequest,
    UserSessionRequest,
)

__all__ = [
    "DEFAULT_ATTACHMENT_DESCRIPTION",
    "DEFAULT_ATTACHMENT_TITLE",
    "DEFAULT_REPORT_DESCRIPTION",
    "DEFAULT_REPORT_TITLE",
    "NO_MEDIA_URL",
    "Attachment",
    "ExportBundle",
    "GeoPoint",
    "MediaFile",
    "MediaType",
    "Report",
    "User",
    "AttachmentCountsResponse",
    "DiscardReportResponse",
    "HealthResponse",
    "RecentTagsResponse",
    "ReportCreatedResponse",
    "UpdateAttachmentInfoRequest",
    "UpdateReportRequest",
    "UserSessionRequest",
]
