"""
Report Data Models

Core domain models for users, incident reports and their media attachments.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

DEFAULT_REPORT_TITLE = "Untitled Report"
DEFAULT_REPORT_DESCRIPTION = "No description"
DEFAULT_ATTACHMENT_TITLE = "Untitled Attachment"
DEFAULT_ATTACHMENT_DESCRIPTION = "No description"

# Stored in attachments.media_url when the attachment carries no binary
NO_MEDIA_URL = "null"


class MediaType(str, Enum):
    """Attachment media classification"""
    PICTURE = "picture"
    VIDEO = "video"
    AUDIO = "audio"
    SKETCH = "sketch"
    DOCUMENT = "document"

    @property
    def carries_binary(self) -> bool:
        return self is not MediaType.DOCUMENT

    @property
    def is_image(self) -> bool:
        return self in (MediaType.PICTURE, MediaType.SKETCH)


class GeoPoint(BaseModel):
    """Geographic point (longitude/latitude)"""

    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)


class User(BaseModel):
    """Locally persisted identity-provider user"""

    user_id: str
    google_id: str = Field(..., description="Identity provider subject id")
    email: str
    username: str
    avatar_url: str
    created_at: datetime
    updated_at: datetime


class Report(BaseModel):
    """Incident report owned by exactly one user"""

    report_id: str = Field(..., description="Unique report identifier")
    user_id: str = Field(..., description="Owner of the report")
    title: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    location: Optional[GeoPoint] = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_default_empty(self) -> bool:
        """True while the report still holds the values it was created with"""
        return (
            self.title == DEFAULT_REPORT_TITLE
            and self.description == DEFAULT_REPORT_DESCRIPTION
        )

    class Config:
        json_schema_extra = {
            "example": {
                "report_id": "550e8400-e29b-41d4-a716-446655440000",
                "user_id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                "title": "Flooded underpass on 5th Street",
                "description": "Water level reached the curb around 7am",
                "tags": ["flood", "traffic"],
                "location": {"longitude": -122.41, "latitude": 37.77},
                "created_at": "2025-11-16T10:30:00Z",
                "updated_at": "2025-11-16T10:45:00Z"
            }
        }


class Attachment(BaseModel):
    """Media attachment belonging to a report"""

    attachment_id: str = Field(..., description="Unique attachment identifier")
    report_id: str = Field(..., description="Owning report")
    media_type: MediaType
    title: Optional[str] = None
    description: Optional[str] = None
    media_url: str = Field(default=NO_MEDIA_URL, description="Blob URL or the no-media sentinel")
    location: Optional[GeoPoint] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    @property
    def has_media(self) -> bool:
        return bool(self.media_url) and self.media_url != NO_MEDIA_URL


@dataclass
class MediaFile:
    """Binary payload handed to the attachment manager for upload"""

    content: bytes
    filename: str
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class ExportBundle:
    """Downloadable archive produced by the export assembler"""

    filename: str
    content: bytes
    media_count: int = 0
    failed_media: List[str] = field(default_factory=list)
