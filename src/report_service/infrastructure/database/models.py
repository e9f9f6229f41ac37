"""
Database Models

SQLAlchemy ORM models for users, reports and attachment metadata.
Binary media is never stored here, only the blob URL.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, Text, JSON, Enum, ForeignKey
from sqlalchemy.orm import declarative_base

from report_service.models.report import MediaType

Base = declarative_base()


def _new_id() -> str:
    return str(uuid4())


class UserDB(Base):
    """Identity-provider user, created on first sign-in"""

    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=_new_id)
    google_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True)
    username = Column(String(255), nullable=False, unique=True)
    avatar_url = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<UserDB(user_id='{self.user_id}', username='{self.username}')>"


class ReportDB(Base):
    """Incident report database model"""

    __tablename__ = "reports"

    report_id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    title = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    location = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<ReportDB(report_id='{self.report_id}', title='{self.title}')>"


class AttachmentDB(Base):
    """Attachment metadata database model"""

    __tablename__ = "attachments"

    attachment_id = Column(String(36), primary_key=True, default=_new_id)
    report_id = Column(String(36), ForeignKey("reports.report_id"), nullable=False, index=True)
    media_type = Column(
        Enum(MediaType, name="media_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True
    )
    title = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    media_url = Column(Text, nullable=False)  # Text for long signed URLs
    location = Column(JSON, nullable=True)
    attachment_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<AttachmentDB(attachment_id='{self.attachment_id}', media_type='{self.media_type}')>"
