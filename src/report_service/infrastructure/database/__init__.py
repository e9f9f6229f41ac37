"""Database layer"""

from .client import DatabaseClient, db_client, get_db
from .models import AttachmentDB, Base, ReportDB, UserDB

__all__ = ["DatabaseClient", "db_client", "get_db", "Base", "UserDB", "ReportDB", "AttachmentDB"]
