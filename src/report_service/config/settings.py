"""
Report Service Settings

Configuration management using Pydantic settings with environment variable support.
"""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Incident Report Service configuration"""

    # Service Configuration
    service_name: str = Field(default="incident-report-service", description="Service name")
    environment: str = Field(default="development", description="Environment (development, production)")
    port: int = Field(default=8005, description="Service port")
    host: str = Field(default="0.0.0.0", description="Service host")

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./incident_reports.db",
        description="Database connection URL"
    )

    # Media Configuration
    # NOTE: STORAGE_PROVIDER and the S3_* / STORAGE_* variables are read directly
    # by infrastructure/storage/factory.py via os.getenv()
    max_file_size_mb: int = Field(default=50, description="Maximum media file size in MB")
    media_fetch_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for fetching attachment media during export"
    )

    # Reports
    recent_tags_report_limit: int = Field(
        default=5,
        description="Number of most recently updated reports used for tag suggestions"
    )

    # CORS Configuration
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def max_file_size_bytes(self) -> int:
        """Convert max file size from MB to bytes"""
        return self.max_file_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()
