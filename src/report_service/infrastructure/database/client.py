"""
Database Client

Async SQLAlchemy database connection and session management.
"""

import asyncio
import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from report_service.config.settings import settings
from report_service.infrastructure.database.models import Base

logger = logging.getLogger(__name__)

STARTUP_MAX_RETRIES = 5
STARTUP_BASE_DELAY = 1.0


class DatabaseClient:
    """Database client for managing async connections"""

    def __init__(self):
        self.engine = None
        self.session_maker = None

    async def verify_connection(self):
        """Verify database connection with retry logic.

        Retries with exponential backoff (1s, 2s, 4s, ...) so the service can
        start before the database container is ready.
        """
        if not self.engine:
            raise RuntimeError("Engine not initialized. Call initialize() first.")

        for attempt in range(STARTUP_MAX_RETRIES + 1):
            try:
                async with self.engine.begin() as conn:
                    await conn.execute(text("SELECT 1"))
                logger.info("Database connection verified")
                return
            except OperationalError as e:
                if attempt >= STARTUP_MAX_RETRIES:
                    logger.error(f"Database unavailable after {attempt + 1} attempts: {e}")
                    raise
                delay = STARTUP_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    f"Database not ready (attempt {attempt + 1}/{STARTUP_MAX_RETRIES + 1}), "
                    f"retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

    async def initialize(self):
        """Initialize database engine and create tables"""
        logger.info(f"Initializing database: {settings.database_url}")

        self.engine = create_async_engine(
            settings.database_url,
            echo=False,
            poolclass=NullPool if settings.database_url.startswith("sqlite") else None,
        )

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        await self.verify_connection()

        # Note: Alembic migrations are the source of truth in deployed environments
        # create_all() keeps local setups working without running alembic
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database initialized successfully")

    async def close(self):
        """Close database connections"""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connections closed")

    def get_session(self) -> AsyncSession:
        """Get database session"""
        if not self.session_maker:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self.session_maker()

    async def health_check(self) -> bool:
        """Check database health"""
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


# Global database client instance
db_client = DatabaseClient()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database session"""
    async with db_client.get_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
