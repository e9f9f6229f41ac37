"""
User Manager

Keeps the local user table in sync with the identity provider and resolves
the caller id passed to every other manager.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.core.exceptions import ProfileConflict
from report_service.infrastructure.database.models import UserDB
from report_service.models.report import User

logger = logging.getLogger(__name__)


def _to_user(user_db: UserDB) -> User:
    return User(
        user_id=user_db.user_id,
        google_id=user_db.google_id,
        email=user_db.email,
        username=user_db.username,
        avatar_url=user_db.avatar_url,
        created_at=user_db.created_at,
        updated_at=user_db.updated_at
    )


class UserManager:
    """Business logic for identity-provider users"""

    async def _find_by_google_id(self, google_id: str, db: AsyncSession) -> Optional[UserDB]:
        stmt = select(UserDB).where(UserDB.google_id == google_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _commit_profile(self, google_id: str, db: AsyncSession) -> None:
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"Profile of subject {google_id} collides with another user: {e.orig}")
            raise ProfileConflict("Email or username already belongs to another user") from e

    async def sync_user(
        self,
        google_id: str,
        email: str,
        username: str,
        avatar_url: str,
        db: AsyncSession
    ) -> User:
        """
        Create the local user on first sign-in, resync profile fields afterwards

        Args:
            google_id: Identity provider subject id
            email: Profile email (only stored on first sign-in)
            username: Display name
            avatar_url: Avatar URL
            db: Database session

        Returns:
            The local user

        Raises:
            ProfileConflict: If the email or username belongs to another user
        """
        user_db = await self._find_by_google_id(google_id, db)

        if user_db is None:
            now = datetime.utcnow()
            user_db = UserDB(
                google_id=google_id,
                email=email,
                username=username,
                avatar_url=avatar_url,
                created_at=now,
                updated_at=now
            )
            db.add(user_db)
            await self._commit_profile(google_id, db)
            logger.info(f"Created user {user_db.user_id} for subject {google_id}")
            return _to_user(user_db)

        if user_db.username != username or user_db.avatar_url != avatar_url:
            user_db.username = username
            user_db.avatar_url = avatar_url
            user_db.updated_at = datetime.utcnow()
            await self._commit_profile(google_id, db)
            logger.info(f"Resynced profile for user {user_db.user_id}")

        return _to_user(user_db)

    async def resolve_caller_id(self, google_id: Optional[str], db: AsyncSession) -> Optional[str]:
        """Map an identity-provider subject to the local user id (None if unknown)"""
        if not google_id:
            return None

        user_db = await self._find_by_google_id(google_id, db)
        return user_db.user_id if user_db else None

