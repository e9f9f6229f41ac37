"""
User API Routes

Sign-in synchronisation of identity-provider users.
"""

import logging

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.api.dependencies import get_user_manager
from report_service.core.user_manager import UserManager
from report_service.infrastructure.database.client import get_db
from report_service.models import User, UserSessionRequest

router = APIRouter(prefix="/api/v1/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.post(
    "/session",
    response_model=User,
    summary="Sync Signed-In User",
    description="""
Create or refresh the local user for an identity-provider subject.

**Workflow**:
1. Gateway authenticates the user and forwards the subject in X-User-ID
2. First sign-in inserts a user row keyed by the subject
3. Later sign-ins resync display name and avatar only

**Authorization**: Requires X-User-ID header from API Gateway
    """,
    responses={
        200: {"description": "User synchronised"},
        422: {"description": "Missing X-User-ID header or profile fields"}
    }
)
async def sync_session(
    request: UserSessionRequest,
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: AsyncSession = Depends(get_db),
    users: UserManager = Depends(get_user_manager)
) -> User:
    """Sync signed-in user"""
    user = await users.sync_user(
        google_id=x_user_id,
        email=request.email,
        username=request.username,
        avatar_url=request.avatar_url,
        db=db
    )
    logger.info(f"Session synced for user {user.user_id}")
    return user
