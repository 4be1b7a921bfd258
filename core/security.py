"""
Caller identification for API endpoints.

User requests carry an opaque session token as `Authorization: Bearer <token>`;
service-to-service requests carry the internal shared-secret header instead.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from models.authentication import UserSession
from models.user import User

logger = logging.getLogger(__name__)


def extract_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def is_internal_request(request: Request) -> bool:
    """True when the request carries a valid internal shared-secret header."""
    provided = request.headers.get(settings.INTERNAL_HEADER_NAME)
    if not provided:
        return False
    if not settings.INTERNAL_API_SECRET:
        logger.error("INTERNAL_API_SECRET is not configured; rejecting internal call")
        return False
    return secrets.compare_digest(provided, settings.INTERNAL_API_SECRET)


async def get_user_for_token(db: AsyncSession, token: str) -> Optional[User]:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(User)
        .join(UserSession, UserSession.user_id == User.id)
        .where(
            UserSession.session_id == token,
            UserSession.is_active.is_(True),
            UserSession.expires_at > now,
            User.is_active.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> User:
    token = extract_bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user = await get_user_for_token(db, token)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session"
        )
    return user


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    token = extract_bearer_token(request)
    if not token:
        return None
    return await get_user_for_token(db, token)


def require_internal_caller(request: Request) -> None:
    """Dependency for endpoints reserved to trusted internal callers."""
    if not is_internal_request(request):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
