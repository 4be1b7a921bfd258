"""
Time-boxed, scope-limited access grants on SOS events.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logging import get_logger
from models.sos import AccessScopeEnum, SOSEventAccess
from repositories.sos import SOSEventRepository

logger = get_logger(__name__)


def default_access_ttl() -> timedelta:
    return timedelta(hours=settings.SOS_ACCESS_TTL_HOURS)


async def grant_event_access(
    db: AsyncSession,
    event_id: int,
    contact_user_id: int,
    scope: str = AccessScopeEnum.LIVE_ONLY.value,
    ttl: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> SOSEventAccess:
    """
    Let `contact_user_id` see event data within `scope` until now + ttl.

    Grants are never revoked; readers enforce `expires_at`.
    """
    ttl = ttl if ttl is not None else default_access_ttl()
    if ttl <= timedelta(0):
        raise ValueError("Access grant ttl must be positive")

    issued_at = now or datetime.now(timezone.utc)
    grant = await SOSEventRepository(db).create_access_grant(
        event_id=event_id,
        user_id=contact_user_id,
        access_scope=scope,
        expires_at=issued_at + ttl,
    )
    logger.info(
        "SOS access granted",
        event_id=event_id,
        user_id=contact_user_id,
        scope=scope,
        expires_at=grant.expires_at.isoformat(),
    )
    return grant
