from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, Iterable, Optional
import logging
from models.user import User

logger = logging.getLogger(__name__)

class UserRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        try:
            result = await self.db_session.execute(
                select(User).where(User.id == user_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_user_by_id: {str(e)}")
            raise

    async def get_users_by_ids(self, user_ids: Iterable[int]) -> Dict[int, User]:
        """Fetch users keyed by id; unknown ids are simply absent."""
        ids = {user_id for user_id in user_ids if user_id is not None}
        if not ids:
            return {}
        try:
            result = await self.db_session.execute(
                select(User).where(User.id.in_(ids))
            )
            return {user.id: user for user in result.scalars().all()}
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_users_by_ids: {str(e)}")
            raise
