from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import List
import logging

from models.connection import Connection, ConnectionStatusEnum

logger = logging.getLogger(__name__)


class ConnectionRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_active_connections(self, owner_id: int) -> List[Connection]:
        """All active connections owned by the protected user."""
        try:
            result = await self.db_session.execute(
                select(Connection)
                .where(
                    Connection.owner_id == owner_id,
                    Connection.status == ConnectionStatusEnum.ACTIVE.value,
                )
                .order_by(Connection.id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_active_connections: {str(e)}")
            raise
