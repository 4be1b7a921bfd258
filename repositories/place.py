from datetime import datetime
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import Iterable, List, Optional
import logging

from models.place import Place, PlaceEvent

logger = logging.getLogger(__name__)


class PlaceRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_places_for_groups(self, group_ids: Iterable[int]) -> List[Place]:
        ids = list(set(group_ids))
        if not ids:
            return []
        try:
            result = await self.db_session.execute(
                select(Place)
                .where(Place.family_group_id.in_(ids))
                .order_by(Place.id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_places_for_groups: {str(e)}")
            raise

    async def get_last_event(self, user_id: int, place_id: int) -> Optional[PlaceEvent]:
        """Most recent enter/exit transition recorded for (user, place)."""
        try:
            result = await self.db_session.execute(
                select(PlaceEvent)
                .where(
                    PlaceEvent.user_id == user_id,
                    PlaceEvent.place_id == place_id,
                )
                .order_by(PlaceEvent.occurred_at.desc(), PlaceEvent.id.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_last_event: {str(e)}")
            raise

    async def create_event(
        self,
        user_id: int,
        place_id: int,
        event: str,
        occurred_at: datetime
    ) -> PlaceEvent:
        try:
            place_event = PlaceEvent(
                user_id=user_id,
                place_id=place_id,
                event=event,
                occurred_at=occurred_at,
            )
            self.db_session.add(place_event)
            await self.db_session.commit()
            await self.db_session.refresh(place_event)
            return place_event
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in create place event: {str(e)}")
            raise
