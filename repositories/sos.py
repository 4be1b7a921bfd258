from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Any, Dict, List, Optional, Tuple
import logging

from models.family import FamilyGroup, FamilyMembership, MembershipStatusEnum
from models.sos import (
    FamilyAlert,
    RegionalSOSEvent,
    SOSAcknowledgement,
    SOSEvent,
    SOSEventAccess,
    SOSLocation,
    SOSStatusEnum,
)

logger = logging.getLogger(__name__)

# -------- SOS events --------

class SOSEventRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def create_event(
        self,
        event_data: Dict[str, Any],
        location_data: Optional[Dict[str, Any]] = None
    ) -> SOSEvent:
        """Insert the event and its first location sample in one commit."""
        try:
            event = SOSEvent(**event_data)
            self.db_session.add(event)
            await self.db_session.flush()

            if location_data:
                self.db_session.add(SOSLocation(event_id=event.id, **location_data))

            await self.db_session.commit()
            await self.db_session.refresh(event)
            return event
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in create_event: {str(e)}")
            raise

    async def get_event(self, event_id: int) -> Optional[SOSEvent]:
        try:
            result = await self.db_session.execute(
                select(SOSEvent).where(SOSEvent.id == event_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_event: {str(e)}")
            raise

    async def get_active_events_for_user(self, user_id: int) -> List[SOSEvent]:
        try:
            result = await self.db_session.execute(
                select(SOSEvent)
                .where(
                    SOSEvent.user_id == user_id,
                    SOSEvent.status == SOSStatusEnum.ACTIVE.value,
                )
                .order_by(SOSEvent.id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_active_events_for_user: {str(e)}")
            raise

    async def get_event_for_active_member(self, event_id: int, user_id: int) -> Optional[SOSEvent]:
        """
        Return the event only when `user_id` is an active member of the family
        group the event is tagged with.
        """
        try:
            result = await self.db_session.execute(
                select(SOSEvent)
                .join(FamilyGroup, FamilyGroup.id == SOSEvent.group_id)
                .join(FamilyMembership, FamilyMembership.group_id == FamilyGroup.id)
                .where(
                    SOSEvent.id == event_id,
                    FamilyMembership.user_id == user_id,
                    FamilyMembership.status == MembershipStatusEnum.ACTIVE.value,
                )
            )
            return result.scalars().first()
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_event_for_active_member: {str(e)}")
            raise

    async def resolve_event(self, event_id: int, resolved_at: datetime) -> bool:
        """Flip an active event to resolved; False if it was not active."""
        try:
            result = await self.db_session.execute(
                update(SOSEvent)
                .where(
                    SOSEvent.id == event_id,
                    SOSEvent.status == SOSStatusEnum.ACTIVE.value,
                )
                .values(status=SOSStatusEnum.RESOLVED.value, resolved_at=resolved_at)
                .execution_options(synchronize_session="fetch")
            )
            await self.db_session.commit()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in resolve_event: {str(e)}")
            raise

    async def add_location(self, event_id: int, location_data: Dict[str, Any]) -> SOSLocation:
        try:
            location = SOSLocation(event_id=event_id, **location_data)
            self.db_session.add(location)
            await self.db_session.commit()
            await self.db_session.refresh(location)
            return location
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in add_location: {str(e)}")
            raise

    async def create_access_grant(
        self,
        event_id: int,
        user_id: int,
        access_scope: str,
        expires_at: datetime
    ) -> SOSEventAccess:
        try:
            grant = SOSEventAccess(
                event_id=event_id,
                user_id=user_id,
                access_scope=access_scope,
                expires_at=expires_at,
            )
            self.db_session.add(grant)
            await self.db_session.commit()
            await self.db_session.refresh(grant)
            return grant
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in create_access_grant: {str(e)}")
            raise

    async def create_regional_event(self, regional_data: Dict[str, Any]) -> RegionalSOSEvent:
        try:
            regional_event = RegionalSOSEvent(**regional_data)
            self.db_session.add(regional_event)
            await self.db_session.commit()
            await self.db_session.refresh(regional_event)
            return regional_event
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in create_regional_event: {str(e)}")
            raise

# -------- Acknowledgements --------

class AcknowledgementRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get(self, event_id: int, family_user_id: int) -> Optional[SOSAcknowledgement]:
        try:
            result = await self.db_session.execute(
                select(SOSAcknowledgement).where(
                    SOSAcknowledgement.event_id == event_id,
                    SOSAcknowledgement.family_user_id == family_user_id,
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get acknowledgement: {str(e)}")
            raise

    async def create_once(
        self,
        event_id: int,
        family_user_id: int,
        message: str
    ) -> Tuple[SOSAcknowledgement, bool]:
        """
        Insert the acknowledgement unless one exists for (event, user).

        Returns the row and whether it was created by this call. The unique
        constraint on (event_id, family_user_id) settles concurrent inserts.
        """
        existing = await self.get(event_id, family_user_id)
        if existing:
            return existing, False

        try:
            acknowledgement = SOSAcknowledgement(
                event_id=event_id,
                family_user_id=family_user_id,
                message=message,
            )
            self.db_session.add(acknowledgement)
            await self.db_session.commit()
            await self.db_session.refresh(acknowledgement)
            return acknowledgement, True
        except IntegrityError:
            await self.db_session.rollback()
            existing = await self.get(event_id, family_user_id)
            if existing is None:
                raise
            logger.info(
                f"Acknowledgement for event {event_id} by user {family_user_id} "
                f"was inserted concurrently; returning existing row {existing.id}"
            )
            return existing, False
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in create_once acknowledgement: {str(e)}")
            raise

    async def list_for_event(self, event_id: int) -> List[SOSAcknowledgement]:
        try:
            result = await self.db_session.execute(
                select(SOSAcknowledgement)
                .where(SOSAcknowledgement.event_id == event_id)
                .order_by(SOSAcknowledgement.id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"Database error in list_for_event acknowledgements: {str(e)}")
            raise

# -------- Family alert log --------

class FamilyAlertRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def create(
        self,
        event_id: int,
        family_user_id: int,
        alert_type: str,
        alert_data: Dict[str, Any],
        status: str = "sent"
    ) -> FamilyAlert:
        try:
            alert = FamilyAlert(
                event_id=event_id,
                family_user_id=family_user_id,
                alert_type=alert_type,
                alert_data=alert_data,
                status=status,
            )
            self.db_session.add(alert)
            await self.db_session.commit()
            await self.db_session.refresh(alert)
            return alert
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error in create family alert: {str(e)}")
            raise

    async def list_for_event(self, event_id: int, alert_type: Optional[str] = None) -> List[FamilyAlert]:
        try:
            query = select(FamilyAlert).where(FamilyAlert.event_id == event_id)
            if alert_type:
                query = query.where(FamilyAlert.alert_type == alert_type)
            result = await self.db_session.execute(query.order_by(FamilyAlert.id))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"Database error in list_for_event family alerts: {str(e)}")
            raise
