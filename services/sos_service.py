"""
SOS event intake and lifecycle.

Intake persists the event and decides who should hear about it; delivery
itself is the family alert fan-out, dispatched as a separate Celery task.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from celery_app import celery_app
from core.config import settings
from core.exceptions import InvalidStateError, NotAuthorizedError, NotFoundError, PolicyViolationError
from core.logging import get_logger
from models.connection import Connection, ConnectionTypeEnum
from models.sos import (
    RegionalPriorityEnum,
    RegionalStatusEnum,
    SOSAcknowledgement,
    SOSEvent,
    SOSLocation,
    SOSStatusEnum,
)
from models.user import User
from repositories.connection import ConnectionRepository
from repositories.family import FamilyRepository
from repositories.sos import AcknowledgementRepository, SOSEventRepository
from repositories.user import UserRepository
from schemas.sos import SOSEventCreate, SOSLocationCreate
from services.access_grant import grant_event_access
from services.realtime_service import realtime_service, sos_event_channel

logger = get_logger(__name__)

SPAIN_RULE_VIOLATION = "SPAIN_RULE_VIOLATION"
SPAIN_RULE_MESSAGE = (
    "Spain rule violation: Must have at least 1 active connection "
    "OR regional subscription to trigger SOS"
)
NOT_AUTHORIZED_MESSAGE = "SOS event not found or user not authorized"


@dataclass
class SOSIntakeResult:
    event: SOSEvent
    connections_notified: int
    regional_created: bool
    access_granted: int


def violates_spain_rule(user: User, active_connections: int) -> bool:
    """Spanish users need an active connection or a regional subscription."""
    country = (user.country_code or "").upper()
    if country != settings.SPAIN_RULE_COUNTRY_CODE.upper():
        return False
    return active_connections == 0 and not user.subscription_regional


class SOSService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.event_repo = SOSEventRepository(db)
        self.ack_repo = AcknowledgementRepository(db)
        self.user_repo = UserRepository(db)
        self.connection_repo = ConnectionRepository(db)
        self.family_repo = FamilyRepository(db)

    async def create_event(self, payload: SOSEventCreate) -> SOSIntakeResult:
        user = await self.user_repo.get_user_by_id(payload.user_id)
        if not user:
            raise NotFoundError("User not found")

        connections = await self.connection_repo.get_active_connections(user.id)

        if violates_spain_rule(user, len(connections)):
            logger.warning("SOS rejected by Spain rule", user_id=user.id)
            raise PolicyViolationError(SPAIN_RULE_MESSAGE, code=SPAIN_RULE_VIOLATION)

        already_active = await self.event_repo.get_active_events_for_user(user.id)
        if already_active:
            # Stacked events are allowed; each gets its own fan-out
            logger.warning(
                "User already has active SOS events",
                user_id=user.id,
                active_event_ids=[e.id for e in already_active],
            )

        group = await self.family_repo.get_group_by_owner(user.id)

        event_data: Dict[str, Any] = {
            "user_id": user.id,
            "group_id": group.id if group else None,
            "lat": payload.lat,
            "lng": payload.lng,
            "address": payload.address,
            "emergency_type": payload.emergency_type.value,
            "source": payload.source.value,
            "status": SOSStatusEnum.ACTIVE.value,
        }
        location_data = None
        if payload.lat is not None and payload.lng is not None:
            location_data = {"lat": payload.lat, "lng": payload.lng, "address": payload.address}

        event = await self.event_repo.create_event(event_data, location_data)
        logger.info(
            "SOS event created",
            event_id=event.id,
            user_id=user.id,
            group_id=event.group_id,
            emergency_type=event.emergency_type,
            source=event.source,
        )

        access_granted = await self._grant_trusted_contacts(event, connections)
        regional_created = await self._create_regional_event(event, user)
        self._dispatch_family_alerts(event.id)

        return SOSIntakeResult(
            event=event,
            connections_notified=len(connections),
            regional_created=regional_created,
            access_granted=access_granted,
        )

    async def _grant_trusted_contacts(self, event: SOSEvent, connections: List[Connection]) -> int:
        granted = 0
        for connection in connections:
            if connection.type != ConnectionTypeEnum.TRUSTED_CONTACT.value or not connection.contact_user_id:
                continue
            try:
                await grant_event_access(
                    self.db,
                    event_id=event.id,
                    contact_user_id=connection.contact_user_id,
                    scope=settings.SOS_ACCESS_SCOPE,
                )
                granted += 1
            except SQLAlchemyError as e:
                logger.error(
                    "Failed to grant SOS access",
                    event_id=event.id,
                    contact_user_id=connection.contact_user_id,
                    error=str(e),
                )
        return granted

    async def _create_regional_event(self, event: SOSEvent, user: User) -> bool:
        if not (user.subscription_regional and user.organization_id):
            return False
        try:
            regional_event = await self.event_repo.create_regional_event({
                "sos_event_id": event.id,
                "client_id": user.id,
                "organization_id": user.organization_id,
                "source": event.source,
                "emergency_type": event.emergency_type,
                "status": RegionalStatusEnum.OPEN.value,
                "priority": RegionalPriorityEnum.MEDIUM.value,
                "lat": event.lat,
                "lng": event.lng,
            })
        except SQLAlchemyError as e:
            logger.error("Failed to create regional SOS event", event_id=event.id, error=str(e))
            return False

        logger.info(
            "Regional SOS event created",
            event_id=event.id,
            regional_event_id=regional_event.id,
            organization_id=user.organization_id,
        )
        return True

    def _dispatch_family_alerts(self, event_id: int) -> None:
        if not settings.AUTO_DISPATCH_FAMILY_ALERTS:
            return
        try:
            celery_app.send_task("dispatch_family_sos_alerts", args=[event_id])
            logger.info("Family alert dispatch queued", event_id=event_id)
        except Exception as e:
            logger.error("Failed to queue family alert dispatch", event_id=event_id, error=str(e))

    # -------- Lifecycle --------

    async def _get_owned_event(self, event_id: int, user: User) -> SOSEvent:
        event = await self.event_repo.get_event(event_id)
        if not event or event.user_id != user.id:
            raise NotAuthorizedError(NOT_AUTHORIZED_MESSAGE)
        return event

    async def resolve_event(self, event_id: int, user: User) -> SOSEvent:
        event = await self._get_owned_event(event_id, user)
        if event.status != SOSStatusEnum.ACTIVE.value:
            raise InvalidStateError("SOS event is already resolved")

        resolved = await self.event_repo.resolve_event(event_id, datetime.now(timezone.utc))
        if not resolved:
            raise InvalidStateError("SOS event is already resolved")
        await self.db.refresh(event)
        logger.info("SOS event resolved", event_id=event_id, user_id=user.id)

        try:
            await realtime_service.broadcast(
                sos_event_channel(event_id),
                "sos_resolved",
                {"event_id": event_id, "resolved_at": event.resolved_at},
            )
        except Exception as e:
            logger.warning("Failed to broadcast SOS resolution", event_id=event_id, error=str(e))

        return event

    async def add_location(self, event_id: int, user: User, location: SOSLocationCreate) -> SOSLocation:
        event = await self._get_owned_event(event_id, user)
        if event.status != SOSStatusEnum.ACTIVE.value:
            raise InvalidStateError("SOS event is not active")
        return await self.event_repo.add_location(event_id, location.model_dump())

    async def list_acknowledgements(self, event_id: int, user: User) -> List[SOSAcknowledgement]:
        """Visible to the event owner and active members of its family group."""
        event = await self.event_repo.get_event(event_id)
        if not event:
            raise NotAuthorizedError(NOT_AUTHORIZED_MESSAGE)
        if event.user_id != user.id:
            if not await self.event_repo.get_event_for_active_member(event_id, user.id):
                raise NotAuthorizedError(NOT_AUTHORIZED_MESSAGE)
        return await self.ack_repo.list_for_event(event_id)
