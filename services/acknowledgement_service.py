"""
Family acknowledgement of an active SOS event.

Only the acknowledgement row is fatal to the request; the group broadcast,
the originator notification and the call-sequence pause are each attempted
once and logged on failure.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import InvalidStateError, NotAuthorizedError
from core.logging import get_logger
from models.sos import FamilyAlertTypeEnum, SOSAcknowledgement, SOSEvent, SOSStatusEnum
from models.user import User
from repositories.sos import AcknowledgementRepository, SOSEventRepository
from schemas.family_alert import AlertLocation, AlertUserProfile, FamilyAlertRequest, FamilyMemberIn
from services.call_control_service import call_control_service
from services.family_alert_service import FamilyAlertService
from services.realtime_service import realtime_service, sos_event_channel
from services.sos_service import NOT_AUTHORIZED_MESSAGE

logger = get_logger(__name__)

PAUSE_REASON = "family_acknowledged"


@dataclass
class AcknowledgementResult:
    acknowledgement: SOSAcknowledgement
    created: bool
    call_sequence_paused: bool


class AcknowledgementService:
    def __init__(
        self,
        db: AsyncSession,
        realtime=None,
        call_control=None,
        alert_service: Optional[FamilyAlertService] = None
    ):
        self.db = db
        self.event_repo = SOSEventRepository(db)
        self.ack_repo = AcknowledgementRepository(db)
        self.realtime = realtime or realtime_service
        self.call_control = call_control or call_control_service
        self.alert_service = alert_service or FamilyAlertService(db, realtime=self.realtime)

    async def acknowledge(
        self,
        event_id: int,
        user: User,
        message: Optional[str] = None
    ) -> AcknowledgementResult:
        # Unknown events and non-members get the same answer
        event = await self.event_repo.get_event_for_active_member(event_id, user.id)
        if not event:
            logger.warning("Acknowledgement rejected", event_id=event_id, user_id=user.id)
            raise NotAuthorizedError(NOT_AUTHORIZED_MESSAGE)

        if event.status != SOSStatusEnum.ACTIVE.value:
            raise InvalidStateError("SOS event is no longer active")

        text = message or settings.DEFAULT_ACK_MESSAGE
        acknowledgement, created = await self.ack_repo.create_once(event_id, user.id, text)

        if not created:
            logger.info(
                "SOS already acknowledged by user",
                event_id=event_id,
                user_id=user.id,
                acknowledgement_id=acknowledgement.id,
            )
            return AcknowledgementResult(acknowledgement, created=False, call_sequence_paused=False)

        logger.info(
            "SOS acknowledged",
            event_id=event_id,
            user_id=user.id,
            acknowledgement_id=acknowledgement.id,
        )

        await self._broadcast(event, user, acknowledgement)
        await self._notify_originator(event, user, acknowledgement)
        paused = await self._pause_call_sequence(event_id)

        return AcknowledgementResult(acknowledgement, created=True, call_sequence_paused=paused)

    async def _broadcast(self, event: SOSEvent, user: User, acknowledgement: SOSAcknowledgement) -> None:
        try:
            await self.realtime.broadcast(
                sos_event_channel(event.id),
                "sos_acknowledged",
                {
                    "event_id": event.id,
                    "acknowledgement_id": acknowledgement.id,
                    "family_user_id": user.id,
                    "family_member_name": user.full_name,
                    "message": acknowledgement.message,
                    "acknowledged_at": acknowledgement.acknowledged_at,
                },
            )
        except Exception as e:
            logger.error("Failed to broadcast acknowledgement", event_id=event.id, error=str(e))

    async def _notify_originator(self, event: SOSEvent, user: User, acknowledgement: SOSAcknowledgement) -> None:
        request = FamilyAlertRequest(
            event_id=event.id,
            family_members=[FamilyMemberIn(user_id=event.user_id)],
            location=AlertLocation(lat=event.lat, lng=event.lng, address=event.address),
            user_profile=AlertUserProfile(
                first_name=user.first_name or "",
                last_name=user.last_name or "",
                phone=user.phone_number,
            ),
            alert_type=FamilyAlertTypeEnum.ACKNOWLEDGEMENT,
            message=f"Family member responded: {acknowledgement.message}",
        )
        try:
            await self.alert_service.send_alerts(request)
        except Exception as e:
            logger.error("Failed to notify SOS originator", event_id=event.id, error=str(e))

    async def _pause_call_sequence(self, event_id: int) -> bool:
        try:
            return await self.call_control.pause_sequence(event_id, PAUSE_REASON)
        except Exception as e:
            logger.error("Failed to pause call sequence", event_id=event_id, error=str(e))
            return False
