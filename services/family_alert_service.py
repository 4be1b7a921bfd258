"""
Family alert fan-out.

Every recipient is handled independently and every channel attempt is
isolated: a broken push token or a Redis outage for one member never blocks
delivery to the same member on another channel, or to anyone else.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logging import get_logger
from models.sos import FamilyAlertTypeEnum
from repositories.sos import FamilyAlertRepository
from repositories.user import UserRepository
from schemas.family_alert import (
    AcknowledgementAlertPayload,
    AlertLocation,
    AlertResult,
    AlertUserProfile,
    FamilyAlertRequest,
    FamilyAlertResponse,
    FamilyMemberIn,
    SOSAlertPayload,
)
from services.push_service import push_service
from services.realtime_service import family_member_channel, realtime_service

logger = get_logger(__name__)

CHANNEL_STORED = "stored"
CHANNEL_REALTIME = "realtime"
CHANNEL_PUSH = "push"


@dataclass
class ChannelResult:
    channel: str
    ok: bool
    error: Optional[str] = None


@dataclass
class RecipientOutcome:
    user_id: Optional[int]
    status: str
    methods: List[str] = field(default_factory=list)
    channels: List[ChannelResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == "sent"

    def to_result(self) -> AlertResult:
        # Per-channel detail stays in the server logs
        if self.sent:
            return AlertResult(user_id=self.user_id, status="sent", methods=self.methods)
        return AlertResult(user_id=self.user_id, status="failed", error=self.error)


@dataclass
class AlertBatchReport:
    event_id: int
    outcomes: List[RecipientOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def alerts_sent(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.sent)

    def to_response(self) -> FamilyAlertResponse:
        return FamilyAlertResponse(
            success=True,
            alerts_sent=self.alerts_sent,
            total_family_members=self.total,
            alert_results=[outcome.to_result() for outcome in self.outcomes],
            event_id=self.event_id,
        )


def build_alert_message(user_profile: AlertUserProfile, location: AlertLocation) -> str:
    first = user_profile.first_name or ""
    last = user_profile.last_name or ""
    where = location.address or "their location"
    return f"🚨 EMERGENCY: {first} {last} needs help at {where}"


class FamilyAlertService:
    def __init__(
        self,
        db: AsyncSession,
        realtime=None,
        push=None,
        timeout: Optional[float] = None
    ):
        self.db = db
        self.alert_repo = FamilyAlertRepository(db)
        self.user_repo = UserRepository(db)
        self.realtime = realtime or realtime_service
        self.push = push or push_service
        self.timeout = timeout if timeout is not None else settings.CHANNEL_TIMEOUT_SECONDS

    async def send_alerts(self, request: FamilyAlertRequest) -> AlertBatchReport:
        """Deliver one alert to every family member and report per recipient."""
        logger.info(
            "Processing family alerts",
            event_id=request.event_id,
            alert_type=request.alert_type.value,
            family_member_count=len(request.family_members),
        )

        device_tokens = await self._load_device_tokens(request.family_members)
        report = AlertBatchReport(event_id=request.event_id)

        for member in request.family_members:
            outcome = await self._alert_member(request, member, device_tokens)
            report.outcomes.append(outcome)

        logger.info(
            "Family alerts completed",
            event_id=request.event_id,
            total_members=report.total,
            alerts_sent=report.alerts_sent,
            failures=report.total - report.alerts_sent,
        )
        return report

    def build_payload(self, request: FamilyAlertRequest) -> Dict[str, Any]:
        timestamp = datetime.now(timezone.utc).isoformat()
        if request.alert_type == FamilyAlertTypeEnum.ACKNOWLEDGEMENT:
            payload = AcknowledgementAlertPayload(
                event_id=request.event_id,
                location=request.location,
                user_profile=request.user_profile,
                timestamp=timestamp,
                message=request.message or "A family member acknowledged your SOS",
            )
        else:
            payload = SOSAlertPayload(
                event_id=request.event_id,
                location=request.location,
                user_profile=request.user_profile,
                timestamp=timestamp,
                message=request.message or build_alert_message(request.user_profile, request.location),
            )
        return payload.model_dump(mode="json")

    def _push_content(self, request: FamilyAlertRequest, payload: Dict[str, Any]) -> Dict[str, Any]:
        if request.alert_type == FamilyAlertTypeEnum.ACKNOWLEDGEMENT:
            title = "✅ Family member responded"
            body = payload["message"]
        else:
            first = request.user_profile.first_name or "Someone"
            where = request.location.address or "their location"
            title = "🚨 EMERGENCY ALERT"
            body = f"{first} needs help at {where}"
        return {
            "title": title,
            "body": body,
            "data": {
                "type": payload["type"],
                "event_id": request.event_id,
                "location": payload["location"],
            },
        }

    async def _alert_member(
        self,
        request: FamilyAlertRequest,
        member: FamilyMemberIn,
        device_tokens: Dict[int, Optional[str]]
    ) -> RecipientOutcome:
        try:
            if member.user_id is None:
                raise ValueError("Family member record has no user_id")

            logger.info(
                "Sending alert to family member",
                event_id=request.event_id,
                member_id=member.user_id,
                member_name=member.display_name,
            )

            payload = self.build_payload(request)
            outcome = RecipientOutcome(user_id=member.user_id, status="sent")

            # Audit row first so a trail exists even if every channel fails
            stored = await self._attempt(
                CHANNEL_STORED,
                lambda: self.alert_repo.create(
                    event_id=request.event_id,
                    family_user_id=member.user_id,
                    alert_type=request.alert_type.value,
                    alert_data=payload,
                    status="sent",
                ),
                bounded=False,
            )
            outcome.channels.append(stored)

            realtime_event = payload["type"]
            outcome.channels.append(await self._attempt(
                CHANNEL_REALTIME,
                lambda: self.realtime.broadcast(family_member_channel(member.user_id), realtime_event, payload),
            ))

            token = device_tokens.get(member.user_id)
            if token:
                push = self._push_content(request, payload)
                outcome.channels.append(await self._attempt(
                    CHANNEL_PUSH,
                    lambda: self.push.send(token, push["title"], push["body"], push["data"]),
                ))

            outcome.methods = [result.channel for result in outcome.channels]
            return outcome

        except Exception as e:
            logger.error(
                "Error sending alert to family member",
                event_id=request.event_id,
                member_id=member.user_id,
                error=str(e),
            )
            return RecipientOutcome(user_id=member.user_id, status="failed", error=str(e))

    async def _attempt(
        self,
        channel: str,
        call: Callable[[], Awaitable[Any]],
        bounded: bool = True
    ) -> ChannelResult:
        # Session writes are never cancelled mid-commit; only remote channels are bounded
        try:
            if bounded:
                result = await asyncio.wait_for(call(), timeout=self.timeout)
            else:
                result = await call()
        except asyncio.TimeoutError:
            logger.warning("Alert channel timed out", channel=channel, timeout=self.timeout)
            return ChannelResult(channel=channel, ok=False, error=f"timed out after {self.timeout}s")
        except Exception as e:
            logger.warning("Alert channel failed", channel=channel, error=str(e))
            return ChannelResult(channel=channel, ok=False, error=str(e))

        if result is None or result is False:
            logger.info("Alert channel skipped", channel=channel)
            return ChannelResult(channel=channel, ok=False, error="not delivered")
        return ChannelResult(channel=channel, ok=True)

    async def _load_device_tokens(self, members: List[FamilyMemberIn]) -> Dict[int, Optional[str]]:
        try:
            users = await self.user_repo.get_users_by_ids(m.user_id for m in members)
        except SQLAlchemyError as e:
            logger.warning("Could not load device tokens; push disabled for this batch", error=str(e))
            return {}
        return {user_id: user.device_token for user_id, user in users.items()}
