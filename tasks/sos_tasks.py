import asyncio
import logging
from typing import Any, Dict, Optional

from celery_app import celery_app
from core.database import engine, get_async_session
from models.sos import FamilyAlertTypeEnum
from repositories.family import FamilyRepository
from repositories.sos import FamilyAlertRepository, SOSEventRepository
from repositories.user import UserRepository
from schemas.family_alert import AlertLocation, AlertUserProfile, FamilyAlertRequest, FamilyMemberIn
from services.family_alert_service import FamilyAlertService
from services.geofence_service import GeofenceService

logger = logging.getLogger(__name__)


def run_async(coro_fn, *args):
    """Run a coroutine from a worker, releasing pooled connections bound to its loop."""
    async def runner():
        try:
            return await coro_fn(*args)
        finally:
            await engine.dispose()
    return asyncio.run(runner())


async def build_family_alert_request(db, event_id: int) -> Optional[FamilyAlertRequest]:
    """Recipients are the active members of the event's family group, minus the originator."""
    event = await SOSEventRepository(db).get_event(event_id)
    if not event:
        logger.warning(f"SOS event {event_id} not found, nothing to dispatch")
        return None
    if not event.group_id:
        logger.info(f"SOS event {event_id} has no family group, nothing to dispatch")
        return None

    members = await FamilyRepository(db).get_active_members_with_profiles(event.group_id)
    recipients = [FamilyMemberIn(**m) for m in members if m["user_id"] != event.user_id]
    if not recipients:
        logger.info(f"SOS event {event_id} has no family members to alert")
        return None

    user = await UserRepository(db).get_user_by_id(event.user_id)
    profile = AlertUserProfile()
    if user:
        profile = AlertUserProfile(
            first_name=user.first_name or "",
            last_name=user.last_name or "",
            phone=user.phone_number,
        )
    return FamilyAlertRequest(
        event_id=event.id,
        family_members=recipients,
        location=AlertLocation(lat=event.lat, lng=event.lng, address=event.address),
        user_profile=profile,
    )


async def _dispatch_family_sos_alerts(event_id: int) -> Dict[str, Any]:
    async with get_async_session() as db:
        already_sent = await FamilyAlertRepository(db).list_for_event(
            event_id, FamilyAlertTypeEnum.SOS_EMERGENCY.value
        )
        if already_sent:
            logger.warning(
                f"SOS event {event_id} already has {len(already_sent)} family alerts, skipping dispatch"
            )
            return {"event_id": event_id, "alerts_sent": 0, "total_family_members": 0, "skipped": True}

        request = await build_family_alert_request(db, event_id)
        if request is None:
            return {"event_id": event_id, "alerts_sent": 0, "total_family_members": 0}

        report = await FamilyAlertService(db).send_alerts(request)
        return {
            "event_id": event_id,
            "alerts_sent": report.alerts_sent,
            "total_family_members": report.total,
        }


async def _detect_place_events(user_id: int, lat: float, lng: float) -> int:
    async with get_async_session() as db:
        events = await GeofenceService(db).detect_place_events(user_id, lat, lng)
        return len(events)


@celery_app.task(name="dispatch_family_sos_alerts")
def dispatch_family_sos_alerts(event_id: int):
    try:
        result = run_async(_dispatch_family_sos_alerts, event_id)
        logger.info(f"Family alert dispatch for event {event_id} finished: {result}")
        return result
    except Exception as e:
        logger.error(f"error in dispatch_family_sos_alerts task for event {event_id}: {e}")
        raise


@celery_app.task(name="detect_place_events")
def detect_place_events(user_id: int, lat: float, lng: float):
    try:
        return run_async(_detect_place_events, user_id, lat, lng)
    except Exception as e:
        logger.error(f"error in detect_place_events task for user {user_id}: {e}")
        raise
