"""
Geofence enter/exit detection for family places.
"""

import math
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logging import get_logger
from models.place import Place, PlaceEvent, PlaceEventTypeEnum
from repositories.family import FamilyRepository
from repositories.place import PlaceRepository

logger = get_logger(__name__)

EARTH_RADIUS_M = 6371000.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_inside(distance_m: float, radius_m: Optional[float]) -> bool:
    radius = radius_m if radius_m is not None else settings.DEFAULT_PLACE_RADIUS_M
    return distance_m <= radius


def next_transition(prior: Optional[str], inside: bool) -> Optional[PlaceEventTypeEnum]:
    """
    Transition to record given the last stored event and the current state.

    With no history only an `enter` is recorded, so state is never seeded
    with an `exit`.
    """
    if prior is None:
        return PlaceEventTypeEnum.ENTER if inside else None

    was_inside = prior == PlaceEventTypeEnum.ENTER.value
    if inside == was_inside:
        return None
    return PlaceEventTypeEnum.ENTER if inside else PlaceEventTypeEnum.EXIT


class GeofenceService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.place_repo = PlaceRepository(db)
        self.family_repo = FamilyRepository(db)

    async def detect_place_events(self, user_id: int, lat: float, lng: float) -> List[PlaceEvent]:
        group_ids = await self.family_repo.get_group_ids_for_user(user_id)
        places = await self.place_repo.get_places_for_groups(group_ids)
        if not places:
            logger.debug("No places to check", user_id=user_id)
            return []

        now = datetime.now(timezone.utc)
        created = []
        for place in places:
            event = await self._check_place(place, user_id, lat, lng, now)
            if event is not None:
                created.append(event)

        logger.info(
            "Place events detected",
            user_id=user_id,
            places_checked=len(places),
            events_created=len(created),
        )
        return created

    async def _check_place(
        self,
        place: Place,
        user_id: int,
        lat: float,
        lng: float,
        now: datetime
    ) -> Optional[PlaceEvent]:
        distance = haversine_distance(lat, lng, place.lat, place.lng)
        inside = is_inside(distance, place.radius_m)

        last = await self.place_repo.get_last_event(user_id, place.id)
        transition = next_transition(last.event if last else None, inside)
        if transition is None:
            return None

        event = await self.place_repo.create_event(user_id, place.id, transition.value, now)
        logger.info(
            "Place transition recorded",
            user_id=user_id,
            place_id=place.id,
            transition=transition.value,
            distance_m=round(distance, 1),
        )
        return event
