"""
Geofence detection endpoint, reserved to internal callers.
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import require_internal_caller
from schemas.place import PlaceEventDetectRequest, PlaceEventDetectResponse
from services.geofence_service import GeofenceService

logger = logging.getLogger(__name__)

router = APIRouter()


async def _parse_detect_request(request: Request) -> PlaceEventDetectRequest:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")

    if not isinstance(body, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")

    try:
        payload = PlaceEventDetectRequest.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.errors()[0].get("msg", "Invalid payload"))

    if payload.user_id is None or payload.lat is None or payload.lng is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user_id, lat and lng are required")
    return payload


@router.post(
    "/detect-events",
    response_model=PlaceEventDetectResponse,
    dependencies=[Depends(require_internal_caller)]
)
async def detect_place_events(
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Record enter/exit transitions for the user's family places."""
    payload = await _parse_detect_request(request)

    try:
        events = await GeofenceService(db).detect_place_events(payload.user_id, payload.lat, payload.lng)
    except Exception as e:
        logger.error(f"Error detecting place events for user {payload.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
    return PlaceEventDetectResponse(events_created=len(events))
