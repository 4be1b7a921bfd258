"""
SOS event API endpoints.

Event intake, acknowledgement and the owner's lifecycle operations.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.exceptions import SOSServiceError
from core.security import get_current_user, get_optional_user, is_internal_request
from models.user import User
from schemas.sos import (
    AcknowledgeRequest,
    AcknowledgeResponse,
    AcknowledgementListResponse,
    AcknowledgementRead,
    SOSEventCreate,
    SOSEventCreateResponse,
    SOSEventRead,
    SOSEventResponse,
    SOSLocationCreate,
    SOSLocationRead,
    SOSLocationResponse,
)
from services.acknowledgement_service import AcknowledgementService
from services.sos_service import SOSService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/events", response_model=SOSEventCreateResponse)
async def create_sos_event(
    request: Request,
    payload: SOSEventCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Trigger an SOS for `user_id`.

    Callers are either the user themself (bearer session) or an internal
    service presenting the shared-secret header.
    """
    if payload.user_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user_id is required")

    if not is_internal_request(request):
        if current_user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        if current_user.id != payload.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cannot trigger SOS on behalf of another user"
            )

    logger.info(f"SOS trigger received for user {payload.user_id} from {payload.source.value}")

    try:
        result = await SOSService(db).create_event(payload)
    except (HTTPException, SOSServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating SOS event for user {payload.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create SOS event: {str(e)}"
        )

    return SOSEventCreateResponse(
        event=SOSEventRead.model_validate(result.event),
        connections_notified=result.connections_notified,
        regional_created=result.regional_created,
        access_granted=result.access_granted,
    )


@router.post("/acknowledge", response_model=AcknowledgeResponse)
async def acknowledge_sos_event(
    payload: AcknowledgeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record that the calling family member has seen the event."""
    try:
        result = await AcknowledgementService(db).acknowledge(
            payload.event_id, current_user, payload.message
        )
    except (HTTPException, SOSServiceError):
        raise
    except Exception as e:
        logger.error(f"Error acknowledging SOS event {payload.event_id} by user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to acknowledge SOS event: {str(e)}"
        )

    return AcknowledgeResponse(
        message="SOS acknowledged" if result.created else "SOS already acknowledged",
        acknowledgement=AcknowledgementRead.model_validate(result.acknowledgement),
        call_sequence_paused=result.call_sequence_paused,
    )


@router.post("/events/{event_id}/resolve", response_model=SOSEventResponse)
async def resolve_sos_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        event = await SOSService(db).resolve_event(event_id, current_user)
    except (HTTPException, SOSServiceError):
        raise
    except Exception as e:
        logger.error(f"Error resolving SOS event {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to resolve SOS event: {str(e)}"
        )
    return SOSEventResponse(event=SOSEventRead.model_validate(event))


@router.post(
    "/events/{event_id}/locations",
    response_model=SOSLocationResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_sos_location(
    event_id: int,
    payload: SOSLocationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Append a coordinate sample to an active event."""
    try:
        location = await SOSService(db).add_location(event_id, current_user, payload)
    except (HTTPException, SOSServiceError):
        raise
    except Exception as e:
        logger.error(f"Error adding location to SOS event {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to add location: {str(e)}"
        )
    return SOSLocationResponse(location=SOSLocationRead.model_validate(location))


@router.get("/events/{event_id}/acknowledgements", response_model=AcknowledgementListResponse)
async def list_sos_acknowledgements(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        acknowledgements = await SOSService(db).list_acknowledgements(event_id, current_user)
    except (HTTPException, SOSServiceError):
        raise
    except Exception as e:
        logger.error(f"Error listing acknowledgements for SOS event {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list acknowledgements: {str(e)}"
        )
    return AcknowledgementListResponse(
        acknowledgements=[AcknowledgementRead.model_validate(a) for a in acknowledgements]
    )
