"""
Family alert fan-out endpoint, reserved to internal callers.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import require_internal_caller
from schemas.family_alert import FamilyAlertRequest, FamilyAlertResponse
from services.family_alert_service import FamilyAlertService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/sos",
    response_model=FamilyAlertResponse,
    dependencies=[Depends(require_internal_caller)]
)
async def send_family_sos_alerts(
    request: FamilyAlertRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Deliver an alert to every listed family member.

    A 2xx means the batch ran; per-recipient detail is in `alert_results`.
    """
    try:
        report = await FamilyAlertService(db).send_alerts(request)
        return report.to_response()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error sending family alerts for event {request.event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
