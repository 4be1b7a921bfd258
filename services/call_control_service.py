"""
Client for the emergency call-sequence controller.

The automated calling workflow runs elsewhere; this service only signals it.
"""

from typing import Any, Dict, Optional

import httpx

from core.config import settings
from core.logging import get_logger

logger = get_logger(__name__)


class CallControlService:
    def __init__(self) -> None:
        self.base_url = settings.CALL_CONTROL_URL
        self.api_key = settings.CALL_CONTROL_API_KEY
        if not self.base_url:
            logger.warning("CALL_CONTROL_URL not configured; call sequence control disabled")

    def _is_enabled(self) -> bool:
        return bool(self.base_url)

    async def _send_action(self, action: str, event_id: int, reason: Optional[str] = None) -> bool:
        if not self._is_enabled():
            logger.warning("Call control not configured, skipping action", action=action, event_id=event_id)
            return False

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        body: Dict[str, Any] = {"action": action, "event_id": event_id}
        if reason:
            body["reason"] = reason

        async with httpx.AsyncClient(timeout=settings.CHANNEL_TIMEOUT_SECONDS) as client:
            resp = await client.post(self.base_url, headers=headers, json=body)
            resp.raise_for_status()

        logger.info("Call sequence action sent", action=action, event_id=event_id, reason=reason)
        return True

    async def pause_sequence(self, event_id: int, reason: str) -> bool:
        """Ask the calling workflow to stand down for this event."""
        return await self._send_action("pause", event_id, reason)


call_control_service = CallControlService()
