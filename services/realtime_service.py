"""
Realtime broadcast over Redis pub/sub.

Clients (family dashboards, the SOS app) subscribe to per-member and
per-event channels through the websocket gateway.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict

from core.logging import get_logger
from core.redis import FAMILY_MEMBER_CHANNEL, SOS_EVENT_CHANNEL, conn

logger = get_logger(__name__)


def family_member_channel(user_id: int) -> str:
    return FAMILY_MEMBER_CHANNEL.format(user_id=user_id)


def sos_event_channel(event_id: int) -> str:
    return SOS_EVENT_CHANNEL.format(event_id=event_id)


class RealtimeService:
    """Publishes JSON envelopes `{event, payload, sent_at}` to Redis channels."""

    def __init__(self, client=None):
        self.client = client or conn

    async def broadcast(self, channel: str, event: str, payload: Dict[str, Any]) -> int:
        """Publish and return the number of subscribers that received it."""
        message = json.dumps(
            {
                "event": event,
                "payload": payload,
                "sent_at": datetime.now(timezone.utc).isoformat(),
            },
            default=str,
        )
        receivers = await self.client.publish(channel, message)
        logger.info("Realtime message published", channel=channel, event_name=event, receivers=receivers)
        return receivers


realtime_service = RealtimeService()
