"""
Push notification service.

Uses Firebase Cloud Messaging through firebase-admin.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, messaging

from core.config import settings
from core.logging import get_logger

logger = get_logger(__name__)


class PushNotificationService:
    """Push notification service for registered devices."""

    def __init__(self):
        self.app = None
        self._initialized = False

    def _get_app(self):
        if self._initialized:
            return self.app
        self._initialized = True

        raw = settings.FIREBASE_CREDENTIALS
        if not raw:
            logger.warning("FIREBASE_CREDENTIALS not configured; push notifications disabled")
            return None

        if raw.strip().startswith("{"):
            # Stringified service account JSON
            cred = credentials.Certificate(json.loads(raw))
        else:
            # Path to the service account file
            cred = credentials.Certificate(raw)

        if firebase_admin._apps:
            self.app = firebase_admin.get_app()
        else:
            self.app = firebase_admin.initialize_app(cred)
        return self.app

    async def send(
        self,
        token: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Optional[str]:
        """
        Send a notification to one device token.

        Returns the FCM message id, or None when push is not configured.
        Delivery errors propagate to the caller.
        """
        app = self._get_app()
        if app is None:
            logger.warning("Push service not configured, skipping push send")
            return None

        # FCM data payloads only accept string values
        str_data = {
            key: value if isinstance(value, str) else json.dumps(value, default=str)
            for key, value in (data or {}).items()
        }
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            token=token,
            data=str_data,
        )
        message_id = await asyncio.to_thread(messaging.send, message, app=app)
        logger.info("Push notification sent", message_id=message_id)
        return message_id


push_service = PushNotificationService()
