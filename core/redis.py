import redis.asyncio as redis

from core.config import settings

# Realtime channel names
FAMILY_MEMBER_CHANNEL = "family_member:{user_id}"
SOS_EVENT_CHANNEL = "sos_event:{event_id}"

conn = redis.from_url(
    settings.REDIS_URL,
    decode_responses=True  # returns strings instead of bytes
)
