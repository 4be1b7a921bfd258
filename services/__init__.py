"""
Services module for the SOS backend.

Contains business logic and external service integrations.
"""

# Expose the channel singletons for convenient imports
from .push_service import push_service  # noqa: F401
from .realtime_service import realtime_service  # noqa: F401
from .call_control_service import call_control_service  # noqa: F401
