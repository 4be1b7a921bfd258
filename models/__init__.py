"""
SQLAlchemy ORM models for the SOS backend.

Contains all database models organized by module.
"""

from .organization import Organization
from .user import User
from .authentication import UserSession
from .connection import Connection
from .family import FamilyGroup, FamilyMembership
from .sos import SOSEvent, SOSLocation, SOSEventAccess, SOSAcknowledgement, FamilyAlert, RegionalSOSEvent
from .place import Place, PlaceEvent

__all__ = [
    "Organization",
    "User",
    "UserSession",
    "Connection",
    "FamilyGroup",
    "FamilyMembership",
    "SOSEvent",
    "SOSLocation",
    "SOSEventAccess",
    "SOSAcknowledgement",
    "FamilyAlert",
    "RegionalSOSEvent",
    "Place",
    "PlaceEvent",
]
