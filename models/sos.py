"""
SOS event models.

An SOSEvent is created active by event intake and only ever mutated by
resolution; the other tables hang off it as append-only children.
"""

from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Text, Float, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.database import Base


class EmergencyTypeEnum(str, PyEnum):
    GENERAL = "general"
    MEDICAL = "medical"
    OTHER = "other"


class TriggerSourceEnum(str, PyEnum):
    APP = "app"
    DEVICE = "device"
    WEB = "web"


class SOSStatusEnum(str, PyEnum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class AccessScopeEnum(str, PyEnum):
    LIVE_ONLY = "live_only"


class FamilyAlertTypeEnum(str, PyEnum):
    SOS_EMERGENCY = "sos_emergency"
    ACKNOWLEDGEMENT = "acknowledgement"


class RegionalStatusEnum(str, PyEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class RegionalPriorityEnum(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SOSEvent(Base):
    __tablename__ = "sos_events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("family_groups.id"), nullable=True, index=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    address = Column(String(255), nullable=True)
    emergency_type = Column(String(20), nullable=False, default=EmergencyTypeEnum.GENERAL.value)
    source = Column(String(20), nullable=False, default=TriggerSourceEnum.APP.value)
    status = Column(String(20), nullable=False, default=SOSStatusEnum.ACTIVE.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User")
    family_group = relationship("FamilyGroup")
    locations = relationship("SOSLocation", back_populates="event", order_by="SOSLocation.id")
    access_grants = relationship("SOSEventAccess", back_populates="event")
    acknowledgements = relationship("SOSAcknowledgement", back_populates="event")

    def __repr__(self):
        return f"<SOSEvent(id={self.id}, user_id={self.user_id}, status='{self.status}')>"


class SOSLocation(Base):
    __tablename__ = "sos_locations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sos_events.id"), nullable=False, index=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)  # meters
    address = Column(String(255), nullable=True)
    recorded_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("SOSEvent", back_populates="locations")


class SOSEventAccess(Base):
    """Temporary, scope-limited access to an event for a trusted contact."""

    __tablename__ = "sos_event_access"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sos_events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    access_scope = Column(String(30), nullable=False, default=AccessScopeEnum.LIVE_ONLY.value)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("SOSEvent", back_populates="access_grants")


class SOSAcknowledgement(Base):
    __tablename__ = "sos_acknowledgements"
    __table_args__ = (
        UniqueConstraint("event_id", "family_user_id", name="uq_sos_acknowledgement_event_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sos_events.id"), nullable=False, index=True)
    family_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    acknowledged_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("SOSEvent", back_populates="acknowledgements")


class FamilyAlert(Base):
    """Append-only delivery log, one row per alert attempt and recipient."""

    __tablename__ = "family_alerts"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("sos_events.id"), nullable=False, index=True)
    family_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    alert_type = Column(String(30), nullable=False, default=FamilyAlertTypeEnum.SOS_EMERGENCY.value)
    alert_data = Column(JSON, nullable=True)
    status = Column(String(20), nullable=False, default="sent")
    sent_at = Column(DateTime(timezone=True), server_default=func.now())


class RegionalSOSEvent(Base):
    """Mirror of an SOS event handed to a regional operator."""

    __tablename__ = "regional_sos_events"

    id = Column(Integer, primary_key=True, index=True)
    sos_event_id = Column(Integer, ForeignKey("sos_events.id"), nullable=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    source = Column(String(20), nullable=True)
    emergency_type = Column(String(20), nullable=True)
    status = Column(String(20), nullable=False, default=RegionalStatusEnum.OPEN.value)
    priority = Column(String(20), nullable=False, default=RegionalPriorityEnum.MEDIUM.value)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    organization = relationship("Organization", back_populates="regional_sos_events")
