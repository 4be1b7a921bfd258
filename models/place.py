from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.database import Base


class PlaceEventTypeEnum(str, PyEnum):
    ENTER = "enter"
    EXIT = "exit"


class Place(Base):
    """Named circular geofence scoped to a family group."""

    __tablename__ = "places"

    id = Column(Integer, primary_key=True, index=True)
    family_group_id = Column(Integer, ForeignKey("family_groups.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    radius_m = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    family_group = relationship("FamilyGroup", back_populates="places")

    def __repr__(self):
        return f"<Place(id={self.id}, name='{self.name}')>"


class PlaceEvent(Base):
    __tablename__ = "place_events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    place_id = Column(Integer, ForeignKey("places.id"), nullable=False, index=True)
    event = Column(String(10), nullable=False)
    occurred_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
