"""
Connection model: owner (protected person) to contact relationships.
"""

from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.database import Base


class ConnectionTypeEnum(str, PyEnum):
    TRUSTED_CONTACT = "trusted_contact"
    FAMILY_CIRCLE = "family_circle"
    CALL_ONLY = "call_only"


class ConnectionStatusEnum(str, PyEnum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Connection(Base):
    __tablename__ = "connections"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    contact_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # null until invite is accepted
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(20), nullable=True)
    type = Column(String(30), nullable=False, default=ConnectionTypeEnum.TRUSTED_CONTACT.value)
    status = Column(String(20), nullable=False, default=ConnectionStatusEnum.PENDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", foreign_keys=[owner_id])
    contact_user = relationship("User", foreign_keys=[contact_user_id])

    def __repr__(self):
        return f"<Connection(id={self.id}, owner_id={self.owner_id}, type='{self.type}')>"
