from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.database import Base


class MembershipStatusEnum(str, PyEnum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class BillingTypeEnum(str, PyEnum):
    OWNER = "owner"  # seat paid by the group owner
    SELF = "self"


class FamilyGroup(Base):
    __tablename__ = "family_groups"

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User")
    memberships = relationship("FamilyMembership", back_populates="group", cascade="all, delete-orphan")
    places = relationship("Place", back_populates="family_group", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<FamilyGroup(id={self.id}, owner_user_id={self.owner_user_id})>"


class FamilyMembership(Base):
    __tablename__ = "family_memberships"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_family_membership_group_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("family_groups.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=MembershipStatusEnum.PENDING.value)
    billing_type = Column(String(20), nullable=False, default=BillingTypeEnum.OWNER.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    group = relationship("FamilyGroup", back_populates="memberships")
    user = relationship("User")

    def __repr__(self):
        return f"<FamilyMembership(group_id={self.group_id}, user_id={self.user_id}, status='{self.status}')>"
