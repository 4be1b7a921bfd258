from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
import logging

from models.family import FamilyGroup, FamilyMembership, MembershipStatusEnum
from models.user import User

logger = logging.getLogger(__name__)


class FamilyRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_group_by_owner(self, owner_user_id: int) -> Optional[FamilyGroup]:
        try:
            result = await self.db_session.execute(
                select(FamilyGroup)
                .where(FamilyGroup.owner_user_id == owner_user_id)
                .order_by(FamilyGroup.id)
                .limit(1)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_group_by_owner: {str(e)}")
            raise

    async def get_group_ids_for_user(self, user_id: int) -> List[int]:
        """Every group the user has a membership row in, whatever its status."""
        try:
            result = await self.db_session.execute(
                select(FamilyMembership.group_id)
                .where(FamilyMembership.user_id == user_id)
                .distinct()
            )
            return [row[0] for row in result.all()]
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_group_ids_for_user: {str(e)}")
            raise

    async def get_active_members_with_profiles(self, group_id: int) -> List[dict]:
        """
        Active members of a group joined with their profile, shaped as fan-out
        recipients.
        """
        try:
            result = await self.db_session.execute(
                select(FamilyMembership, User)
                .join(User, User.id == FamilyMembership.user_id)
                .where(
                    FamilyMembership.group_id == group_id,
                    FamilyMembership.status == MembershipStatusEnum.ACTIVE.value,
                )
                .order_by(FamilyMembership.id)
            )
            return [
                {
                    "user_id": user.id,
                    "billing_type": membership.billing_type,
                    "profiles": {
                        "first_name": user.first_name,
                        "last_name": user.last_name,
                        "user_id": user.id,
                    },
                }
                for membership, user in result.all()
            ]
        except SQLAlchemyError as e:
            logger.exception(f"Database error in get_active_members_with_profiles: {str(e)}")
            raise
