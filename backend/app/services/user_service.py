"""
User lookups and the legacy subscription pointer
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.exceptions import NotFoundError
from app.models.subscription import Subscription
from app.models.user import User

logger = logging.getLogger(__name__)


class UserService:
    """User service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def set_legacy_subscription(self, user: User, subscription_id: str) -> User:
        """Point the user's legacy subscription_id at an existing subscription"""
        user.subscription_id = subscription_id
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def assign_legacy_subscription(self, user_id: str, subscription_id: str) -> User:
        """
        Admin variant: look both rows up first.

        The subscription must belong to the user.
        """
        user = await self.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        subscription = await self.db.get(Subscription, subscription_id)
        if not subscription or subscription.user_id != user_id:
            raise NotFoundError("Subscription not found")

        user = await self.set_legacy_subscription(user, subscription_id)
        logger.info("User %s now points at subscription %s", user_id, subscription_id)
        return user
