"""
Subscription rows by id (admin listing and the legacy per-user pointer)
"""
import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription
from app.models.user import User
from app.schemas.subscription import SubscriptionCreate, SubscriptionUpdate
from app.services.user_subscription_service import ALREADY_SUBSCRIBED

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Subscription service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_subscriptions(self) -> List[Subscription]:
        result = await self.db.execute(
            select(Subscription)
            .options(selectinload(Subscription.plan))
            .order_by(Subscription.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_subscription(self, subscription_id: str) -> Subscription:
        result = await self.db.execute(
            select(Subscription)
            .options(selectinload(Subscription.plan))
            .where(Subscription.id == subscription_id)
        )
        subscription = result.scalar_one_or_none()
        if not subscription:
            raise NotFoundError("Subscription not found")
        return subscription

    async def delete_subscription(self, subscription_id: str) -> Subscription:
        """Remove a subscription row; clears any legacy pointers to it"""
        subscription = await self.get_subscription(subscription_id)
        result = await self.db.execute(select(User).where(User.subscription_id == subscription_id))
        for user in result.scalars().all():
            user.subscription_id = None
        await self.db.delete(subscription)
        await self.db.commit()
        logger.info("Deleted subscription %s", subscription_id)
        return subscription

    async def get_legacy_subscription(self, user: User) -> Subscription:
        """The subscription the user's legacy subscription_id points at"""
        if not user.subscription_id:
            raise NotFoundError("Subscription not found")
        return await self.get_subscription(user.subscription_id)

    async def create_subscription(self, data: SubscriptionCreate) -> Subscription:
        """Insert a subscription row as given; user and plan must exist"""
        if not await self.db.get(User, data.user_id):
            raise NotFoundError("User not found")
        if not await self.db.get(SubscriptionPlan, data.plan_id):
            raise NotFoundError("Subscription plan not found")

        values = data.model_dump(exclude_none=True)
        values["status"] = data.status.value
        values["billing_period"] = data.billing_period.value
        subscription = Subscription(**values)
        self.db.add(subscription)
        await self._commit()
        logger.info("Created subscription %s for user %s", subscription.id, data.user_id)
        return await self.get_subscription(subscription.id)

    async def update_subscription(self, subscription_id: str, data: SubscriptionUpdate) -> Subscription:
        """Apply the fields that were sent (status, dates, prices)"""
        subscription = await self.get_subscription(subscription_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None:
                continue
            if hasattr(value, "value"):
                value = value.value
            setattr(subscription, field, value)
        subscription.updated_at = datetime.now(timezone.utc)

        await self._commit()
        logger.info("Updated subscription %s: %s", subscription_id, sorted(changes))
        return await self.get_subscription(subscription_id)

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            # a second ACTIVE row for the same (user, plan)
            await self.db.rollback()
            raise ConflictError(ALREADY_SUBSCRIBED) from e
