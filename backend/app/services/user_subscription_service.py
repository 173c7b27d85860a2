"""
User subscription service: aggregated plan limits and the subscription lifecycle

A user may hold several ACTIVE subscriptions at once; their allowances stack
additively. Reads and user-scoped writes are allowed for the user themselves
or an ADMIN. The by-id operations (cancel_subscription / renew_subscription)
do no ownership check here, their routes are admin-only.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import select, update, func, exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
)
from app.models.enums import BillingPeriod, SubscriptionStatus, UserRole
from app.models.meeting import Meeting
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription
from app.models.user import User
from app.models.user_storage import UserStorage
from app.schemas.auth import UserResponse
from app.schemas.subscription import Limits

logger = logging.getLogger(__name__)

ALREADY_SUBSCRIBED = "User is already subscribed to this plan"


def sum_plan_limits(subscriptions: List[Subscription]) -> Limits:
    """Elementwise sum of the plan allowances of the given subscriptions"""
    limits = Limits()
    for subscription in subscriptions:
        limits.storage_limit += subscription.plan.storage_limit
        limits.meeting_duration += subscription.plan.meeting_duration
        limits.meetings_allowed += subscription.plan.meetings_allowed
    return limits


class UserSubscriptionService:
    """Subscription limits and lifecycle, scoped to the calling user"""

    def __init__(self, db: AsyncSession, current_user: UserResponse | User):
        self.db = db
        self.current_user = current_user

    def _authorize(self, user_id: str) -> None:
        """Caller must be the target user or an admin"""
        if self.current_user.id != user_id and self.current_user.role != UserRole.ADMIN.value:
            raise UnauthorizedError(
                "You are not authorized to view this user's subscription plan"
            )

    # ---------- limits ---------- #

    async def get_user_subscription_plans(self, user_id: str) -> Dict[str, Any]:
        """
        Active subscriptions of a user, each with its plan loaded.

        Returns {"subscriptions": [...], "user": User}. An empty list is a
        valid result.
        """
        self._authorize(user_id)
        try:
            user = await self.db.get(User, user_id)
            if not user:
                raise NotFoundError("User not found or not authenticated")

            result = await self.db.execute(
                select(Subscription)
                .options(selectinload(Subscription.plan))
                .where(
                    Subscription.user_id == user.id,
                    Subscription.status == SubscriptionStatus.ACTIVE.value,
                )
                .order_by(Subscription.start_date)
            )
            subscriptions = list(result.scalars().all())
        except ServiceError:
            raise
        except SQLAlchemyError as e:
            logger.error("Error getting subscriptions for user %s: %s", user_id, e, exc_info=True)
            raise InternalError(f"Error getting user subscription: {e}") from e

        return {"subscriptions": subscriptions, "user": user}

    async def get_user_limits(self, user_id: str) -> Dict[str, Any]:
        data = await self.get_user_subscription_plans(user_id)
        return {"user": data["user"], "subscription": data}

    async def get_user_total_limits_with_subscriptions(self, user_id: str) -> Dict[str, Any]:
        """Active subscriptions together with their summed allowances"""
        data = await self.get_user_subscription_plans(user_id)
        subscriptions = data["subscriptions"]
        return {"subscriptions": subscriptions, "limits": sum_plan_limits(subscriptions)}

    async def get_user_total_limits(self, user_id: str) -> Limits:
        """Summed allowances over all active subscriptions (all zero when there are none)"""
        data = await self.get_user_total_limits_with_subscriptions(user_id)
        return data["limits"]

    async def get_user_remaining_limits(self, user_id: str) -> Limits:
        """
        Totals minus usage: stored meetings and used storage are subtracted.

        meeting_duration is returned as the plain total, it is not reduced
        by any usage.
        """
        totals = await self.get_user_total_limits(user_id)
        meetings_count = await self.db.scalar(
            select(func.count()).select_from(Meeting).where(Meeting.user_id == user_id)
        )
        storage = await self._get_or_create_storage(user_id)

        return Limits(
            storage_limit=totals.storage_limit - storage.used_storage,
            meeting_duration=totals.meeting_duration,
            meetings_allowed=totals.meetings_allowed - (meetings_count or 0),
        )

    async def _get_or_create_storage(self, user_id: str) -> UserStorage:
        """Fetch the user's storage accumulator, creating it with zero usage if absent"""
        storage = await self.db.get(UserStorage, user_id)
        if storage:
            return storage

        storage = UserStorage(user_id=user_id, used_storage=0)
        self.db.add(storage)
        try:
            await self.db.commit()
        except IntegrityError:
            # created by a concurrent request
            await self.db.rollback()
            storage = await self.db.get(UserStorage, user_id)
        return storage

    # ---------- lifecycle ---------- #

    async def user_subscribe_to_plan(self, user_id: str, plan_id: str) -> Subscription:
        """
        Subscribe a user to a plan.

        Holding an active subscription to a different plan is fine (plans
        stack); a second active subscription to the same plan is a conflict.
        Prices are recorded as zero, no payment is taken here.
        """
        current = await self.get_user_subscription_plans(user_id)

        plan = await self.db.get(SubscriptionPlan, plan_id)
        if not plan:
            raise NotFoundError("Subscription plan not found")

        if any(s.plan_id == plan_id for s in current["subscriptions"]):
            raise ConflictError(ALREADY_SUBSCRIBED)

        subscription = Subscription(
            user_id=user_id,
            plan_id=plan_id,
            status=SubscriptionStatus.ACTIVE.value,
            billing_period=BillingPeriod(settings.DEFAULT_BILLING_PERIOD).value,
            start_date=datetime.now(timezone.utc),
            base_price=0,
            total_price=0,
        )
        self.db.add(subscription)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # lost a race against a concurrent subscribe to the same plan
            await self.db.rollback()
            raise ConflictError(ALREADY_SUBSCRIBED) from e
        await self.db.refresh(subscription)

        logger.info("User %s subscribed to plan %s (subscription %s)", user_id, plan_id, subscription.id)
        return subscription

    async def user_cancel_subscription(self, user_id: str, plan_id: str) -> int:
        """Cancel the user's active subscriptions to one plan. Returns the number of rows changed."""
        self._authorize(user_id)
        return await self._cancel_active(
            Subscription.user_id == user_id,
            Subscription.plan_id == plan_id,
        )

    async def user_cancel_all_active_subscriptions(self, user_id: str) -> int:
        """Cancel every active subscription of the user. Zero rows is not an error."""
        self._authorize(user_id)
        return await self._cancel_active(Subscription.user_id == user_id)

    async def _cancel_active(self, *criteria) -> int:
        result = await self.db.execute(
            update(Subscription)
            .where(Subscription.status == SubscriptionStatus.ACTIVE.value, *criteria)
            .values(
                status=SubscriptionStatus.CANCELED.value,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.commit()
        logger.info("Canceled %d active subscription(s)", result.rowcount)
        return result.rowcount

    async def cancel_subscription(self, subscription_id: str) -> Subscription:
        """Set one subscription to CANCELED by id"""
        return await self._set_status(subscription_id, SubscriptionStatus.CANCELED)

    async def renew_subscription(self, subscription_id: str) -> Subscription:
        """Set one subscription back to ACTIVE by id"""
        return await self._set_status(subscription_id, SubscriptionStatus.ACTIVE)

    async def _set_status(self, subscription_id: str, status: SubscriptionStatus) -> Subscription:
        subscription = await self.db.get(Subscription, subscription_id)
        if not subscription:
            raise NotFoundError("Subscription not found")

        subscription.status = status.value
        subscription.updated_at = datetime.now(timezone.utc)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # renewing next to another active subscription to the same plan
            await self.db.rollback()
            raise ConflictError(ALREADY_SUBSCRIBED) from e
        await self.db.refresh(subscription)

        logger.info("Subscription %s set to %s", subscription_id, status.value)
        return subscription

    async def is_user_subscribed_to_early_access_plan(self, user_id: str) -> bool:
        """Whether the user holds an active subscription to the early-access plan"""
        return bool(
            await self.db.scalar(
                select(
                    exists().where(
                        Subscription.user_id == user_id,
                        Subscription.plan_id == settings.EARLY_ACCESS_PLAN_ID,
                        Subscription.status == SubscriptionStatus.ACTIVE.value,
                    )
                )
            )
        )
