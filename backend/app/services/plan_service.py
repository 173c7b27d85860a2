"""
Plan catalog service
"""
import asyncio
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription
from app.schemas.subscription import PlanCreate, PlanResponse, PlanUpdate
from app.services import cache_service

logger = logging.getLogger(__name__)


class PlanService:
    """Plan catalog service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_plans(self, include_inactive: bool = False) -> List[SubscriptionPlan]:
        """Plan list ordered by price; inactive plans only when asked for"""
        query = select(SubscriptionPlan).order_by(SubscriptionPlan.base_price, SubscriptionPlan.name)
        if not include_inactive:
            query = query.where(SubscriptionPlan.is_active == True)  # noqa: E712
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_public_plans(self) -> List[PlanResponse]:
        """Active public plans, served from the cache when possible"""
        cache_key = cache_service.key_public_plans()
        cached = await asyncio.to_thread(cache_service.get, cache_key)
        if cached is not None:
            return [PlanResponse(**p) for p in cached]

        result = await self.db.execute(
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active == True, SubscriptionPlan.is_public == True)  # noqa: E712
            .order_by(SubscriptionPlan.base_price, SubscriptionPlan.name)
        )
        plans = [PlanResponse.model_validate(p) for p in result.scalars().all()]
        await asyncio.to_thread(
            cache_service.set,
            cache_key,
            [p.model_dump(mode="json") for p in plans],
        )
        return plans

    async def get_plan(self, plan_id: str) -> Optional[SubscriptionPlan]:
        """Plan by id"""
        return await self.db.get(SubscriptionPlan, plan_id)

    async def get_plan_or_404(self, plan_id: str) -> SubscriptionPlan:
        plan = await self.get_plan(plan_id)
        if not plan:
            raise NotFoundError("Subscription plan not found")
        return plan

    async def create_plan(self, plan_data: PlanCreate) -> SubscriptionPlan:
        """Create a plan; a caller-supplied id must be unused"""
        if plan_data.id and await self.get_plan(plan_data.id):
            raise ConflictError("Subscription plan already exists")

        values = plan_data.model_dump(exclude_none=True)
        values["tier"] = plan_data.tier.value
        values["billing_periods"] = plan_data.billing_periods.value
        plan = SubscriptionPlan(**values)
        self.db.add(plan)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("Subscription plan already exists") from e
        await self.db.refresh(plan)

        await asyncio.to_thread(cache_service.invalidate_plan_cache)
        logger.info("Created plan %s (%s)", plan.id, plan.name)
        return plan

    async def update_plan(self, plan_id: str, plan_data: PlanUpdate) -> SubscriptionPlan:
        """Apply the fields that were sent; everything else is left alone"""
        plan = await self.get_plan_or_404(plan_id)
        changes = plan_data.model_dump(exclude_unset=True, exclude={"id"})
        for field, value in changes.items():
            if value is None:
                continue
            if hasattr(value, "value"):
                value = value.value
            setattr(plan, field, value)

        await self.db.commit()
        await self.db.refresh(plan)

        await asyncio.to_thread(cache_service.invalidate_plan_cache)
        logger.info("Updated plan %s: %s", plan_id, sorted(changes))
        return plan

    async def delete_plan(self, plan_id: str) -> SubscriptionPlan:
        """Delete a plan. Plans that still have subscriptions cannot be deleted."""
        plan = await self.get_plan_or_404(plan_id)
        in_use = await self.db.scalar(
            select(Subscription.id).where(Subscription.plan_id == plan_id).limit(1)
        )
        if in_use:
            raise ConflictError("Subscription plan has subscriptions and cannot be deleted")

        await self.db.delete(plan)
        await self.db.commit()

        await asyncio.to_thread(cache_service.invalidate_plan_cache)
        logger.info("Deleted plan %s", plan_id)
        return plan

    async def list_plan_subscribers(self, plan_id: str) -> dict:
        """The plan together with its subscriptions, each with its subscriber loaded"""
        plan = await self.get_plan_or_404(plan_id)
        result = await self.db.execute(
            select(Subscription)
            .options(selectinload(Subscription.user))
            .where(Subscription.plan_id == plan_id)
            .order_by(Subscription.created_at)
        )
        subscriptions = result.scalars().all()
        return {
            "subscription_plan": plan,
            "users": [
                {
                    "id": s.id,
                    "plan_id": s.plan_id,
                    "status": s.status,
                    "created_at": s.created_at,
                    "active_user": s.user,
                }
                for s in subscriptions
            ],
        }
