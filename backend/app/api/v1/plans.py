"""
Public plan catalog and self-service subscribe
"""
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.auth import UserResponse
from app.schemas.subscription import MessageResponse, PlanResponse, SubscriptionIdRequest, SubscriptionWithPlan
from app.api.deps import get_client_ip, get_request_id
from app.api.v1.auth import get_current_active_user
from app.services.audit_service import log_audit
from app.services.plan_service import PlanService
from app.services.subscription_service import SubscriptionService
from app.services.user_subscription_service import UserSubscriptionService

router = APIRouter()


@router.get("", response_model=List[PlanResponse])
async def get_plans(
    db: AsyncSession = Depends(get_db)
):
    """Active public plans"""
    return await PlanService(db).get_public_plans()


@router.get("/me", response_model=SubscriptionWithPlan)
async def get_my_plan_subscription(
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Same as GET /subscriptions/me: the subscription the legacy pointer names"""
    return await SubscriptionService(db).get_legacy_subscription(current_user)


@router.post("/me", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def subscribe_me(
    body: SubscriptionIdRequest,
    request: Request,
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Subscribe the current user to a plan (subscriptionId carries the plan id)"""
    service = UserSubscriptionService(db, current_user)
    subscription = await service.user_subscribe_to_plan(current_user.id, body.subscription_id)

    await log_audit(
        db,
        current_user.id,
        "subscription.create",
        resource_type="subscription",
        resource_id=subscription.id,
        detail={"plan_id": body.subscription_id},
        ip=get_client_ip(request),
        request_id=get_request_id(request),
    )
    return {"message": "Subscribed to plan"}


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Plan detail"""
    return await PlanService(db).get_plan_or_404(plan_id)
