"""
Current-user subscription API: aggregated limits, remaining allowance, cancel
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.auth import UserResponse
from app.schemas.subscription import (
    CancelRequest,
    CancelResponse,
    SubscriptionLimitsResponse,
    SubscriptionPrice,
    SubscriptionSummary,
    UserSubscriptionOverview,
)
from app.api.deps import get_client_ip, get_request_id
from app.api.v1.auth import get_current_active_user
from app.services.audit_service import log_audit
from app.services.user_subscription_service import UserSubscriptionService

router = APIRouter()


@router.get("/user/subscription", response_model=UserSubscriptionOverview)
async def get_my_subscription_overview(
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Active subscriptions, summed limits, what is left, and early-access membership"""
    service = UserSubscriptionService(db, current_user)
    data = await service.get_user_total_limits_with_subscriptions(current_user.id)
    remaining = await service.get_user_remaining_limits(current_user.id)
    is_early_access = await service.is_user_subscribed_to_early_access_plan(current_user.id)

    subscriptions = [
        SubscriptionSummary(
            id=s.id,
            plan_id=s.plan_id,
            plan_name=s.plan.name,
            status=s.status,
            billing_period=s.billing_period,
            start_date=s.start_date,
            end_date=s.end_date,
            price=SubscriptionPrice(base=float(s.base_price), total=float(s.total_price)),
        )
        for s in data["subscriptions"]
    ]
    return UserSubscriptionOverview(
        subscriptions=subscriptions,
        limits=data["limits"],
        remaining=remaining,
        is_early_access=is_early_access,
    )


@router.get("/users/subscriptions/me", response_model=SubscriptionLimitsResponse)
async def get_my_subscriptions(
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Active subscriptions of the current user with summed limits"""
    service = UserSubscriptionService(db, current_user)
    return await service.get_user_total_limits_with_subscriptions(current_user.id)


@router.post("/users/subscriptions/me/cancel", response_model=CancelResponse)
async def cancel_my_subscriptions(
    request: Request,
    body: CancelRequest | None = None,
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel one plan (planId) or, without a body, every active subscription"""
    service = UserSubscriptionService(db, current_user)
    plan_id = body.plan_id if body else None
    if plan_id:
        count = await service.user_cancel_subscription(current_user.id, plan_id)
    else:
        count = await service.user_cancel_all_active_subscriptions(current_user.id)

    await log_audit(
        db,
        current_user.id,
        "subscription.cancel",
        resource_type="plan" if plan_id else "subscription",
        resource_id=plan_id,
        detail={"count": count},
        ip=get_client_ip(request),
        request_id=get_request_id(request),
    )
    return CancelResponse(message="Subscriptions canceled", count=count)


@router.get("/users/subscriptions/{user_id}", response_model=SubscriptionLimitsResponse)
async def get_user_subscriptions(
    user_id: str,
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Active subscriptions of any user with summed limits (the user themselves or an admin)"""
    service = UserSubscriptionService(db, current_user)
    return await service.get_user_total_limits_with_subscriptions(user_id)
