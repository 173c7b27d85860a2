"""
Admin API: plan catalog management and subscriptions on behalf of users
"""
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.schemas.auth import UserResponse
from app.schemas.subscription import (
    AdminSubscribeRequest,
    MessageResponse,
    PlanCreate,
    PlanEnvelope,
    PlanListResponse,
    PlanResponse,
    PlanSubscribersResponse,
    PlanUpdate,
    PlanUpdateWithId,
    SubscriptionCreate,
    SubscriptionIdRequest,
    SubscriptionUpdate,
    SubscriptionWithPlan,
    UserSubscriptionPointerRequest,
)
from app.api.deps import get_client_ip, get_request_id, require_admin
from app.api.v1.auth import get_current_active_user
from app.services.audit_service import log_audit
from app.services.plan_service import PlanService
from app.services.subscription_service import SubscriptionService
from app.services.user_service import UserService
from app.services.user_subscription_service import UserSubscriptionService

router = APIRouter()


async def _audit(db: AsyncSession, request: Request, admin: UserResponse, action: str,
                 resource_type: str, resource_id: str, detail: dict | None = None) -> None:
    await log_audit(
        db,
        admin.id,
        action,
        resource_type=resource_type,
        resource_id=resource_id,
        detail=detail,
        ip=get_client_ip(request),
        request_id=get_request_id(request),
    )


# ---------- plans ---------- #

@router.get("/plans", response_model=PlanListResponse)
async def list_plans(
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Admins see every plan, everyone else only active ones"""
    plans = await PlanService(db).get_plans(include_inactive=current_user.is_admin)
    return {"success": True, "data": plans}


@router.post("/plans", response_model=PlanEnvelope, status_code=status.HTTP_201_CREATED)
async def create_plan(
    plan_data: PlanCreate,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    plan = await PlanService(db).create_plan(plan_data)
    await _audit(db, request, admin, "plan.create", "plan", plan.id, {"name": plan.name})
    return {"success": True, "data": plan}


@router.put("/plans", response_model=PlanEnvelope)
async def update_plan_by_body(
    plan_data: PlanUpdateWithId,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Partial update with the plan id carried in the body"""
    plan = await PlanService(db).update_plan(plan_data.id, plan_data)
    await _audit(db, request, admin, "plan.update", "plan", plan.id)
    return {"success": True, "data": plan}


@router.post("/plans/user", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def subscribe_user(
    body: AdminSubscribeRequest,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Subscribe any user to a plan"""
    service = UserSubscriptionService(db, admin)
    subscription = await service.user_subscribe_to_plan(body.user_id, body.subscription_plan_id)
    await _audit(
        db, request, admin, "subscription.create", "subscription", subscription.id,
        {"user_id": body.user_id, "plan_id": body.subscription_plan_id},
    )
    return {"message": "User subscribed to plan"}


@router.get("/plans/users/{plan_id}", response_model=PlanSubscribersResponse)
async def list_plan_subscribers(
    plan_id: str,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Subscriptions of a plan with their subscribers"""
    return await PlanService(db).list_plan_subscribers(plan_id)


@router.delete("/plans/users/{plan_id}", response_model=MessageResponse)
async def cancel_plan_subscription(
    plan_id: str,
    body: SubscriptionIdRequest,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Cancel one subscription of the plan"""
    subscription = await SubscriptionService(db).get_subscription(body.subscription_id)
    if subscription.plan_id != plan_id:
        raise NotFoundError("Subscription not found")

    await UserSubscriptionService(db, admin).cancel_subscription(subscription.id)
    await _audit(db, request, admin, "subscription.cancel", "subscription", subscription.id)
    return {"message": "Subscription canceled"}


@router.get("/plans/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: str,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await PlanService(db).get_plan_or_404(plan_id)


@router.put("/plans/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: str,
    plan_data: PlanUpdate,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    plan = await PlanService(db).update_plan(plan_id, plan_data)
    await _audit(db, request, admin, "plan.update", "plan", plan.id)
    return plan


@router.delete("/plans/{plan_id}", response_model=PlanResponse)
async def delete_plan(
    plan_id: str,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    plan = await PlanService(db).delete_plan(plan_id)
    await _audit(db, request, admin, "plan.delete", "plan", plan_id)
    return plan


# ---------- subscriptions ---------- #

@router.patch("/subsciption", response_model=MessageResponse)
async def renew_subscription(
    body: SubscriptionIdRequest,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Set a subscription back to ACTIVE (path spelling kept for existing clients)"""
    subscription = await UserSubscriptionService(db, admin).renew_subscription(body.subscription_id)
    await _audit(db, request, admin, "subscription.renew", "subscription", subscription.id)
    return {"message": "Subscription renewed"}


@router.get("/subscriptions", response_model=List[SubscriptionWithPlan])
async def list_subscriptions(
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await SubscriptionService(db).list_subscriptions()


@router.post("/subscriptions", response_model=SubscriptionWithPlan, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    body: SubscriptionCreate,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a subscription row directly (status, dates and prices as given)"""
    subscription = await SubscriptionService(db).create_subscription(body)
    await _audit(
        db, request, admin, "subscription.create", "subscription", subscription.id,
        {"user_id": body.user_id, "plan_id": body.plan_id},
    )
    return subscription


@router.post("/subscriptions/user", response_model=MessageResponse)
async def set_user_subscription(
    body: UserSubscriptionPointerRequest,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Point a user's legacy subscription_id at one of their subscriptions"""
    await UserService(db).assign_legacy_subscription(body.user_id, body.subscription_id)
    await _audit(
        db, request, admin, "subscription.set_current", "subscription", body.subscription_id,
        {"user_id": body.user_id},
    )
    return {"message": "Subscription updated"}


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionWithPlan)
async def get_subscription(
    subscription_id: str,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await SubscriptionService(db).get_subscription(subscription_id)


@router.put("/subscriptions/{subscription_id}", response_model=SubscriptionWithPlan)
async def update_subscription(
    subscription_id: str,
    body: SubscriptionUpdate,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Partial update of status, billing period, dates or prices"""
    subscription = await SubscriptionService(db).update_subscription(subscription_id, body)
    await _audit(
        db, request, admin, "subscription.update", "subscription", subscription_id,
        body.model_dump(mode="json", exclude_unset=True),
    )
    return subscription


@router.delete("/subscriptions/{subscription_id}", response_model=SubscriptionWithPlan)
async def delete_subscription(
    subscription_id: str,
    request: Request,
    admin: UserResponse = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    subscription = await SubscriptionService(db).delete_subscription(subscription_id)
    await _audit(db, request, admin, "subscription.delete", "subscription", subscription_id)
    return subscription
