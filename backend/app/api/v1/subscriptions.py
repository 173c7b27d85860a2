"""
Legacy single-subscription pointer on the user
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.schemas.auth import UserResponse
from app.schemas.subscription import MessageResponse, SubscriptionIdRequest, SubscriptionWithPlan
from app.api.deps import get_client_ip, get_request_id
from app.api.v1.auth import get_current_active_user
from app.services.audit_service import log_audit
from app.services.subscription_service import SubscriptionService
from app.services.user_service import UserService

router = APIRouter()


@router.get("/me", response_model=SubscriptionWithPlan)
async def get_my_subscription(
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """The subscription the current user's subscription_id points at"""
    return await SubscriptionService(db).get_legacy_subscription(current_user)


@router.post("/me", response_model=MessageResponse)
async def set_my_subscription(
    body: SubscriptionIdRequest,
    request: Request,
    current_user: UserResponse = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Point the current user's subscription_id at one of their subscriptions"""
    subscription = await SubscriptionService(db).get_subscription(body.subscription_id)
    if subscription.user_id != current_user.id:
        raise NotFoundError("Subscription not found")

    user_service = UserService(db)
    user = await user_service.get_user(current_user.id)
    if not user:
        raise NotFoundError("User not found or not authenticated")
    await user_service.set_legacy_subscription(user, subscription.id)

    await log_audit(
        db,
        current_user.id,
        "subscription.set_current",
        resource_type="subscription",
        resource_id=subscription.id,
        ip=get_client_ip(request),
        request_id=get_request_id(request),
    )
    return {"message": "Subscription updated"}
