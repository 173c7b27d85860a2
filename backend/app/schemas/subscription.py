"""
Plan catalog and subscription schemas

JSON uses camelCase keys; snake_case is accepted on input as well.
"""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List

from app.models.enums import BillingPeriod, SubscriptionStatus, SubscriptionTier


class CamelModel(BaseModel):
    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


# ---------- plans ---------- #

class PlanCreate(CamelModel):
    """Plan creation (admin)"""
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    tier: SubscriptionTier = SubscriptionTier.FREE
    base_price: float = Field(0, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    billing_periods: BillingPeriod = BillingPeriod.MONTHLY
    meetings_allowed: int = Field(0, ge=0)
    meeting_duration: int = Field(0, ge=0)
    storage_limit: int = Field(0, ge=0)
    is_active: bool = True
    is_public: bool = True
    trial_days: int = Field(0, ge=0)
    features: List[str] = []


class PlanUpdate(CamelModel):
    """Partial plan update (admin); only fields that are sent are changed"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    tier: Optional[SubscriptionTier] = None
    base_price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    billing_periods: Optional[BillingPeriod] = None
    meetings_allowed: Optional[int] = Field(None, ge=0)
    meeting_duration: Optional[int] = Field(None, ge=0)
    storage_limit: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    is_public: Optional[bool] = None
    trial_days: Optional[int] = Field(None, ge=0)
    features: Optional[List[str]] = None


class PlanUpdateWithId(PlanUpdate):
    """Body of PUT /admin/plans, which carries the id alongside the changes"""
    id: str


class PlanResponse(CamelModel):
    """Plan response"""
    id: str
    name: str
    description: Optional[str] = None
    tier: str
    base_price: float
    currency: str
    billing_periods: str
    meetings_allowed: int
    meeting_duration: int
    storage_limit: int
    is_active: bool
    is_public: bool
    trial_days: int
    features: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PlanListResponse(BaseModel):
    """Plan list envelope used by the admin routes"""
    success: bool = True
    data: List[PlanResponse]


class PlanEnvelope(BaseModel):
    success: bool = True
    data: PlanResponse


# ---------- subscriptions ---------- #

class SubscriptionResponse(CamelModel):
    """Subscription row"""
    id: str
    user_id: str
    plan_id: str
    status: str
    billing_period: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    base_price: float
    total_price: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubscriptionWithPlan(SubscriptionResponse):
    """Subscription row with its plan"""
    plan: PlanResponse


class SubscriptionCreate(CamelModel):
    """Subscription row created directly by an admin"""
    user_id: str
    plan_id: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    base_price: float = Field(0, ge=0)
    total_price: float = Field(0, ge=0)


class SubscriptionUpdate(CamelModel):
    """Partial subscription update (admin); only fields that are sent are changed"""
    status: Optional[SubscriptionStatus] = None
    billing_period: Optional[BillingPeriod] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    base_price: Optional[float] = Field(None, ge=0)
    total_price: Optional[float] = Field(None, ge=0)


class SubscriptionPrice(BaseModel):
    base: float
    total: float


class SubscriptionSummary(CamelModel):
    """Compact subscription entry for the current-user overview"""
    id: str
    plan_id: str
    plan_name: str
    status: str
    billing_period: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    price: SubscriptionPrice


class Limits(CamelModel):
    """Aggregated allowances (or what is left of them)"""
    storage_limit: float = 0
    meeting_duration: int = 0
    meetings_allowed: int = 0


class SubscriptionLimitsResponse(BaseModel):
    subscriptions: List[SubscriptionWithPlan]
    limits: Limits


class UserSubscriptionOverview(CamelModel):
    """GET /user/subscription"""
    subscriptions: List[SubscriptionSummary]
    limits: Limits
    remaining: Limits
    is_early_access: bool


class SubscriberInfo(CamelModel):
    id: str
    name: Optional[str] = None
    email: str


class PlanSubscriber(CamelModel):
    """One subscription of a plan with its subscriber"""
    id: str
    plan_id: str
    status: str
    created_at: Optional[datetime] = None
    active_user: SubscriberInfo


class PlanSubscribersResponse(CamelModel):
    users: List[PlanSubscriber]
    subscription_plan: PlanResponse


# ---------- request bodies ---------- #

class SubscriptionIdRequest(CamelModel):
    subscription_id: str


class AdminSubscribeRequest(CamelModel):
    user_id: str
    subscription_plan_id: str


class UserSubscriptionPointerRequest(CamelModel):
    """Point a user's legacy subscription_id at one of their subscriptions"""
    user_id: str
    subscription_id: str


class CancelRequest(CamelModel):
    """Cancel one plan (plan_id) or, when omitted, every active subscription"""
    plan_id: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class CancelResponse(BaseModel):
    message: str
    count: int
