"""
Subscription plan catalog
"""
import uuid

from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.enums import BillingPeriod, SubscriptionTier


class SubscriptionPlan(Base):
    """Subscription plans table"""
    __tablename__ = "subscription_plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    tier = Column(String(20), nullable=False, default=SubscriptionTier.FREE.value)
    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    billing_periods = Column(String(20), nullable=False, default=BillingPeriod.MONTHLY.value)
    # Allowances
    meetings_allowed = Column(Integer, nullable=False, default=0)
    meeting_duration = Column(Integer, nullable=False, default=0)  # minutes
    storage_limit = Column(Integer, nullable=False, default=0)  # GB
    is_active = Column(Boolean, default=True)
    is_public = Column(Boolean, default=True)
    trial_days = Column(Integer, nullable=False, default=0)
    features = Column(JSON, nullable=False, default=list)  # ordered list of strings
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    subscriptions = relationship("Subscription", back_populates="plan")
