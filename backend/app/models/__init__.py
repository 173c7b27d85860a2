# Database models
from app.models.user import User
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription
from app.models.user_storage import UserStorage
from app.models.meeting import Meeting
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "SubscriptionPlan",
    "Subscription",
    "UserStorage",
    "Meeting",
    "AuditLog",
]
