"""
Seed data: an admin, a regular user and the default plan catalog

Run with ``python -m app.db_seed`` from backend/. Existing rows are left untouched.
"""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import AsyncSessionLocal, init_db
from app.core.logging import setup_logging
from app.models.enums import BillingPeriod, SubscriptionTier, UserRole
from app.models.plan import SubscriptionPlan
from app.models.user import User
from app.models.user_storage import UserStorage
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

SEED_USERS = [
    {"email": "admin@notemeet.com", "name": "Admin User", "password": "Admin@123", "role": UserRole.ADMIN},
    {"email": "user@notemeet.com", "name": "Regular User", "password": "User@123", "role": UserRole.USER},
]

SEED_PLANS = [
    {
        "id": "free-plan-id",
        "name": "Free Plan",
        "description": "Basic features for personal use",
        "base_price": 0,
        "tier": SubscriptionTier.FREE,
        "features": ["1 user", "Basic note-taking", "Limited storage"],
        "meetings_allowed": 3,
        "meeting_duration": 30,
        "storage_limit": 1,
        "trial_days": 0,
    },
    {
        "id": "pro-plan-id",
        "name": "Pro Plan",
        "description": "Advanced features for professionals",
        "base_price": 19.99,
        "tier": SubscriptionTier.PRO,
        "features": [
            "Unlimited users",
            "Advanced note-taking",
            "Cloud storage",
            "Meeting recordings",
            "Priority support",
        ],
        "meetings_allowed": 20,
        "meeting_duration": 60,
        "storage_limit": 10,
        "trial_days": 14,
    },
    {
        "id": "business-plan-id",
        "name": "Business Plan",
        "description": "Enterprise-grade features for teams",
        "base_price": 49.99,
        "tier": SubscriptionTier.BUSINESS,
        "features": [
            "Unlimited users",
            "Team collaboration",
            "Advanced security",
            "Custom integrations",
            "Dedicated support",
            "Analytics dashboard",
            "Admin controls",
        ],
        "meetings_allowed": 100,
        "meeting_duration": 120,
        "storage_limit": 50,
        "trial_days": 30,
    },
    {
        "id": settings.EARLY_ACCESS_PLAN_ID,
        "name": "Early Access",
        "description": "Granted to early-access members",
        "base_price": 0,
        "tier": SubscriptionTier.CUSTOM,
        "features": ["Early access to new features"],
        "meetings_allowed": 10,
        "meeting_duration": 60,
        "storage_limit": 5,
        "trial_days": 0,
        "is_public": False,
    },
]


async def seed_users(db: AsyncSession) -> None:
    auth_service = AuthService(db)
    for data in SEED_USERS:
        result = await db.execute(select(User).where(User.email == data["email"]))
        if result.scalar_one_or_none():
            continue
        user = User(
            email=data["email"],
            name=data["name"],
            password_hash=auth_service.get_password_hash(data["password"]),
            role=data["role"].value,
        )
        db.add(user)
        await db.flush()
        db.add(UserStorage(user_id=user.id, used_storage=0))
        logger.info("Created user %s", data["email"])
    await db.commit()


async def seed_plans(db: AsyncSession) -> None:
    for data in SEED_PLANS:
        if await db.get(SubscriptionPlan, data["id"]):
            continue
        values = dict(data)
        values["tier"] = values["tier"].value
        values["billing_periods"] = BillingPeriod.MONTHLY.value
        db.add(SubscriptionPlan(**values))
        logger.info("Created plan %s", data["name"])
    await db.commit()


async def seed() -> None:
    await init_db()
    async with AsyncSessionLocal() as db:
        await seed_users(db)
        await seed_plans(db)


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
