"""
Pytest configuration and fixtures for testing
"""
import uuid

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base, get_db
from app.models.enums import SubscriptionStatus, UserRole
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription
from app.models.user import User
from app.models.user_storage import UserStorage
from app.schemas.auth import UserResponse
from app.services.auth_service import AuthService

# In-memory SQLite; StaticPool keeps the one connection alive across sessions
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestAsyncSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# No Redis in tests
settings.CACHE_ENABLED = False


@pytest.fixture
async def test_db():
    """
    Isolated in-memory database for each test.

    Tables are created before the test and dropped after it.
    """
    async with test_engine.begin() as conn:
        import app.models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

    async with TestAsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # each test runs on its own event loop
    await test_engine.dispose()


async def override_get_db():
    async with TestAsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@pytest.fixture
async def async_client(test_db):
    """httpx client against the app, sessions bound to the test database"""
    from app.main import app

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------- factories ---------- #

async def create_user(db: AsyncSession, email: str | None = None, role: UserRole = UserRole.USER,
                      used_storage: float = 0) -> User:
    user = User(
        email=email or f"{uuid.uuid4().hex[:8]}@example.com",
        name="Test User",
        password_hash="not-a-real-hash",
        role=role.value,
    )
    db.add(user)
    await db.flush()
    db.add(UserStorage(user_id=user.id, used_storage=used_storage))
    await db.commit()
    await db.refresh(user)
    return user


async def create_plan(db: AsyncSession, plan_id: str | None = None, name: str = "Plan",
                      meetings_allowed: int = 0, meeting_duration: int = 0, storage_limit: int = 0,
                      is_active: bool = True, is_public: bool = True, base_price: float = 0) -> SubscriptionPlan:
    plan = SubscriptionPlan(
        id=plan_id or str(uuid.uuid4()),
        name=name,
        meetings_allowed=meetings_allowed,
        meeting_duration=meeting_duration,
        storage_limit=storage_limit,
        is_active=is_active,
        is_public=is_public,
        base_price=base_price,
        features=[],
    )
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    return plan


async def create_subscription(db: AsyncSession, user_id: str, plan_id: str,
                              status: SubscriptionStatus = SubscriptionStatus.ACTIVE) -> Subscription:
    subscription = Subscription(user_id=user_id, plan_id=plan_id, status=status.value)
    db.add(subscription)
    await db.commit()
    await db.refresh(subscription)
    return subscription


def as_caller(user: User) -> UserResponse:
    """The request-level view of a user, as the API hands it to services"""
    return UserResponse.model_validate(user)


def auth_headers(user: User) -> dict:
    token = AuthService(None).create_access_token({"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def user(test_db):
    return await create_user(test_db, email="user@example.com")


@pytest.fixture
async def other_user(test_db):
    return await create_user(test_db, email="other@example.com")


@pytest.fixture
async def admin(test_db):
    return await create_user(test_db, email="admin@example.com", role=UserRole.ADMIN)
