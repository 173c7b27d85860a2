"""
Unit tests for UserSubscriptionService: limit aggregation and subscription lifecycle
"""
import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.core.database import Base
from app.core.exceptions import ConflictError, NotFoundError, UnauthorizedError
from app.models.enums import SubscriptionStatus
from app.models.meeting import Meeting
from app.models.subscription import Subscription
from app.models.user_storage import UserStorage
from app.services.user_subscription_service import UserSubscriptionService
from conftest import as_caller, create_plan, create_subscription, create_user


async def _active_rows(db, user_id, plan_id=None):
    query = select(Subscription).where(
        Subscription.user_id == user_id,
        Subscription.status == SubscriptionStatus.ACTIVE.value,
    )
    if plan_id:
        query = query.where(Subscription.plan_id == plan_id)
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalars().all()


# ---------- limits ---------- #

@pytest.mark.asyncio
async def test_total_limits_zero_without_subscriptions(test_db, user):
    service = UserSubscriptionService(test_db, as_caller(user))

    limits = await service.get_user_total_limits(user.id)

    assert limits.storage_limit == 0
    assert limits.meeting_duration == 0
    assert limits.meetings_allowed == 0


@pytest.mark.asyncio
async def test_total_limits_sum_across_active_subscriptions(test_db, user):
    """Allowances of simultaneous active plans add up, they are not maxed"""
    basic = await create_plan(test_db, name="Basic", meetings_allowed=5, meeting_duration=30, storage_limit=5)
    pro = await create_plan(test_db, name="Pro", meetings_allowed=10, meeting_duration=60, storage_limit=10)
    await create_subscription(test_db, user.id, basic.id)
    await create_subscription(test_db, user.id, pro.id)

    service = UserSubscriptionService(test_db, as_caller(user))
    limits = await service.get_user_total_limits(user.id)

    assert limits.storage_limit == 15
    assert limits.meeting_duration == 90
    assert limits.meetings_allowed == 15


@pytest.mark.asyncio
async def test_total_limits_ignore_inactive_subscriptions(test_db, user):
    plan = await create_plan(test_db, meetings_allowed=5, storage_limit=5)
    old = await create_plan(test_db, meetings_allowed=50, storage_limit=50)
    await create_subscription(test_db, user.id, plan.id)
    await create_subscription(test_db, user.id, old.id, status=SubscriptionStatus.CANCELED)
    await create_subscription(test_db, user.id, old.id, status=SubscriptionStatus.EXPIRED)

    service = UserSubscriptionService(test_db, as_caller(user))
    data = await service.get_user_total_limits_with_subscriptions(user.id)

    assert [s.plan_id for s in data["subscriptions"]] == [plan.id]
    assert data["limits"].meetings_allowed == 5
    assert data["limits"].storage_limit == 5


@pytest.mark.asyncio
async def test_remaining_limits_subtract_usage_but_not_duration(test_db):
    """5 GB + 10 GB plans with 3 GB used leave 12 GB; duration is not reduced"""
    user = await create_user(test_db, used_storage=3)
    small = await create_plan(test_db, meetings_allowed=5, meeting_duration=30, storage_limit=5)
    large = await create_plan(test_db, meetings_allowed=10, meeting_duration=60, storage_limit=10)
    await create_subscription(test_db, user.id, small.id)
    await create_subscription(test_db, user.id, large.id)
    for i in range(3):
        test_db.add(Meeting(user_id=user.id, title=f"Meeting {i}"))
    await test_db.commit()

    service = UserSubscriptionService(test_db, as_caller(user))
    remaining = await service.get_user_remaining_limits(user.id)

    assert remaining.storage_limit == 12
    assert remaining.meetings_allowed == 12
    assert remaining.meeting_duration == 90


@pytest.mark.asyncio
async def test_remaining_limits_create_missing_storage_row(test_db, user):
    await test_db.delete(await test_db.get(UserStorage, user.id))
    await test_db.commit()
    plan = await create_plan(test_db, storage_limit=2)
    await create_subscription(test_db, user.id, plan.id)

    service = UserSubscriptionService(test_db, as_caller(user))
    remaining = await service.get_user_remaining_limits(user.id)

    assert remaining.storage_limit == 2
    storage = await test_db.get(UserStorage, user.id)
    assert storage is not None
    assert storage.used_storage == 0


@pytest.mark.asyncio
async def test_other_user_cannot_read_limits(test_db, user, other_user):
    service = UserSubscriptionService(test_db, as_caller(other_user))

    with pytest.raises(UnauthorizedError):
        await service.get_user_total_limits(user.id)


@pytest.mark.asyncio
async def test_admin_can_read_any_user_limits(test_db, user, admin):
    plan = await create_plan(test_db, meetings_allowed=7)
    await create_subscription(test_db, user.id, plan.id)

    service = UserSubscriptionService(test_db, as_caller(admin))
    limits = await service.get_user_total_limits(user.id)

    assert limits.meetings_allowed == 7


@pytest.mark.asyncio
async def test_user_limits_pair_user_with_subscriptions(test_db, user):
    plan = await create_plan(test_db, name="Pro")
    await create_subscription(test_db, user.id, plan.id)
    service = UserSubscriptionService(test_db, as_caller(user))

    data = await service.get_user_limits(user.id)

    assert set(data) == {"user", "subscription"}
    assert data["user"].id == user.id
    assert data["subscription"]["user"] is data["user"]
    assert [s.plan.name for s in data["subscription"]["subscriptions"]] == ["Pro"]


@pytest.mark.asyncio
async def test_unknown_user_is_not_found(test_db, admin):
    service = UserSubscriptionService(test_db, as_caller(admin))

    with pytest.raises(NotFoundError):
        await service.get_user_subscription_plans("missing-user")


# ---------- lifecycle ---------- #

@pytest.mark.asyncio
async def test_subscribe_creates_active_subscription(test_db, user):
    plan = await create_plan(test_db)
    service = UserSubscriptionService(test_db, as_caller(user))

    subscription = await service.user_subscribe_to_plan(user.id, plan.id)

    assert subscription.status == SubscriptionStatus.ACTIVE.value
    assert subscription.billing_period == settings.DEFAULT_BILLING_PERIOD
    assert float(subscription.base_price) == 0
    assert float(subscription.total_price) == 0


@pytest.mark.asyncio
async def test_subscribe_same_plan_twice_conflicts(test_db, user):
    plan = await create_plan(test_db)
    user_id, plan_id = user.id, plan.id
    service = UserSubscriptionService(test_db, as_caller(user))
    await service.user_subscribe_to_plan(user_id, plan_id)

    with pytest.raises(ConflictError):
        await service.user_subscribe_to_plan(user_id, plan_id)

    assert len(await _active_rows(test_db, user_id, plan_id)) == 1


@pytest.mark.asyncio
async def test_subscribe_second_plan_stacks(test_db, user):
    first = await create_plan(test_db, meetings_allowed=1)
    second = await create_plan(test_db, meetings_allowed=2)
    service = UserSubscriptionService(test_db, as_caller(user))

    await service.user_subscribe_to_plan(user.id, first.id)
    await service.user_subscribe_to_plan(user.id, second.id)

    assert len(await _active_rows(test_db, user.id)) == 2
    assert (await service.get_user_total_limits(user.id)).meetings_allowed == 3


@pytest.mark.asyncio
async def test_subscribe_unknown_plan_is_not_found(test_db, user):
    service = UserSubscriptionService(test_db, as_caller(user))

    with pytest.raises(NotFoundError):
        await service.user_subscribe_to_plan(user.id, "no-such-plan")


@pytest.mark.asyncio
async def test_subscribe_other_user_is_unauthorized(test_db, user, other_user):
    plan = await create_plan(test_db)
    service = UserSubscriptionService(test_db, as_caller(other_user))

    with pytest.raises(UnauthorizedError):
        await service.user_subscribe_to_plan(user.id, plan.id)


@pytest.mark.asyncio
async def test_concurrent_duplicate_subscribe_is_rejected_by_database(test_db, user, monkeypatch):
    """A subscribe that slips past the in-app check still cannot create a second ACTIVE row"""
    plan = await create_plan(test_db)
    user_id, plan_id = user.id, plan.id
    await create_subscription(test_db, user_id, plan_id)

    service = UserSubscriptionService(test_db, as_caller(user))

    # what a concurrent request sees before the first insert lands
    async def no_active_subscriptions(uid):
        return {"subscriptions": [], "user": None}

    monkeypatch.setattr(service, "get_user_subscription_plans", no_active_subscriptions)

    with pytest.raises(ConflictError):
        await service.user_subscribe_to_plan(user_id, plan_id)

    assert len(await _active_rows(test_db, user_id, plan_id)) == 1


@pytest.mark.asyncio
async def test_parallel_subscribes_on_separate_connections_keep_one_active_row(tmp_path):
    """Two sessions subscribe the same user to the same plan at once; exactly one wins"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'subscriptions.db'}")
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with engine.begin() as conn:
            import app.models  # noqa: F401
            await conn.run_sync(Base.metadata.create_all)

        async with session_factory() as db:
            user = await create_user(db)
            plan = await create_plan(db)
            caller, plan_id = as_caller(user), plan.id

        async def subscribe():
            async with session_factory() as db:
                return await UserSubscriptionService(db, caller).user_subscribe_to_plan(caller.id, plan_id)

        results = await asyncio.gather(subscribe(), subscribe(), return_exceptions=True)

        assert sorted(type(r).__name__ for r in results) == ["ConflictError", "Subscription"]
        async with session_factory() as db:
            assert len(await _active_rows(db, caller.id, plan_id)) == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_resubscribe_after_cancel(test_db, user):
    plan = await create_plan(test_db)
    service = UserSubscriptionService(test_db, as_caller(user))
    await service.user_subscribe_to_plan(user.id, plan.id)
    await service.user_cancel_subscription(user.id, plan.id)

    subscription = await service.user_subscribe_to_plan(user.id, plan.id)

    assert subscription.status == SubscriptionStatus.ACTIVE.value
    assert len(await _active_rows(test_db, user.id, plan.id)) == 1


@pytest.mark.asyncio
async def test_cancel_one_plan_leaves_others(test_db, user):
    keep = await create_plan(test_db)
    drop = await create_plan(test_db)
    await create_subscription(test_db, user.id, keep.id)
    await create_subscription(test_db, user.id, drop.id)
    service = UserSubscriptionService(test_db, as_caller(user))

    count = await service.user_cancel_subscription(user.id, drop.id)

    assert count == 1
    assert [s.plan_id for s in await _active_rows(test_db, user.id)] == [keep.id]


@pytest.mark.asyncio
async def test_cancel_all_active_subscriptions(test_db, user):
    for _ in range(3):
        plan = await create_plan(test_db)
        await create_subscription(test_db, user.id, plan.id)
    service = UserSubscriptionService(test_db, as_caller(user))

    count = await service.user_cancel_all_active_subscriptions(user.id)

    assert count == 3
    assert await _active_rows(test_db, user.id) == []


@pytest.mark.asyncio
async def test_cancel_all_without_active_subscriptions_is_noop(test_db, user):
    service = UserSubscriptionService(test_db, as_caller(user))

    count = await service.user_cancel_all_active_subscriptions(user.id)

    assert count == 0


@pytest.mark.asyncio
async def test_cancel_other_users_subscriptions_is_unauthorized(test_db, user, other_user):
    service = UserSubscriptionService(test_db, as_caller(other_user))

    with pytest.raises(UnauthorizedError):
        await service.user_cancel_all_active_subscriptions(user.id)


@pytest.mark.asyncio
async def test_cancel_and_renew_by_id(test_db, user, admin):
    plan = await create_plan(test_db)
    subscription = await create_subscription(test_db, user.id, plan.id)
    service = UserSubscriptionService(test_db, as_caller(admin))

    canceled = await service.cancel_subscription(subscription.id)
    assert canceled.status == SubscriptionStatus.CANCELED.value

    renewed = await service.renew_subscription(subscription.id)
    assert renewed.status == SubscriptionStatus.ACTIVE.value


@pytest.mark.asyncio
async def test_renew_next_to_active_duplicate_conflicts(test_db, user, admin):
    plan = await create_plan(test_db)
    old = await create_subscription(test_db, user.id, plan.id, status=SubscriptionStatus.CANCELED)
    old_id = old.id
    await create_subscription(test_db, user.id, plan.id)
    service = UserSubscriptionService(test_db, as_caller(admin))

    with pytest.raises(ConflictError):
        await service.renew_subscription(old_id)


@pytest.mark.asyncio
async def test_cancel_unknown_subscription_is_not_found(test_db, admin):
    service = UserSubscriptionService(test_db, as_caller(admin))

    with pytest.raises(NotFoundError):
        await service.cancel_subscription("missing")


@pytest.mark.asyncio
async def test_early_access_membership(test_db, user):
    early = await create_plan(test_db, plan_id=settings.EARLY_ACCESS_PLAN_ID, name="Early Access")
    service = UserSubscriptionService(test_db, as_caller(user))

    assert await service.is_user_subscribed_to_early_access_plan(user.id) is False

    await create_subscription(test_db, user.id, early.id)
    assert await service.is_user_subscribed_to_early_access_plan(user.id) is True

    await service.user_cancel_subscription(user.id, early.id)
    assert await service.is_user_subscribed_to_early_access_plan(user.id) is False
