# -*- coding: utf-8 -*-
"""
tests/modules/payments/services/test_subscription_service.py

Extensión de vigencia tras pago exitoso (política stacking / reset).

Autor: Equipo AIProxy
Fecha: 2026-09-15
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.models import SubscriptionPlan, UserSubscription
from aiproxy_payments.modules.payments.repositories import SqlAlchemyBillingRecordStore
from aiproxy_payments.modules.payments.repositories.subscription_repository import (
    UserSubscriptionRepository,
)
from aiproxy_payments.modules.payments.services.subscription_service import (
    SubscriptionService,
    compute_new_expiry,
)
from aiproxy_payments.modules.payments.utils.datetime_helpers import ensure_utc, utcnow
from aiproxy_payments.shared.database import session_scope


NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestComputeNewExpiry:
    def test_first_purchase_starts_now(self):
        assert compute_new_expiry(None, 30, NOW, stacking=True) == NOW + timedelta(days=30)

    def test_stacking_adds_to_remaining_time(self):
        current = NOW + timedelta(days=10)
        assert compute_new_expiry(current, 30, NOW, stacking=True) == NOW + timedelta(days=40)

    def test_reset_discards_remaining_time(self):
        current = NOW + timedelta(days=10)
        assert compute_new_expiry(current, 30, NOW, stacking=False) == NOW + timedelta(days=30)

    def test_expired_subscription_restarts_from_now(self):
        current = NOW - timedelta(days=5)
        assert compute_new_expiry(current, 30, NOW, stacking=True) == NOW + timedelta(days=30)

    def test_naive_expiry_is_treated_as_utc(self):
        current = datetime(2026, 1, 11)
        assert compute_new_expiry(current, 1, NOW, stacking=True) == datetime(
            2026, 1, 12, tzinfo=timezone.utc
        )


async def _seed_plan(session_factory, plan_id="pro", days=30, active=True):
    async with session_scope(session_factory) as session:
        session.add(
            SubscriptionPlan(
                id=plan_id,
                name="Pro",
                duration_days=days,
                price=Decimal("99.00"),
                currency="CNY",
                is_active=active,
            )
        )


async def _subscription(session_factory, user_id="user_1"):
    async with session_factory() as session:
        return await session.get(UserSubscription, user_id)


class TestExtensionOnSuccess:
    @pytest.mark.asyncio
    async def test_success_creates_subscription(self, store, session_factory, make_intent):
        await _seed_plan(session_factory)
        await store.create_from_intent(make_intent("o1", plan_id="pro"))

        result = await store.transition("o1", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)

        assert result.subscription_extended is True
        sub = await _subscription(session_factory)
        assert sub.plan_id == "pro"
        assert sub.last_payment_id == "o1"
        remaining = ensure_utc(sub.expires_at) - utcnow()
        assert timedelta(days=29, hours=23) < remaining <= timedelta(days=30)

    @pytest.mark.asyncio
    async def test_duplicate_webhook_extends_once(self, store, session_factory, make_intent):
        await _seed_plan(session_factory)
        await store.create_from_intent(make_intent("o1", plan_id="pro"))

        await store.transition("o1", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)
        first = ensure_utc((await _subscription(session_factory)).expires_at)
        dup = await store.transition("o1", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)
        second = ensure_utc((await _subscription(session_factory)).expires_at)

        assert dup.subscription_extended is False
        assert first == second

    @pytest.mark.asyncio
    async def test_second_payment_stacks(self, store, session_factory, make_intent):
        await _seed_plan(session_factory)
        await store.create_from_intent(make_intent("o1", plan_id="pro"))
        await store.create_from_intent(make_intent("o2", plan_id="pro"))

        await store.transition("o1", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)
        await store.transition("o2", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)

        sub = await _subscription(session_factory)
        remaining = ensure_utc(sub.expires_at) - utcnow()
        assert remaining > timedelta(days=59)
        assert sub.last_payment_id == "o2"

    @pytest.mark.asyncio
    async def test_reset_policy(self, session_factory, make_intent):
        store = SqlAlchemyBillingRecordStore(
            session_factory, subscriptions=SubscriptionService(stacking=False)
        )
        await _seed_plan(session_factory)
        await store.create_from_intent(make_intent("o1", plan_id="pro"))
        await store.create_from_intent(make_intent("o2", plan_id="pro"))

        await store.transition("o1", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)
        await store.transition("o2", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)

        remaining = ensure_utc((await _subscription(session_factory)).expires_at) - utcnow()
        assert remaining <= timedelta(days=30)

    @pytest.mark.asyncio
    async def test_payment_without_plan_still_succeeds(self, store, session_factory, make_intent):
        await store.create_from_intent(make_intent("o1"))
        result = await store.transition("o1", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)
        assert result.status == PaymentStatus.SUCCEEDED
        assert result.subscription_extended is False
        assert await _subscription(session_factory) is None

    @pytest.mark.asyncio
    async def test_inactive_plan_is_skipped(self, store, session_factory, make_intent):
        await _seed_plan(session_factory, plan_id="legacy", active=False)
        await store.create_from_intent(make_intent("o1", plan_id="legacy"))
        result = await store.transition("o1", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)
        assert result.status == PaymentStatus.SUCCEEDED
        assert result.subscription_extended is False


class LateFirstReadRepository(UserSubscriptionRepository):
    """La primera lectura no ve la fila, como cuando otra transacción la crea en paralelo."""

    def __init__(self) -> None:
        super().__init__()
        self.reads = 0

    async def get_for_update(self, session, user_id):
        self.reads += 1
        if self.reads == 1:
            return None
        return await super().get_for_update(session, user_id)


class TestConcurrentFirstPurchase:
    @pytest.mark.asyncio
    async def test_insert_if_absent_reports_existing_row(self, session_factory):
        repo = UserSubscriptionRepository()
        async with session_scope(session_factory) as session:
            assert await repo.insert_if_absent(session, user_id="user_1", plan_id="pro", updated_at=NOW)
        async with session_scope(session_factory) as session:
            assert not await repo.insert_if_absent(session, user_id="user_1", plan_id="basic", updated_at=NOW)
        assert (await _subscription(session_factory)).plan_id == "pro"

    @pytest.mark.asyncio
    async def test_row_created_in_parallel_is_stacked_not_duplicated(
        self, store, session_factory, make_intent
    ):
        await _seed_plan(session_factory)
        await store.create_from_intent(make_intent("o1", plan_id="pro"))
        await store.create_from_intent(make_intent("o2", plan_id="pro"))
        await store.transition("o1", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)

        late = SqlAlchemyBillingRecordStore(
            session_factory,
            subscriptions=SubscriptionService(subscription_repo=LateFirstReadRepository()),
        )
        result = await late.transition("o2", PaymentProvider.EPAY, PaymentStatus.SUCCEEDED)

        assert result.status == PaymentStatus.SUCCEEDED
        assert result.subscription_extended is True
        assert (await store.get("o2", PaymentProvider.EPAY)).status == PaymentStatus.SUCCEEDED
        sub = await _subscription(session_factory)
        assert sub.last_payment_id == "o2"
        assert ensure_utc(sub.expires_at) - utcnow() > timedelta(days=59)

# Fin del archivo tests/modules/payments/services/test_subscription_service.py
