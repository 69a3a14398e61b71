# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/repositories/subscription_repository.py

Repositorios de planes y vigencias de suscripción.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from aiproxy_payments.modules.payments.models.subscription_models import (
    SubscriptionPlan,
    UserSubscription,
)
from aiproxy_payments.shared.database.repository import BaseRepository


# INSERT ... ON CONFLICT por dialecto soportado (DB_URL se normaliza a uno de estos)
_INSERT_BY_DIALECT = {"postgresql": pg_insert, "sqlite": sqlite_insert}


class SubscriptionPlanRepository(BaseRepository[SubscriptionPlan]):
    def __init__(self) -> None:
        super().__init__(SubscriptionPlan)

    async def get_active(self, session: AsyncSession, plan_id: str) -> Optional[SubscriptionPlan]:
        stmt = select(SubscriptionPlan).where(
            SubscriptionPlan.id == plan_id,
            SubscriptionPlan.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return result.scalars().first()


class UserSubscriptionRepository(BaseRepository[UserSubscription]):
    def __init__(self) -> None:
        super().__init__(UserSubscription)

    async def get_for_update(self, session: AsyncSession, user_id: str) -> Optional[UserSubscription]:
        """Lee la vigencia bloqueando la fila (FOR UPDATE se ignora en SQLite)."""
        stmt = select(UserSubscription).where(UserSubscription.user_id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()

    async def insert_if_absent(self, session: AsyncSession, **values) -> bool:
        """
        Crea la fila del usuario con ON CONFLICT (user_id) DO NOTHING.

        Returns:
            False si otra transacción ya la había creado; el llamador relee
            con get_for_update y actualiza.
        """
        dialect = session.get_bind().dialect.name
        insert_fn = _INSERT_BY_DIALECT.get(dialect)
        if insert_fn is None:
            raise NotImplementedError(f"Dialecto sin soporte de upsert: {dialect}")
        stmt = (
            insert_fn(UserSubscription)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["user_id"])
            .returning(UserSubscription.user_id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

# Fin del archivo aiproxy_payments/modules/payments/repositories/subscription_repository.py
