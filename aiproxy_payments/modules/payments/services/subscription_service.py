# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/services/subscription_service.py

Extensión de vigencia de suscripción tras un pago exitoso.

Se ejecuta dentro de la MISMA transacción que el UPDATE condicional del
BillingRecord, de modo que la extensión ocurre exactamente una vez: un
webhook duplicado no pasa el UPDATE y nunca llega aquí.

Política de cálculo (PAYMENTS_SUBSCRIPTION_STACKING):
- stacking=True  -> nuevo vencimiento = max(ahora, vencimiento vigente) + duración
- stacking=False -> nuevo vencimiento = ahora + duración (descarta tiempo restante)

Autor: Equipo AIProxy
Fecha: 2026-09-06
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from aiproxy_payments.modules.payments.repositories.subscription_repository import (
    SubscriptionPlanRepository,
    UserSubscriptionRepository,
)
from aiproxy_payments.modules.payments.schemas import BillingRecordSnapshot
from aiproxy_payments.modules.payments.utils.datetime_helpers import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def compute_new_expiry(
    current_expiry: Optional[datetime],
    duration_days: int,
    now: datetime,
    stacking: bool,
) -> datetime:
    """
    Examples:
        >>> from datetime import timezone
        >>> now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        >>> compute_new_expiry(datetime(2026, 1, 11, tzinfo=timezone.utc), 30, now, True).day
        10
        >>> compute_new_expiry(datetime(2026, 1, 11, tzinfo=timezone.utc), 30, now, False).day
        31
    """
    base = now
    if stacking and current_expiry is not None:
        current = ensure_utc(current_expiry)
        if current > now:
            base = current
    return base + timedelta(days=duration_days)


class SubscriptionService:
    """Aplica el efecto de un pago exitoso sobre la vigencia del usuario."""

    def __init__(
        self,
        stacking: bool = True,
        plan_repo: Optional[SubscriptionPlanRepository] = None,
        subscription_repo: Optional[UserSubscriptionRepository] = None,
    ) -> None:
        self.stacking = stacking
        self.plan_repo = plan_repo or SubscriptionPlanRepository()
        self.subscription_repo = subscription_repo or UserSubscriptionRepository()

    async def extend_for_payment(
        self,
        session: AsyncSession,
        record: BillingRecordSnapshot,
    ) -> bool:
        """
        Extiende la vigencia del usuario según el plan del registro.

        Returns:
            True si se escribió una nueva vigencia; False si el pago no tiene
            plan o el plan no existe/está inactivo (el pago sigue siendo exitoso).
        """
        if not record.plan_id:
            logger.info(f"[subscription] Pago {record.payment_id} sin plan; no se extiende vigencia")
            return False

        plan = await self.plan_repo.get_active(session, record.plan_id)
        if plan is None:
            logger.warning(
                f"[subscription] Plan {record.plan_id} no encontrado o inactivo "
                f"(pago {record.payment_id}); vigencia sin cambios"
            )
            return False

        now = utcnow()
        subscription = await self.subscription_repo.get_for_update(session, record.user_id)
        current_expiry = subscription.expires_at if subscription else None
        new_expiry = compute_new_expiry(current_expiry, plan.duration_days, now, self.stacking)

        if subscription is None:
            created = await self.subscription_repo.insert_if_absent(
                session,
                user_id=record.user_id,
                plan_id=plan.id,
                expires_at=new_expiry,
                last_payment_id=record.payment_id,
                updated_at=now,
            )
            if not created:
                # primera compra concurrente: la otra transacción creó la fila
                subscription = await self.subscription_repo.get_for_update(session, record.user_id)
                new_expiry = compute_new_expiry(
                    subscription.expires_at, plan.duration_days, now, self.stacking
                )

        if subscription is not None:
            subscription.plan_id = plan.id
            subscription.expires_at = new_expiry
            subscription.last_payment_id = record.payment_id
            subscription.updated_at = now
        await session.flush()

        logger.info(
            f"[subscription] Usuario {record.user_id}: plan {plan.id} vigente hasta "
            f"{new_expiry.isoformat()} (stacking={self.stacking})"
        )
        return True


__all__ = ["SubscriptionService", "compute_new_expiry"]
# Fin del archivo aiproxy_payments/modules/payments/services/subscription_service.py
