# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/models/subscription_models.py

Modelos ORM de planes y vigencia de suscripción por usuario.
Solo se usan como efecto posterior de un pago exitoso.

Autor: Equipo AIProxy
Fecha: 2026-09-04
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from aiproxy_payments.modules.payments.utils.datetime_helpers import utcnow
from aiproxy_payments.shared.database.base import Base


class SubscriptionPlan(Base):
    """Plan comprable; `duration_days` define cuánto extiende un pago."""

    __tablename__ = "subscription_plans"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserSubscription(Base):
    """Vigencia actual del plan de un usuario (una fila por usuario)."""

    __tablename__ = "user_subscriptions"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    plan_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_payment_id: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        doc="payment_id del último pago que extendió la vigencia.",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


__all__ = ["SubscriptionPlan", "UserSubscription"]

# Fin del archivo aiproxy_payments/modules/payments/models/subscription_models.py
