# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/models/billing_record_models.py

Modelo ORM para la tabla billing_records.

Una fila por PaymentIntent creado. `payment_id` es el id del intent/orden
en el proveedor y, junto con `provider`, la llave de todas las
actualizaciones (uq_billing_records_payment_id).

Autor: Equipo AIProxy
Fecha: 2026-09-04
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.utils.datetime_helpers import utcnow
from aiproxy_payments.shared.database.base import Base, JSONVariant, enum_column


def _new_id() -> str:
    return str(uuid.uuid4())


class BillingRecord(Base):
    """Registro persistido de un pago (cualquier proveedor)."""

    __tablename__ = "billing_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="ID del usuario que inició el pago.",
    )

    provider: Mapped[PaymentProvider] = mapped_column(
        enum_column(PaymentProvider),
        nullable=False,
    )

    payment_method: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        doc="Flujo/canal usado (card, qrcode, h5, jsapi, alipay, wxpay...).",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Monto en unidades mayores.",
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    status: Mapped[PaymentStatus] = mapped_column(
        enum_column(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    payment_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        doc="ID del intent/orden en el proveedor (PaymentIntent.id).",
    )

    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        doc="ID de liquidación del proveedor; solo se llena al tener éxito.",
    )

    plan_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    subscription_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    record_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSONVariant,
        nullable=False,
        default=dict,
        doc="Campos técnicos del proveedor (trade_no, buyer_id, refund_id...).",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Fin de la ventana de pago reportada por la pasarela.",
    )

    __table_args__ = (
        UniqueConstraint("payment_id", "provider", name="uq_billing_records_payment_id"),
        Index("ix_billing_records_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<BillingRecord id={self.id} provider={self.provider} "
            f"payment_id={self.payment_id} status={self.status}>"
        )


__all__ = ["BillingRecord"]

# Fin del archivo aiproxy_payments/modules/payments/models/billing_record_models.py
