# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/schemas/payment_request_schemas.py

Cuerpos y respuestas de las rutas HTTP de pagos.

Autor: Equipo AIProxy
Fecha: 2026-09-12
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.schemas.payment_schemas import CreatePaymentParams


class CreatePaymentRequest(CreatePaymentParams):
    """CreatePaymentParams + proveedor opcional (si falta se usa el default)."""

    provider: Optional[PaymentProvider] = None

    def to_params(self) -> CreatePaymentParams:
        return CreatePaymentParams.model_validate(self.model_dump(exclude={"provider"}))


class ConfirmPaymentRequest(BaseModel):
    payment_method: Optional[str] = None


class RefundPaymentRequest(BaseModel):
    amount: Optional[Decimal] = Field(default=None, description="Parcial; si falta se reembolsa el total.")
    reason: Optional[str] = Field(default=None, max_length=256)


class PaymentStatusOut(BaseModel):
    provider: PaymentProvider
    payment_id: str
    status: PaymentStatus
    is_final: bool


__all__ = [
    "CreatePaymentRequest",
    "ConfirmPaymentRequest",
    "RefundPaymentRequest",
    "PaymentStatusOut",
]

# Fin del archivo aiproxy_payments/modules/payments/schemas/payment_request_schemas.py
