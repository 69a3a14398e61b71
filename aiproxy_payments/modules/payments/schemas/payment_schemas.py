# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/schemas/payment_schemas.py

Esquemas Pydantic compartidos por todos los proveedores:
- CreatePaymentParams: entrada de creación de pago
- PaymentIntent: resultado de la creación (un solo campo de presentación)
- PaymentResult: resultado de confirm/cancel/refund/webhook
- WebhookEvent: evento normalizado tras validar la firma
- BillingRecordSnapshot: lectura inmutable de un BillingRecord

Autor: Equipo AIProxy
Fecha: 2026-09-04
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus

PRESENTATION_FIELDS = ("client_secret", "payment_url", "qr_code")


class CreatePaymentParams(BaseModel):
    """
    Parámetros de creación de pago.

    El vínculo de negocio (usuario, plan, suscripción) va tipado; `metadata`
    queda para extras del llamador que se reenvían al proveedor.
    """

    amount: Decimal = Field(description="Monto en unidades mayores (> 0).")
    currency: str = Field(default="USD", min_length=3, max_length=3)
    description: Optional[str] = Field(default=None, max_length=256)

    user_id: str = Field(min_length=1)
    user_email: Optional[str] = None
    plan_id: Optional[str] = None
    subscription_id: Optional[str] = None

    return_url: Optional[str] = None
    cancel_url: Optional[str] = None
    notify_url: Optional[str] = None

    payment_method: Optional[str] = Field(
        default=None,
        description="Pista de flujo: qrcode, mobile, h5, jsapi o canal del agregador.",
    )
    payer_id: Optional[str] = Field(default=None, description="openid del pagador (JSAPI).")
    client_ip: Optional[str] = None
    idempotency_key: Optional[str] = None

    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator("payment_method")
    @classmethod
    def _lower_method(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class PaymentIntent(BaseModel):
    """Resultado de crear un pago; `id` es la llave hacia el BillingRecord."""

    id: str
    provider: PaymentProvider
    amount: Decimal
    currency: str
    status: PaymentStatus

    client_secret: Optional[str] = None
    payment_url: Optional[str] = None
    qr_code: Optional[str] = None

    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    subscription_id: Optional[str] = None
    payment_method: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _exactly_one_presentation_field(self) -> "PaymentIntent":
        populated = [f for f in PRESENTATION_FIELDS if getattr(self, f)]
        if len(populated) != 1:
            raise ValueError(
                f"PaymentIntent requiere exactamente uno de {PRESENTATION_FIELDS}, "
                f"recibidos: {populated}"
            )
        return self


class PaymentResult(BaseModel):
    """
    Resultado de confirm/cancel/refund/handle_webhook.

    En webhooks `success=True` significa "evento aceptado y aplicado (o no-op
    idempotente)"; `status` refleja el estado resultante del registro.
    """

    success: bool
    payment_id: str
    status: PaymentStatus
    message: Optional[str] = None
    transaction_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class WebhookEvent(BaseModel):
    """Evento normalizado; efímero, solo se persisten sus efectos."""

    id: str
    type: str
    data: Dict[str, Any]
    timestamp: datetime


class BillingRecordSnapshot(BaseModel):
    """Vista de solo lectura de un BillingRecord (desacoplada de la sesión ORM)."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    user_id: str
    provider: PaymentProvider
    payment_method: Optional[str] = None
    amount: Decimal
    currency: str
    status: PaymentStatus
    description: Optional[str] = None
    payment_id: str
    transaction_id: Optional[str] = None
    plan_id: Optional[str] = None
    subscription_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="record_metadata")
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


__all__ = [
    "PRESENTATION_FIELDS",
    "CreatePaymentParams",
    "PaymentIntent",
    "PaymentResult",
    "WebhookEvent",
    "BillingRecordSnapshot",
]

# Fin del archivo aiproxy_payments/modules/payments/schemas/payment_schemas.py
