# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/providers/stripe_provider.py

Proveedor Stripe (pasarela de intents con tarjeta).

- Creación: POST /v1/payment_intents con automatic_payment_methods y
  devolución de client_secret (el cliente confirma con Stripe.js).
- Montos en unidades menores según la tabla de monedas (JPY/KRW factor 1).
- Webhooks: header Stripe-Signature (HMAC-SHA256, tolerancia 300s).
- Confirm/cancel/refund: llamadas REST vivas; el registro se actualiza con
  UPDATE condicional.

Se habla con la API REST vía httpx (form-encoded) en lugar del SDK para
compartir timeouts y clasificación de errores con el resto de pasarelas.

Autor: Equipo AIProxy
Fecha: 2026-09-08
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Mapping, Optional

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.exceptions import UpstreamError, UpstreamRejected
from aiproxy_payments.modules.payments.providers.base import (
    apply_status_change,
    build_public_config,
    config_is_enabled,
    ensure_enabled,
    status_with_fallback,
)
from aiproxy_payments.modules.payments.repositories.billing_record_store import BillingRecordStore
from aiproxy_payments.modules.payments.schemas import (
    CreatePaymentParams,
    PaymentIntent,
    PaymentMethodOut,
    PaymentResult,
    StripeConfig,
    WebhookEvent,
)
from aiproxy_payments.modules.payments.services.gateway_client import GatewayClient
from aiproxy_payments.modules.payments.services.webhooks.signature_verification import (
    verify_stripe_signature,
)
from aiproxy_payments.modules.payments.utils.amounts import format_amount, parse_amount
from aiproxy_payments.modules.payments.utils.datetime_helpers import from_unix, utcnow

logger = logging.getLogger(__name__)


STRIPE_STATUS_MAP: Mapping[str, PaymentStatus] = {
    "requires_payment_method": PaymentStatus.PENDING,
    "requires_confirmation": PaymentStatus.PENDING,
    "requires_action": PaymentStatus.REQUIRES_ACTION,
    "processing": PaymentStatus.PROCESSING,
    "requires_capture": PaymentStatus.PROCESSING,
    "canceled": PaymentStatus.CANCELED,
    "succeeded": PaymentStatus.SUCCEEDED,
}

STRIPE_REFUND_REASONS = frozenset({"duplicate", "fraudulent", "requested_by_customer"})

EVENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_FAILED = "payment_intent.payment_failed"
EVENT_CANCELED = "payment_intent.canceled"
EVENT_REQUIRES_ACTION = "payment_intent.requires_action"


def map_stripe_status(status: Optional[str]) -> PaymentStatus:
    """Estado de PaymentIntent -> PaymentStatus; lo no mapeado es failed."""
    return STRIPE_STATUS_MAP.get(status or "", PaymentStatus.FAILED)


def encode_form(params: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    """
    Aplana dicts anidados a la notación de formularios de Stripe.

    Examples:
        >>> encode_form({"metadata": {"user_id": "u1"}, "amount": 100})
        {'metadata[user_id]': 'u1', 'amount': '100'}
    """
    flat: Dict[str, str] = {}
    for key, value in params.items():
        full_key = f"{prefix}[{key}]" if prefix else key
        if value is None:
            continue
        if isinstance(value, Mapping):
            flat.update(encode_form(value, full_key))
        elif isinstance(value, bool):
            flat[full_key] = "true" if value else "false"
        else:
            flat[full_key] = str(value)
    return flat


class StripeProvider:
    """Proveedor de intents de Stripe."""

    name = PaymentProvider.STRIPE
    supported_currencies: Optional[FrozenSet[str]] = None

    def __init__(
        self,
        config: StripeConfig,
        store: BillingRecordStore,
        gateway: Optional[GatewayClient] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.gateway = gateway or GatewayClient(self.name)

    # ------------------------------------------------------------------
    # Configuración
    # ------------------------------------------------------------------
    def is_enabled(self) -> bool:
        return config_is_enabled(self.config)

    def public_config(self) -> PaymentMethodOut:
        return build_public_config(self.name, self.config)

    def _url(self, path: str) -> str:
        return f"{self.config.api_base.rstrip('/')}/v1/{path.lstrip('/')}"

    def _headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.secret_key}",
            "Stripe-Version": self.config.api_version,
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    # ------------------------------------------------------------------
    # Creación
    # ------------------------------------------------------------------
    async def create_payment(self, params: CreatePaymentParams) -> PaymentIntent:
        ensure_enabled(self.name, self.config)
        currency = (params.currency or self.config.currency).lower()

        form = encode_form({
            "amount": format_amount(params.amount, currency),
            "currency": currency,
            "description": params.description,
            "automatic_payment_methods": {"enabled": True},
            "metadata": {
                **params.metadata,
                "user_id": params.user_id,
                "user_email": params.user_email,
                "plan_id": params.plan_id,
                "subscription_id": params.subscription_id,
            },
        })

        body = await self.gateway.request_json(
            "POST",
            self._url("payment_intents"),
            kind="submit",
            data=form,
            headers=self._headers(params.idempotency_key),
        )
        if not body.get("id") or not body.get("client_secret"):
            raise UpstreamRejected("Stripe no devolvió id/client_secret", provider=self.name)

        response_currency = str(body.get("currency") or currency)
        logger.info(f"[stripe] PaymentIntent creado {body['id']} ({body.get('status')})")
        return PaymentIntent(
            id=body["id"],
            provider=self.name,
            amount=parse_amount(body.get("amount", 0), response_currency),
            currency=response_currency.upper(),
            status=map_stripe_status(body.get("status")),
            client_secret=body["client_secret"],
            user_id=params.user_id,
            plan_id=params.plan_id,
            subscription_id=params.subscription_id,
            payment_method=params.payment_method or "card",
            metadata={"stripe_status": body.get("status")},
            created_at=from_unix(body.get("created")) or utcnow(),
        )

    # ------------------------------------------------------------------
    # Consultas y operaciones
    # ------------------------------------------------------------------
    async def _retrieve(self, payment_id: str) -> Dict[str, Any]:
        return await self.gateway.request_json(
            "GET",
            self._url(f"payment_intents/{payment_id}"),
            kind="query",
            headers=self._headers(),
        )

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        remote_status: Optional[PaymentStatus] = None
        remote_error: Optional[UpstreamError] = None
        try:
            intent = await self._retrieve(payment_id)
            remote_status = map_stripe_status(intent.get("status"))
        except UpstreamError as e:
            remote_error = e
        return await status_with_fallback(self.store, self.name, payment_id, remote_status, remote_error)

    async def confirm_payment(
        self, payment_id: str, payment_method: Optional[str] = None
    ) -> PaymentResult:
        ensure_enabled(self.name, self.config)
        intent = await self.gateway.request_json(
            "POST",
            self._url(f"payment_intents/{payment_id}/confirm"),
            kind="submit",
            data=encode_form({"payment_method": payment_method}),
            headers=self._headers(),
        )
        status = map_stripe_status(intent.get("status"))
        charge_id = intent.get("latest_charge") if status == PaymentStatus.SUCCEEDED else None
        applied = await apply_status_change(
            self.store,
            self.name,
            payment_id,
            status,
            transaction_id=charge_id,
            metadata_patch={"stripe_status": intent.get("status")},
        )
        return PaymentResult(
            success=status == PaymentStatus.SUCCEEDED and applied.success,
            payment_id=payment_id,
            status=applied.status,
            message="Pago confirmado" if status == PaymentStatus.SUCCEEDED else f"Estado: {intent.get('status')}",
            transaction_id=charge_id,
            metadata=applied.metadata,
        )

    async def cancel_payment(self, payment_id: str) -> PaymentResult:
        ensure_enabled(self.name, self.config)
        intent = await self.gateway.request_json(
            "POST",
            self._url(f"payment_intents/{payment_id}/cancel"),
            kind="submit",
            headers=self._headers(),
        )
        return await apply_status_change(
            self.store,
            self.name,
            payment_id,
            map_stripe_status(intent.get("status")),
            metadata_patch={"stripe_status": intent.get("status")},
            message="Pago cancelado",
        )

    async def refund_payment(
        self,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> PaymentResult:
        ensure_enabled(self.name, self.config)
        intent = await self._retrieve(payment_id)
        charge_id = intent.get("latest_charge")
        current = map_stripe_status(intent.get("status"))
        if not charge_id:
            return PaymentResult(
                success=False,
                payment_id=payment_id,
                status=current,
                message="El pago no tiene un cargo que reembolsar",
            )

        refund_params: Dict[str, Any] = {"charge": charge_id}
        if amount is not None:
            refund_params["amount"] = format_amount(amount, str(intent.get("currency") or "usd"))
        if reason in STRIPE_REFUND_REASONS:
            refund_params["reason"] = reason
        elif reason:
            refund_params["metadata"] = {"reason": reason}

        refund = await self.gateway.request_json(
            "POST",
            self._url("refunds"),
            kind="submit",
            data=encode_form(refund_params),
            headers=self._headers(),
        )
        refund_status = refund.get("status")
        await self.store.patch_metadata(
            payment_id,
            self.name,
            {"refund_id": refund.get("id"), "refund_status": refund_status},
        )
        return PaymentResult(
            success=refund_status in ("succeeded", "pending"),
            payment_id=payment_id,
            status=current,
            message=f"Reembolso {refund_status}",
            transaction_id=charge_id,
            metadata={"refund_id": refund.get("id"), "refund_status": refund_status},
        )

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------
    def validate_webhook(self, payload: bytes, signature: Optional[str]) -> Optional[WebhookEvent]:
        if not verify_stripe_signature(payload, signature, self.config.webhook_secret):
            return None
        try:
            event = json.loads(payload)
            return WebhookEvent(
                id=event["id"],
                type=event["type"],
                data=event.get("data") or {},
                timestamp=from_unix(event.get("created")) or utcnow(),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[stripe] Webhook con firma válida pero cuerpo inválido: {e}")
            return None

    async def handle_webhook(self, event: WebhookEvent) -> PaymentResult:
        obj = event.data.get("object") or {}
        payment_id = obj.get("id") or ""

        if event.type == EVENT_SUCCEEDED:
            return await apply_status_change(
                self.store,
                self.name,
                payment_id,
                PaymentStatus.SUCCEEDED,
                transaction_id=obj.get("latest_charge"),
                metadata_patch={"stripe_status": "succeeded"},
                message="Pago exitoso",
            )
        if event.type == EVENT_FAILED:
            error = obj.get("last_payment_error") or {}
            return await apply_status_change(
                self.store,
                self.name,
                payment_id,
                PaymentStatus.FAILED,
                metadata_patch={"failure_reason": error.get("message")},
                message=error.get("message") or "Pago fallido",
            )
        if event.type == EVENT_CANCELED:
            return await apply_status_change(
                self.store,
                self.name,
                payment_id,
                PaymentStatus.CANCELED,
                metadata_patch={"cancellation_reason": obj.get("cancellation_reason")},
                message="Pago cancelado",
            )
        if event.type == EVENT_REQUIRES_ACTION:
            return await apply_status_change(
                self.store,
                self.name,
                payment_id,
                PaymentStatus.REQUIRES_ACTION,
                message="Se requiere acción del cliente",
            )

        logger.info(f"[stripe] Evento {event.type} ignorado")
        return PaymentResult(
            success=True,
            payment_id=payment_id or event.id,
            status=STRIPE_STATUS_MAP.get(obj.get("status") or "", PaymentStatus.PROCESSING),
            message=f"Evento {event.type} ignorado",
        )

    async def aclose(self) -> None:
        await self.gateway.aclose()


__all__ = ["StripeProvider", "STRIPE_STATUS_MAP", "map_stripe_status", "encode_form"]
# Fin del archivo aiproxy_payments/modules/payments/providers/stripe_provider.py
