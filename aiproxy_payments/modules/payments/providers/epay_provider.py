# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/providers/epay_provider.py

Proveedor Epay (易支付, agregador de redirección).

- Creación: mapa de parámetros determinista firmado con MD5 y anexado a
  {api_url}/submit.php como query string (payment_url). Sin llamada HTTP.
- Firma: parámetros no vacíos sin sign/sign_type, ordenados, "k=v&..." y la
  llave del comercio concatenada al final; MD5 hex.
- sign_type=RSA está declarado pero no implementado: crear lanza
  ConfigurationError y las notificaciones se rechazan (nunca se cae a MD5).
- Estado: solo desde el registro local; el agregador notifica por callback.
- Reembolso: manual, sin llamada a API.

Autor: Equipo AIProxy
Fecha: 2026-09-08
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Dict, FrozenSet, Optional
from urllib.parse import parse_qsl, quote, urlencode

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.exceptions import ConfigurationError
from aiproxy_payments.modules.payments.providers.base import (
    apply_status_change,
    build_public_config,
    config_is_enabled,
    ensure_currency,
    ensure_enabled,
    first_non_empty,
    persisted_status,
)
from aiproxy_payments.modules.payments.repositories.billing_record_store import BillingRecordStore
from aiproxy_payments.modules.payments.schemas import (
    CreatePaymentParams,
    EpayConfig,
    PaymentIntent,
    PaymentMethodOut,
    PaymentResult,
    WebhookEvent,
)
from aiproxy_payments.modules.payments.services.signing import md5_sign, md5_verify
from aiproxy_payments.modules.payments.utils.amounts import ensure_positive, format_amount, format_compact
from aiproxy_payments.modules.payments.utils.datetime_helpers import utcnow
from aiproxy_payments.modules.payments.utils.ids import generate_order_id

logger = logging.getLogger(__name__)

DEFAULT_ITEM_NAME = "AI服务订阅"
DEFAULT_CLIENT_IP = "127.0.0.1"
MANUAL_REFUND_MESSAGE = "manual processing required"

TRADE_SUCCESS_STATES = frozenset({"TRADE_SUCCESS", "TRADE_FINISHED"})
TRADE_CLOSED = "TRADE_CLOSED"


def parse_callback(payload: bytes) -> Dict[str, str]:
    """
    Cuerpo de notificación -> dict plano.
    Acepta form-urlencoded (POST), query string (GET) o JSON.
    """
    try:
        text = payload.decode("utf-8").strip()
    except UnicodeDecodeError:
        return {}
    if not text:
        return {}
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): "" if v is None else str(v) for k, v in data.items()}
    return dict(parse_qsl(text, keep_blank_values=True))


class EpayProvider:
    """Proveedor de redirección firmada del agregador."""

    name = PaymentProvider.EPAY
    supported_currencies: Optional[FrozenSet[str]] = frozenset({"CNY"})

    def __init__(self, config: EpayConfig, store: BillingRecordStore) -> None:
        self.config = config
        self.store = store

    # ------------------------------------------------------------------
    # Configuración
    # ------------------------------------------------------------------
    def is_enabled(self) -> bool:
        return config_is_enabled(self.config)

    def public_config(self) -> PaymentMethodOut:
        return build_public_config(self.name, self.config)

    def _sign(self, params: Dict[str, str]) -> str:
        if self.config.sign_type != "MD5":
            raise ConfigurationError(
                f"Firma {self.config.sign_type} declarada pero no implementada",
                provider=self.name,
            )
        return md5_sign(params, self.config.merchant_key or "")

    def _channel(self, requested: Optional[str]) -> str:
        channels = self.config.supported_channels
        if requested and requested in channels:
            return requested
        return channels[0] if channels else "alipay"

    # ------------------------------------------------------------------
    # Creación
    # ------------------------------------------------------------------
    async def create_payment(self, params: CreatePaymentParams) -> PaymentIntent:
        ensure_enabled(self.name, self.config)
        ensure_currency(self.name, self.supported_currencies, params.currency)
        amount = ensure_positive(params.amount)
        format_amount(amount, "CNY")  # InvalidAmount si hay más de 2 decimales

        order_id = generate_order_id("epay")
        channel = self._channel(params.payment_method)
        pay_params = {
            "pid": self.config.merchant_id,
            "type": channel,
            "out_trade_no": order_id,
            "notify_url": first_non_empty(params.notify_url, self.config.notify_url),
            "return_url": first_non_empty(params.return_url, self.config.return_url),
            "name": params.description or DEFAULT_ITEM_NAME,
            "money": format_compact(amount),
            "clientip": params.client_ip or DEFAULT_CLIENT_IP,
            "device": "pc",
        }
        pay_params = {k: v for k, v in pay_params.items() if v}

        sign = self._sign(pay_params)
        query = urlencode({**pay_params, "sign": sign, "sign_type": "MD5"}, quote_via=quote)
        payment_url = f"{self.config.api_url.rstrip('/')}/submit.php?{query}"

        logger.info(f"[epay] Orden creada {order_id} canal={channel}")
        return PaymentIntent(
            id=order_id,
            provider=self.name,
            amount=amount,
            currency="CNY",
            status=PaymentStatus.PENDING,
            payment_url=payment_url,
            user_id=params.user_id,
            plan_id=params.plan_id,
            subscription_id=params.subscription_id,
            payment_method=channel,
            metadata={"channel": channel},
            created_at=utcnow(),
        )

    # ------------------------------------------------------------------
    # Consultas y operaciones (solo registro local)
    # ------------------------------------------------------------------
    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        return await persisted_status(self.store, self.name, payment_id)

    async def confirm_payment(
        self, payment_id: str, payment_method: Optional[str] = None
    ) -> PaymentResult:
        """Confirmación manual (operador) tras verificar el cobro en el panel del agregador."""
        return await apply_status_change(
            self.store,
            self.name,
            payment_id,
            PaymentStatus.SUCCEEDED,
            metadata_patch={"confirmed_manually": True},
            message="Pago confirmado manualmente",
        )

    async def cancel_payment(self, payment_id: str) -> PaymentResult:
        record = await self.store.get(payment_id, self.name)
        if record is None:
            return PaymentResult(
                success=False,
                payment_id=payment_id,
                status=PaymentStatus.CANCELED,
                message="billing record not found",
            )
        if record.status != PaymentStatus.PENDING:
            return PaymentResult(
                success=False,
                payment_id=payment_id,
                status=record.status,
                message=f"Solo se cancelan pagos pendientes (estado {record.status})",
            )
        return await apply_status_change(
            self.store,
            self.name,
            payment_id,
            PaymentStatus.CANCELED,
            message="Pago cancelado",
        )

    async def refund_payment(
        self,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> PaymentResult:
        logger.info(f"[epay] Reembolso solicitado para {payment_id}: requiere proceso manual")
        return PaymentResult(
            success=False,
            payment_id=payment_id,
            status=PaymentStatus.FAILED,
            message=MANUAL_REFUND_MESSAGE,
        )

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------
    def validate_webhook(self, payload: bytes, signature: Optional[str]) -> Optional[WebhookEvent]:
        params = parse_callback(payload)
        if not params:
            logger.warning("[epay] Notificación vacía o ilegible")
            return None

        if self.config.sign_type != "MD5":
            logger.error(f"[epay] Notificación rechazada: firma {self.config.sign_type} no implementada")
            return None

        provided = signature or params.get("sign")
        if not md5_verify(params, self.config.merchant_key or "", provided):
            logger.warning(f"[epay] Firma inválida para orden {params.get('out_trade_no')}")
            return None

        if params.get("pid") and params["pid"] != self.config.merchant_id:
            logger.warning("[epay] Notificación de otro comercio (pid no coincide)")
            return None

        order_id = params.get("out_trade_no")
        if not order_id:
            return None

        return WebhookEvent(
            id=order_id,
            type=params.get("trade_status") or "UNKNOWN",
            data=params,
            timestamp=utcnow(),
        )

    async def handle_webhook(self, event: WebhookEvent) -> PaymentResult:
        order_id = event.data.get("out_trade_no") or event.id
        trade_status = event.data.get("trade_status")

        if trade_status in TRADE_SUCCESS_STATES:
            trade_no = event.data.get("trade_no")
            return await apply_status_change(
                self.store,
                self.name,
                order_id,
                PaymentStatus.SUCCEEDED,
                transaction_id=trade_no,
                metadata_patch={"trade_no": trade_no, "channel": event.data.get("type")},
                message="Pago exitoso",
            )
        if trade_status == TRADE_CLOSED:
            return await apply_status_change(
                self.store,
                self.name,
                order_id,
                PaymentStatus.CANCELED,
                message="Orden cerrada",
            )

        return PaymentResult(
            success=True,
            payment_id=order_id,
            status=PaymentStatus.PROCESSING,
            message=f"trade_status {trade_status}",
        )

    async def aclose(self) -> None:
        return None


__all__ = ["EpayProvider", "parse_callback", "MANUAL_REFUND_MESSAGE"]
# Fin del archivo aiproxy_payments/modules/payments/providers/epay_provider.py
