# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/providers/alipay_provider.py

Proveedor Alipay (支付宝) directo, API OpenAPI con firma RSA2.

Flujos de creación:
- page pay (alipay.trade.page.pay): URL firmada del gateway, sin llamada HTTP
- precreate (alipay.trade.precreate) para payment_method qrcode/mobile:
  devuelve qr_code; si la pasarela falla se cae a la URL de page pay

Consultas (query/close/refund) van por POST form al gateway y se leen del
sobre "<método con _>_response"; code "10000" es éxito.

Las notificaciones asíncronas llegan form-encoded y se verifican con la
llave pública de Alipay sobre la cadena canónica (sin sign/sign_type).

Autor: Equipo AIProxy
Fecha: 2026-09-09
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Mapping, Optional
from urllib.parse import parse_qsl, quote, urlencode

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.exceptions import (
    ConfigurationError,
    UpstreamError,
    UpstreamRejected,
)
from aiproxy_payments.modules.payments.providers.base import (
    apply_status_change,
    build_public_config,
    config_is_enabled,
    ensure_currency,
    ensure_enabled,
    first_non_empty,
    status_with_fallback,
)
from aiproxy_payments.modules.payments.repositories.billing_record_store import BillingRecordStore
from aiproxy_payments.modules.payments.schemas import (
    AlipayConfig,
    CreatePaymentParams,
    PaymentIntent,
    PaymentMethodOut,
    PaymentResult,
    WebhookEvent,
)
from aiproxy_payments.modules.payments.services.gateway_client import GatewayClient
from aiproxy_payments.modules.payments.services.signing import canonical_query, rsa_sign, rsa_verify
from aiproxy_payments.modules.payments.utils.amounts import ensure_positive, format_amount, format_major
from aiproxy_payments.modules.payments.utils.datetime_helpers import to_gateway_timestamp, utcnow
from aiproxy_payments.modules.payments.utils.ids import generate_order_id

logger = logging.getLogger(__name__)

ALIPAY_SUCCESS_CODE = "10000"
PAYMENT_WINDOW = timedelta(minutes=15)

METHOD_PAGE_PAY = "alipay.trade.page.pay"
METHOD_PRECREATE = "alipay.trade.precreate"
METHOD_QUERY = "alipay.trade.query"
METHOD_CLOSE = "alipay.trade.close"
METHOD_REFUND = "alipay.trade.refund"

QR_PAYMENT_METHODS = frozenset({"qrcode", "mobile"})

ALIPAY_STATUS_MAP: Mapping[str, PaymentStatus] = {
    "WAIT_BUYER_PAY": PaymentStatus.PENDING,
    "TRADE_CLOSED": PaymentStatus.CANCELED,
    "TRADE_SUCCESS": PaymentStatus.SUCCEEDED,
    "TRADE_FINISHED": PaymentStatus.SUCCEEDED,
}


def map_alipay_status(trade_status: Optional[str]) -> PaymentStatus:
    """trade_status -> PaymentStatus; lo desconocido se reporta como pending."""
    return ALIPAY_STATUS_MAP.get(trade_status or "", PaymentStatus.PENDING)


def response_envelope(method: str) -> str:
    """
    Examples:
        >>> response_envelope("alipay.trade.query")
        'alipay_trade_query_response'
    """
    return method.replace(".", "_") + "_response"


class AlipayProvider:
    """Proveedor directo de Alipay."""

    name = PaymentProvider.ALIPAY
    supported_currencies: Optional[FrozenSet[str]] = frozenset({"CNY"})

    def __init__(
        self,
        config: AlipayConfig,
        store: BillingRecordStore,
        gateway: Optional[GatewayClient] = None,
        *,
        payment_window: timedelta = PAYMENT_WINDOW,
    ) -> None:
        self.config = config
        self.store = store
        self.gateway = gateway or GatewayClient(self.name)
        self.payment_window = payment_window

    def is_enabled(self) -> bool:
        return config_is_enabled(self.config)

    def public_config(self) -> PaymentMethodOut:
        return build_public_config(self.name, self.config)

    def _timeout_express(self) -> str:
        return f"{max(1, int(self.payment_window.total_seconds() // 60))}m"

    # ------------------------------------------------------------------
    # Firma y llamadas al gateway
    # ------------------------------------------------------------------
    def _signed_params(
        self,
        method: str,
        biz_content: Mapping[str, Any],
        extra: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Dict[str, str]:
        params: Dict[str, str] = {
            "app_id": self.config.app_id or "",
            "method": method,
            "charset": "utf-8",
            "sign_type": "RSA2",
            "timestamp": to_gateway_timestamp(utcnow()),
            "version": "1.0",
            "biz_content": json.dumps(biz_content, ensure_ascii=False, separators=(",", ":")),
        }
        for key, value in (extra or {}).items():
            if value:
                params[key] = value
        # sign_type sí forma parte de la cadena firmada en peticiones salientes
        params["sign"] = rsa_sign(canonical_query(params, exclude=("sign",)), self.config.private_key or "")
        return params

    async def _call(
        self,
        method: str,
        biz_content: Mapping[str, Any],
        *,
        kind: str = "submit",
        extra: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Dict[str, Any]:
        body = await self.gateway.request_json(
            "POST",
            self.config.gateway_url,
            kind=kind,
            data=self._signed_params(method, biz_content, extra),
        )
        envelope = body.get(response_envelope(method)) or {}
        if envelope.get("code") != ALIPAY_SUCCESS_CODE:
            message = envelope.get("sub_msg") or envelope.get("msg") or "Respuesta de Alipay sin código"
            raise UpstreamRejected(
                message,
                provider=self.name,
                upstream_code=envelope.get("sub_code") or envelope.get("code"),
            )
        return envelope

    # ------------------------------------------------------------------
    # Creación
    # ------------------------------------------------------------------
    async def create_payment(self, params: CreatePaymentParams) -> PaymentIntent:
        ensure_enabled(self.name, self.config)
        ensure_currency(self.name, self.supported_currencies, params.currency)
        amount = ensure_positive(params.amount)
        format_amount(amount, "CNY")  # InvalidAmount si hay más de 2 decimales

        order_id = generate_order_id("alipay")
        subject = params.description or "商品支付"
        notify_url = first_non_empty(params.notify_url, self.config.notify_url)
        return_url = first_non_empty(params.return_url, self.config.return_url)
        method = params.payment_method or "alipay"

        payment_url: Optional[str] = None
        qr_code: Optional[str] = None
        if method in QR_PAYMENT_METHODS:
            try:
                envelope = await self._call(
                    METHOD_PRECREATE,
                    {
                        "out_trade_no": order_id,
                        "total_amount": format_major(amount),
                        "subject": subject,
                        "timeout_express": self._timeout_express(),
                    },
                    extra={"notify_url": notify_url},
                )
                qr_code = envelope.get("qr_code") or None
            except UpstreamError as e:
                logger.warning(f"[alipay] Precreate falló para {order_id} ({e.code}); se usa page pay")

        if qr_code is None:
            signed = self._signed_params(
                METHOD_PAGE_PAY,
                {
                    "out_trade_no": order_id,
                    "total_amount": format_major(amount),
                    "subject": subject,
                    "body": subject,
                    "timeout_express": self._timeout_express(),
                    "product_code": "FAST_INSTANT_TRADE_PAY",
                },
                extra={"notify_url": notify_url, "return_url": return_url},
            )
            payment_url = f"{self.config.gateway_url}?{urlencode(signed, quote_via=quote)}"

        now = utcnow()
        logger.info(f"[alipay] Orden creada {order_id} ({'qr' if qr_code else 'page'})")
        return PaymentIntent(
            id=order_id,
            provider=self.name,
            amount=amount,
            currency="CNY",
            status=PaymentStatus.PENDING,
            payment_url=payment_url,
            qr_code=qr_code,
            user_id=params.user_id,
            plan_id=params.plan_id,
            subscription_id=params.subscription_id,
            payment_method=method,
            metadata={"alipay_app_id": self.config.app_id, "total_amount": format_major(amount)},
            created_at=now,
            expires_at=now + self.payment_window,
        )

    # ------------------------------------------------------------------
    # Consultas y operaciones
    # ------------------------------------------------------------------
    async def _query_trade(self, payment_id: str) -> Dict[str, Any]:
        return await self._call(METHOD_QUERY, {"out_trade_no": payment_id}, kind="query")

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        remote_status: Optional[PaymentStatus] = None
        remote_error: Optional[UpstreamError] = None
        try:
            trade = await self._query_trade(payment_id)
            remote_status = map_alipay_status(trade.get("trade_status"))
        except UpstreamError as e:
            remote_error = e
        return await status_with_fallback(self.store, self.name, payment_id, remote_status, remote_error)

    async def confirm_payment(
        self, payment_id: str, payment_method: Optional[str] = None
    ) -> PaymentResult:
        """Alipay confirma por notificación; aquí se reconcilia contra trade.query."""
        ensure_enabled(self.name, self.config)
        trade = await self._query_trade(payment_id)
        status = map_alipay_status(trade.get("trade_status"))
        if status == PaymentStatus.PENDING:
            return PaymentResult(
                success=False,
                payment_id=payment_id,
                status=status,
                message="El comprador aún no paga",
            )
        trade_no = trade.get("trade_no")
        applied = await apply_status_change(
            self.store,
            self.name,
            payment_id,
            status,
            transaction_id=trade_no if status == PaymentStatus.SUCCEEDED else None,
            metadata_patch={"alipay_trade_status": trade.get("trade_status")},
        )
        return PaymentResult(
            success=status == PaymentStatus.SUCCEEDED and applied.success,
            payment_id=payment_id,
            status=applied.status,
            message=applied.message,
            transaction_id=trade_no,
            metadata=applied.metadata,
        )

    async def cancel_payment(self, payment_id: str) -> PaymentResult:
        ensure_enabled(self.name, self.config)
        envelope = await self._call(METHOD_CLOSE, {"out_trade_no": payment_id})
        return await apply_status_change(
            self.store,
            self.name,
            payment_id,
            PaymentStatus.CANCELED,
            metadata_patch={"alipay_trade_no": envelope.get("trade_no")},
            message="支付已取消",
        )

    async def refund_payment(
        self,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> PaymentResult:
        ensure_enabled(self.name, self.config)
        if amount is None:
            record = await self.store.get(payment_id, self.name)
            amount = record.amount if record else None
        if amount is None:
            return PaymentResult(
                success=False,
                payment_id=payment_id,
                status=PaymentStatus.FAILED,
                message="Monto de reembolso desconocido",
            )
        amount = ensure_positive(amount)
        format_amount(amount, "CNY")  # InvalidAmount si hay más de 2 decimales

        envelope = await self._call(
            METHOD_REFUND,
            {
                "out_trade_no": payment_id,
                "refund_amount": format_major(amount),
                "refund_reason": reason or "用户申请退款",
                "out_request_no": generate_order_id("refund"),
            },
        )
        refund_fee = envelope.get("refund_fee")
        await self.store.patch_metadata(
            payment_id,
            self.name,
            {"refund_fee": refund_fee, "refund_reason": reason},
        )
        return PaymentResult(
            success=True,
            payment_id=payment_id,
            status=PaymentStatus.SUCCEEDED,
            message=f"Reembolso {refund_fee}",
            transaction_id=envelope.get("trade_no"),
            metadata={"refund_fee": refund_fee},
        )

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------
    def validate_webhook(self, payload: bytes, signature: Optional[str]) -> Optional[WebhookEvent]:
        try:
            params = dict(parse_qsl(payload.decode("utf-8"), keep_blank_values=True))
        except UnicodeDecodeError:
            logger.warning("[alipay] Notificación con codificación inválida")
            return None

        provided = signature or params.get("sign")
        try:
            valid = rsa_verify(canonical_query(params), provided, self.config.alipay_public_key or "")
        except ConfigurationError as e:
            logger.error(f"[alipay] No se pudo verificar la notificación: {e}")
            return None
        if not valid:
            logger.warning(f"[alipay] Firma inválida para orden {params.get('out_trade_no')}")
            return None

        if params.get("app_id") and params["app_id"] != self.config.app_id:
            logger.warning("[alipay] Notificación para otra app_id")
            return None

        order_id = params.get("out_trade_no")
        if not order_id:
            return None
        return WebhookEvent(
            id=params.get("notify_id") or order_id,
            type=params.get("trade_status") or "payment_notify",
            data=params,
            timestamp=utcnow(),
        )

    async def handle_webhook(self, event: WebhookEvent) -> PaymentResult:
        data = event.data
        order_id = data.get("out_trade_no") or event.id
        trade_status = data.get("trade_status")
        status = map_alipay_status(trade_status)

        if status == PaymentStatus.SUCCEEDED:
            return await apply_status_change(
                self.store,
                self.name,
                order_id,
                PaymentStatus.SUCCEEDED,
                transaction_id=data.get("trade_no"),
                metadata_patch={
                    "alipay_trade_no": data.get("trade_no"),
                    "alipay_trade_status": trade_status,
                    "alipay_buyer_id": data.get("buyer_id"),
                },
                message="Pago exitoso",
            )
        if status == PaymentStatus.CANCELED:
            return await apply_status_change(
                self.store,
                self.name,
                order_id,
                PaymentStatus.CANCELED,
                metadata_patch={"alipay_trade_status": trade_status},
                message="Orden cerrada",
            )

        return PaymentResult(
            success=True,
            payment_id=order_id,
            status=PaymentStatus.PROCESSING,
            message="支付处理中",
        )

    async def aclose(self) -> None:
        await self.gateway.aclose()


__all__ = ["AlipayProvider", "ALIPAY_STATUS_MAP", "map_alipay_status", "response_envelope"]
# Fin del archivo aiproxy_payments/modules/payments/providers/alipay_provider.py
