# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/providers/wechat_pay_provider.py

Proveedor WeChat Pay (微信支付) API v3.

Cada petición lleva el header:

    Authorization: WECHATPAY2-SHA256-RSA2048 mchid="..",nonce_str="..",
                   signature="..",timestamp="..",serial_no=".."

firmado con la llave privada del comercio sobre
"METHOD\\nPATH\\nTIMESTAMP\\nNONCE\\nBODY\\n".

Flujos: h5 (h5_url), jsapi (prepay_id -> parámetros firmados para el SDK
del cliente, requiere payer_id/openid) y NATIVE por defecto (code_url).

Las notificaciones traen `resource` cifrado con AES-256-GCM (llave API v3);
si hay llave pública de plataforma configurada también se verifica la firma
RSA de los headers Wechatpay-*.

Autor: Equipo AIProxy
Fecha: 2026-09-10
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Mapping, Optional

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.exceptions import (
    ConfigurationError,
    DecryptionError,
    InvalidPaymentRequest,
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
    CreatePaymentParams,
    PaymentIntent,
    PaymentMethodOut,
    PaymentResult,
    WebhookEvent,
    WechatPayConfig,
)
from aiproxy_payments.modules.payments.services.gateway_client import GatewayClient
from aiproxy_payments.modules.payments.services.signing import (
    aead_decrypt,
    rsa_sign,
    rsa_verify,
    wechat_message,
)
from aiproxy_payments.modules.payments.services.webhooks.signature_verification import (
    parse_wechat_signature_header,
)
from aiproxy_payments.modules.payments.utils.amounts import (
    ensure_positive,
    format_amount,
    parse_amount,
)
from aiproxy_payments.modules.payments.utils.datetime_helpers import to_rfc3339_china, utcnow
from aiproxy_payments.modules.payments.utils.ids import generate_nonce, generate_order_id

logger = logging.getLogger(__name__)

AUTH_SCHEMA = "WECHATPAY2-SHA256-RSA2048"
PAYMENT_WINDOW = timedelta(minutes=15)
NOTIFY_TOLERANCE_SECONDS = 300

TRADE_NATIVE = "NATIVE"
TRADE_H5 = "H5"
TRADE_JSAPI = "JSAPI"

EVENT_TRANSACTION_SUCCESS = "TRANSACTION.SUCCESS"
EVENT_REFUND_SUCCESS = "REFUND.SUCCESS"

WECHAT_STATUS_MAP: Mapping[str, PaymentStatus] = {
    "SUCCESS": PaymentStatus.SUCCEEDED,
    "REFUND": PaymentStatus.SUCCEEDED,
    "NOTPAY": PaymentStatus.PENDING,
    "CLOSED": PaymentStatus.CANCELED,
    "REVOKED": PaymentStatus.CANCELED,
    "USERPAYING": PaymentStatus.PROCESSING,
    "PAYERROR": PaymentStatus.FAILED,
}


def map_wechat_status(trade_state: Optional[str]) -> PaymentStatus:
    return WECHAT_STATUS_MAP.get(trade_state or "", PaymentStatus.PENDING)


def determine_trade_type(payment_method: Optional[str]) -> str:
    """
    Examples:
        >>> determine_trade_type("h5"), determine_trade_type("jsapi"), determine_trade_type(None)
        ('H5', 'JSAPI', 'NATIVE')
    """
    method = (payment_method or "").lower()
    if method == "h5":
        return TRADE_H5
    if method == "jsapi":
        return TRADE_JSAPI
    return TRADE_NATIVE


class WechatPayProvider:
    """Proveedor directo de WeChat Pay v3."""

    name = PaymentProvider.WECHAT_PAY
    supported_currencies: Optional[FrozenSet[str]] = frozenset({"CNY"})

    def __init__(
        self,
        config: WechatPayConfig,
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

    # ------------------------------------------------------------------
    # Firma de peticiones
    # ------------------------------------------------------------------
    def _sign(self, *lines: str) -> str:
        return rsa_sign(wechat_message(*lines), self.config.private_key or "")

    def build_authorization(self, method: str, path: str, body: str) -> str:
        timestamp = str(int(utcnow().timestamp()))
        nonce = generate_nonce(32)
        signature = self._sign(method.upper(), path, timestamp, nonce, body)
        return (
            f'{AUTH_SCHEMA} mchid="{self.config.mch_id}",nonce_str="{nonce}",'
            f'signature="{signature}",timestamp="{timestamp}",serial_no="{self.config.serial_no}"'
        )

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        *,
        kind: str = "submit",
    ) -> Dict[str, Any]:
        body_text = (
            json.dumps(body, ensure_ascii=False, separators=(",", ":")) if body is not None else ""
        )
        headers = {
            "Authorization": self.build_authorization(method, path, body_text),
            "Accept": "application/json",
        }
        if body is not None:
            headers["Content-Type"] = "application/json"
        return await self.gateway.request_json(
            method,
            f"{self.config.api_base.rstrip('/')}{path}",
            kind=kind,
            content=body_text.encode("utf-8") if body is not None else None,
            headers=headers,
        )

    def jsapi_pay_params(self, prepay_id: str) -> str:
        """Parámetros que el cliente pasa a WeixinJSBridge/wx.requestPayment (JSON)."""
        timestamp = str(int(utcnow().timestamp()))
        nonce = generate_nonce(32)
        package = f"prepay_id={prepay_id}"
        return json.dumps(
            {
                "appId": self.config.app_id,
                "timeStamp": timestamp,
                "nonceStr": nonce,
                "package": package,
                "signType": "RSA",
                "paySign": self._sign(self.config.app_id or "", timestamp, nonce, package),
            },
            separators=(",", ":"),
        )

    # ------------------------------------------------------------------
    # Creación
    # ------------------------------------------------------------------
    async def create_payment(self, params: CreatePaymentParams) -> PaymentIntent:
        ensure_enabled(self.name, self.config)
        ensure_currency(self.name, self.supported_currencies, params.currency)
        amount = ensure_positive(params.amount)
        trade_type = determine_trade_type(params.payment_method)

        if trade_type == TRADE_JSAPI:
            if not params.payer_id:
                raise InvalidPaymentRequest("JSAPI requiere payer_id (openid)", provider=self.name)
            if not self.config.app_id:
                raise ConfigurationError("JSAPI requiere WECHAT_PAY_APP_ID", provider=self.name)

        order_id = generate_order_id("wechat")
        now = utcnow()
        expires_at = now + self.payment_window
        request_body: Dict[str, Any] = {
            "mchid": self.config.mch_id,
            "description": params.description or "商品支付",
            "out_trade_no": order_id,
            "time_expire": to_rfc3339_china(expires_at),
            "notify_url": first_non_empty(params.notify_url, self.config.notify_url),
            "amount": {"total": format_amount(amount, "CNY"), "currency": "CNY"},
        }
        if self.config.app_id:
            request_body["appid"] = self.config.app_id
        if trade_type == TRADE_JSAPI:
            request_body["payer"] = {"openid": params.payer_id}
        elif trade_type == TRADE_H5:
            request_body["scene_info"] = {
                "payer_client_ip": params.client_ip or "127.0.0.1",
                "h5_info": {"type": "Wap"},
            }

        data = await self._request(
            "POST", f"/v3/pay/transactions/{trade_type.lower()}", request_body
        )

        presentation: Dict[str, Optional[str]] = {}
        if trade_type == TRADE_NATIVE:
            presentation["qr_code"] = data.get("code_url")
        elif trade_type == TRADE_H5:
            presentation["payment_url"] = data.get("h5_url")
        elif data.get("prepay_id"):
            presentation["client_secret"] = self.jsapi_pay_params(data["prepay_id"])
        if not any(presentation.values()):
            raise UpstreamRejected(
                f"WeChat Pay no devolvió datos de pago para {trade_type}", provider=self.name
            )

        logger.info(f"[wechat_pay] Orden creada {order_id} ({trade_type})")
        return PaymentIntent(
            id=order_id,
            provider=self.name,
            amount=amount,
            currency="CNY",
            status=PaymentStatus.PENDING,
            user_id=params.user_id,
            plan_id=params.plan_id,
            subscription_id=params.subscription_id,
            payment_method=trade_type.lower(),
            metadata={"trade_type": trade_type, "prepay_id": data.get("prepay_id")},
            created_at=now,
            expires_at=expires_at,
            **presentation,
        )

    # ------------------------------------------------------------------
    # Consultas y operaciones
    # ------------------------------------------------------------------
    async def _query_transaction(self, payment_id: str) -> Dict[str, Any]:
        return await self._request(
            "GET",
            f"/v3/pay/transactions/out-trade-no/{payment_id}?mchid={self.config.mch_id}",
            kind="query",
        )

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        remote_status: Optional[PaymentStatus] = None
        remote_error: Optional[UpstreamError] = None
        try:
            data = await self._query_transaction(payment_id)
            remote_status = map_wechat_status(data.get("trade_state"))
        except UpstreamError as e:
            remote_error = e
        return await status_with_fallback(self.store, self.name, payment_id, remote_status, remote_error)

    async def confirm_payment(
        self, payment_id: str, payment_method: Optional[str] = None
    ) -> PaymentResult:
        ensure_enabled(self.name, self.config)
        data = await self._query_transaction(payment_id)
        status = map_wechat_status(data.get("trade_state"))
        if status == PaymentStatus.PENDING:
            return PaymentResult(
                success=False,
                payment_id=payment_id,
                status=status,
                message=data.get("trade_state_desc") or "Pago pendiente",
            )
        transaction_id = data.get("transaction_id")
        applied = await apply_status_change(
            self.store,
            self.name,
            payment_id,
            status,
            transaction_id=transaction_id if status == PaymentStatus.SUCCEEDED else None,
            metadata_patch={"wechat_trade_state": data.get("trade_state")},
        )
        return PaymentResult(
            success=status == PaymentStatus.SUCCEEDED and applied.success,
            payment_id=payment_id,
            status=applied.status,
            message=applied.message,
            transaction_id=transaction_id,
            metadata=applied.metadata,
        )

    async def cancel_payment(self, payment_id: str) -> PaymentResult:
        ensure_enabled(self.name, self.config)
        await self._request(
            "POST",
            f"/v3/pay/transactions/out-trade-no/{payment_id}/close",
            {"mchid": self.config.mch_id},
        )
        return await apply_status_change(
            self.store,
            self.name,
            payment_id,
            PaymentStatus.CANCELED,
            message="订单已关闭",
        )

    async def refund_payment(
        self,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> PaymentResult:
        ensure_enabled(self.name, self.config)
        record = await self.store.get(payment_id, self.name)
        if record is None:
            return PaymentResult(
                success=False,
                payment_id=payment_id,
                status=PaymentStatus.FAILED,
                message="billing record not found",
            )

        total = format_amount(record.amount, "CNY")
        refund = format_amount(amount, "CNY") if amount is not None else total
        body: Dict[str, Any] = {
            "out_trade_no": payment_id,
            "out_refund_no": generate_order_id("refund"),
            "amount": {"refund": refund, "total": total, "currency": "CNY"},
        }
        if reason:
            body["reason"] = reason

        data = await self._request("POST", "/v3/refund/domestic/refunds", body)
        refund_status = data.get("status")
        refund_amount = parse_amount((data.get("amount") or {}).get("refund", refund), "CNY")
        await self.store.patch_metadata(
            payment_id,
            self.name,
            {
                "refund_id": data.get("refund_id"),
                "refund_status": refund_status,
                "refund_amount": str(refund_amount),
            },
        )
        return PaymentResult(
            success=refund_status in ("SUCCESS", "PROCESSING"),
            payment_id=payment_id,
            status=record.status,
            message=f"Reembolso {refund_status}",
            transaction_id=data.get("refund_id"),
            metadata={"refund_amount": str(refund_amount), "out_refund_no": data.get("out_refund_no")},
        )

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------
    def _verify_platform_signature(self, header: Dict[str, str], body_text: str) -> bool:
        try:
            timestamp = int(header["t"])
        except ValueError:
            return False
        if abs(int(utcnow().timestamp()) - timestamp) > NOTIFY_TOLERANCE_SECONDS:
            logger.warning("[wechat_pay] Notificación fuera de la ventana de tolerancia")
            return False
        message = wechat_message(header["t"], header["n"], body_text)
        try:
            return rsa_verify(message, header["s"], self.config.platform_public_key or "")
        except ConfigurationError as e:
            logger.error(f"[wechat_pay] Llave pública de plataforma inválida: {e}")
            return False

    def validate_webhook(self, payload: bytes, signature: Optional[str]) -> Optional[WebhookEvent]:
        header = parse_wechat_signature_header(signature)
        if header is None:
            logger.warning("[wechat_pay] Headers Wechatpay-* incompletos")
            return None
        try:
            body_text = payload.decode("utf-8")
        except UnicodeDecodeError:
            return None

        if self.config.platform_public_key:
            if not self._verify_platform_signature(header, body_text):
                logger.warning("[wechat_pay] Firma de plataforma inválida")
                return None
        else:
            logger.debug("[wechat_pay] Sin llave de plataforma; la autenticidad recae en AES-GCM")

        try:
            body = json.loads(body_text)
            resource = body["resource"]
            plaintext = aead_decrypt(
                self.config.api_v3_key or "",
                resource["nonce"],
                resource["ciphertext"],
                resource.get("associated_data"),
            )
            decrypted = json.loads(plaintext)
        except DecryptionError as e:
            logger.warning(f"[wechat_pay] No se pudo descifrar resource: {e}")
            return None
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[wechat_pay] Notificación mal formada: {e}")
            return None

        if not isinstance(decrypted, dict):
            return None
        if decrypted.get("mchid") and decrypted["mchid"] != self.config.mch_id:
            logger.warning("[wechat_pay] Notificación de otro comercio (mchid no coincide)")
            return None

        return WebhookEvent(
            id=str(body.get("id") or decrypted.get("out_trade_no") or ""),
            type=str(body.get("event_type") or "payment_notify"),
            data={**{k: v for k, v in body.items() if k != "resource"}, "resource": decrypted},
            timestamp=utcnow(),
        )

    async def handle_webhook(self, event: WebhookEvent) -> PaymentResult:
        resource = event.data.get("resource") or {}
        order_id = resource.get("out_trade_no") or event.id

        if event.type == EVENT_TRANSACTION_SUCCESS:
            return await apply_status_change(
                self.store,
                self.name,
                order_id,
                PaymentStatus.SUCCEEDED,
                transaction_id=resource.get("transaction_id"),
                metadata_patch={
                    "wechat_transaction_id": resource.get("transaction_id"),
                    "wechat_trade_state": resource.get("trade_state"),
                    "wechat_payer_openid": (resource.get("payer") or {}).get("openid"),
                },
                message="Pago exitoso",
            )
        if event.type == EVENT_REFUND_SUCCESS:
            refund_minor = (resource.get("amount") or {}).get("refund")
            patched = await self.store.patch_metadata(
                order_id,
                self.name,
                {
                    "refund_id": resource.get("refund_id"),
                    "refund_status": resource.get("refund_status"),
                    "refund_amount": str(parse_amount(refund_minor, "CNY")) if refund_minor is not None else None,
                },
            )
            return PaymentResult(
                success=patched,
                payment_id=order_id,
                status=PaymentStatus.SUCCEEDED,
                message="Reembolso registrado" if patched else "billing record not found",
                transaction_id=resource.get("refund_id"),
            )

        return PaymentResult(
            success=True,
            payment_id=order_id,
            status=PaymentStatus.PROCESSING,
            message=f"Evento {event.type} sin acción",
        )

    async def aclose(self) -> None:
        await self.gateway.aclose()


__all__ = [
    "WechatPayProvider",
    "WECHAT_STATUS_MAP",
    "map_wechat_status",
    "determine_trade_type",
]
# Fin del archivo aiproxy_payments/modules/payments/providers/wechat_pay_provider.py
