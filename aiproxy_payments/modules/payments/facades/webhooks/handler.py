# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/facades/webhooks/handler.py

Función de alto nivel para verificar y manejar webhooks desde rutas HTTP.

1. Lee el body (o la query string en el GET del agregador)
2. Extrae la firma fuera de banda según proveedor
3. Llama PaymentManager.handle_webhook
4. Responde el acuse literal de la pasarela, o 4xx sin detalles

Autor: Equipo AIProxy
Fecha: 2026-09-11
"""

from __future__ import annotations

import logging
import time
from typing import Mapping, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from aiproxy_payments.modules.payments.enums import PaymentProvider
from aiproxy_payments.modules.payments.exceptions import InvalidSignature, PaymentError
from aiproxy_payments.modules.payments.facades.webhooks.constants import (
    EPAY_SIGN_FIELD,
    PLAIN_TEXT_ACKS,
    REJECT_INVALID_SIGNATURE,
    REJECT_PROCESSING_ERROR,
    REJECT_UNKNOWN_PROVIDER,
    STRIPE_SIGNATURE_HEADER,
    WECHAT_PAY_ACK,
    WECHATPAY_NONCE_HEADER,
    WECHATPAY_SERIAL_HEADER,
    WECHATPAY_SIGNATURE_HEADER,
    WECHATPAY_TIMESTAMP_HEADER,
)
from aiproxy_payments.modules.payments.metrics import (
    observe_webhook_processed,
    observe_webhook_received,
    observe_webhook_rejected,
)
from aiproxy_payments.modules.payments.services.payment_manager import PaymentManager
from aiproxy_payments.modules.payments.services.webhooks.signature_verification import (
    build_wechat_signature_header,
)

logger = logging.getLogger(__name__)


def extract_signature(
    provider: PaymentProvider,
    headers: Mapping[str, str],
    query: Mapping[str, str],
) -> Optional[str]:
    """
    Firma fuera de banda por proveedor:
    - stripe: header Stripe-Signature
    - wechat_pay: headers Wechatpay-* compuestos en "t=..,n=..,s=..[,serial=..]"
    - epay: parámetro `sign` de la query (GET); en POST viaja en el form
    - alipay: siempre dentro del form (None)
    """
    if provider == PaymentProvider.STRIPE:
        return headers.get(STRIPE_SIGNATURE_HEADER)
    if provider == PaymentProvider.WECHAT_PAY:
        timestamp = headers.get(WECHATPAY_TIMESTAMP_HEADER)
        nonce = headers.get(WECHATPAY_NONCE_HEADER)
        signature = headers.get(WECHATPAY_SIGNATURE_HEADER)
        if not (timestamp and nonce and signature):
            return None
        return build_wechat_signature_header(
            timestamp, nonce, signature, headers.get(WECHATPAY_SERIAL_HEADER)
        )
    if provider == PaymentProvider.EPAY:
        return query.get(EPAY_SIGN_FIELD)
    return None


def ack_response(provider: PaymentProvider) -> Response:
    if provider == PaymentProvider.WECHAT_PAY:
        return JSONResponse(WECHAT_PAY_ACK)
    return PlainTextResponse(PLAIN_TEXT_ACKS[provider])


async def process_webhook(
    manager: PaymentManager,
    provider_name: str,
    request: Request,
) -> Response:
    provider = manager.get_provider(provider_name)
    if provider is None:
        observe_webhook_rejected(provider_name, REJECT_UNKNOWN_PROVIDER)
        logger.warning(f"[webhooks] Proveedor desconocido o no registrado: {provider_name}")
        return Response(status_code=404)

    name = PaymentProvider(provider.name)
    if request.method == "GET":
        payload = request.url.query.encode("utf-8")
    else:
        payload = await request.body()
    signature = extract_signature(name, request.headers, request.query_params)

    observe_webhook_received(name)
    started = time.perf_counter()
    try:
        result = await manager.handle_webhook(name, payload, signature)
    except InvalidSignature:
        observe_webhook_rejected(name, REJECT_INVALID_SIGNATURE)
        logger.warning(f"[webhooks] {name}: firma inválida, webhook rechazado")
        return Response(status_code=400)
    except PaymentError as e:
        observe_webhook_rejected(name, REJECT_PROCESSING_ERROR)
        logger.error(f"[webhooks] {name}: error procesando webhook: {e.code} {e.message}")
        return Response(status_code=500)
    finally:
        observe_webhook_processed(name, time.perf_counter() - started)

    if not result.success:
        # Evento auténtico sin efecto (p. ej. transición rechazada); se acusa para cortar reintentos
        logger.info(f"[webhooks] {name}: {result.payment_id} sin cambios ({result.message})")
    return ack_response(name)


__all__ = ["extract_signature", "ack_response", "process_webhook"]

# Fin del archivo aiproxy_payments/modules/payments/facades/webhooks/handler.py
