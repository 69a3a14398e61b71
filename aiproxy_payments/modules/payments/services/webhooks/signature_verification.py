# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/services/webhooks/signature_verification.py

Verificación de firmas de webhooks que no dependen de RSA:
- Stripe: HMAC-SHA256 con el webhook secret (header Stripe-Signature)
- WeChat Pay: parseo del header compuesto t=..,n=..,s=..,serial=..

Fail-closed: sin secret o sin header se rechaza, nunca hay bypass.

Autor: Equipo AIProxy
Fecha: 2026-09-05
"""

from __future__ import annotations

import hmac
import logging
import time
from typing import Dict, List, Optional

from aiproxy_payments.modules.payments.services.signing import hmac_sha256_hex

logger = logging.getLogger(__name__)

STRIPE_TOLERANCE_SECONDS = 300


def _parse_header_items(header: str) -> Dict[str, List[str]]:
    """"a=1,b=2,b=3" -> {"a": ["1"], "b": ["2", "3"]} (valores con "=" se respetan)."""
    elements: Dict[str, List[str]] = {}
    for item in header.split(","):
        item = item.strip()
        if "=" in item:
            key, value = item.split("=", 1)
            elements.setdefault(key.strip(), []).append(value.strip())
    return elements


# =============================================================================
# STRIPE
# =============================================================================

def verify_stripe_signature(
    payload: bytes,
    signature_header: Optional[str],
    webhook_secret: Optional[str],
    tolerance_seconds: int = STRIPE_TOLERANCE_SECONDS,
    now: Optional[int] = None,
) -> bool:
    """
    Verifica la firma de un webhook de Stripe usando HMAC-SHA256.

    Args:
        payload: Body crudo del request
        signature_header: Header Stripe-Signature ("t=...,v1=...,v0=...")
        webhook_secret: Secret del webhook (whsec_...)
        tolerance_seconds: Tolerancia de timestamp (default 5 minutos)
        now: epoch actual (inyectable en tests)

    Returns:
        True si la firma es válida, False en caso contrario
    """
    if not signature_header:
        logger.warning("[stripe] Webhook rechazado: falta header Stripe-Signature")
        return False

    if not webhook_secret:
        logger.error("[stripe] Webhook rechazado: STRIPE_WEBHOOK_SECRET no configurado")
        return False

    elements = _parse_header_items(signature_header)
    timestamp_str = (elements.get("t") or [None])[0]
    signatures_v1 = elements.get("v1", [])

    if not timestamp_str or not signatures_v1:
        logger.warning("[stripe] Webhook rechazado: header sin timestamp o sin firma v1")
        return False

    try:
        timestamp = int(timestamp_str)
    except ValueError:
        logger.warning("[stripe] Webhook rechazado: timestamp no numérico")
        return False

    current = int(time.time()) if now is None else now
    if abs(current - timestamp) > tolerance_seconds:
        logger.warning(
            f"[stripe] Webhook rechazado: timestamp fuera de tolerancia "
            f"({abs(current - timestamp)}s > {tolerance_seconds}s)"
        )
        return False

    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    expected_signature = hmac_sha256_hex(webhook_secret, signed_payload)

    expected = expected_signature.encode("ascii")
    for sig in signatures_v1:
        if hmac.compare_digest(expected, sig.encode("utf-8", "surrogatepass")):
            return True

    logger.warning("[stripe] Webhook rechazado: ninguna firma v1 coincide")
    return False


def build_stripe_signature_header(payload: bytes, webhook_secret: str, timestamp: Optional[int] = None) -> str:
    """Construye un header Stripe-Signature válido (CLI local y tests)."""
    ts = int(time.time()) if timestamp is None else timestamp
    signature = hmac_sha256_hex(webhook_secret, f"{ts}.".encode("utf-8") + payload)
    return f"t={ts},v1={signature}"


# =============================================================================
# WECHAT PAY
# =============================================================================

def parse_wechat_signature_header(signature: Optional[str]) -> Optional[Dict[str, str]]:
    """
    "t=<timestamp>,n=<nonce>,s=<firma base64>[,serial=<serie>]" -> dict.
    Devuelve None si falta timestamp, nonce o firma.
    """
    if not signature:
        return None
    items = {k: v[0] for k, v in _parse_header_items(signature).items() if v}
    if not items.get("t") or not items.get("n") or not items.get("s"):
        return None
    return items


def build_wechat_signature_header(
    timestamp: str,
    nonce: str,
    signature: str,
    serial: Optional[str] = None,
) -> str:
    """Arma la firma compuesta a partir de los headers Wechatpay-*."""
    value = f"t={timestamp},n={nonce},s={signature}"
    if serial:
        value += f",serial={serial}"
    return value


__all__ = [
    "STRIPE_TOLERANCE_SECONDS",
    "verify_stripe_signature",
    "build_stripe_signature_header",
    "parse_wechat_signature_header",
    "build_wechat_signature_header",
]
# Fin del archivo aiproxy_payments/modules/payments/services/webhooks/signature_verification.py
