# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/facades/webhooks/constants.py

Constantes de transporte de webhooks: acuses literales y headers de firma.
"""

from aiproxy_payments.modules.payments.enums import PaymentProvider

# Acuse que cada pasarela espera; cualquier otra respuesta provoca reintentos
STRIPE_ACK = "OK"
EPAY_ACK = "success"
ALIPAY_ACK = "success"
WECHAT_PAY_ACK = {"code": "SUCCESS", "message": "成功"}

PLAIN_TEXT_ACKS = {
    PaymentProvider.STRIPE: STRIPE_ACK,
    PaymentProvider.EPAY: EPAY_ACK,
    PaymentProvider.ALIPAY: ALIPAY_ACK,
}

# Headers
STRIPE_SIGNATURE_HEADER = "stripe-signature"
WECHATPAY_TIMESTAMP_HEADER = "wechatpay-timestamp"
WECHATPAY_NONCE_HEADER = "wechatpay-nonce"
WECHATPAY_SIGNATURE_HEADER = "wechatpay-signature"
WECHATPAY_SERIAL_HEADER = "wechatpay-serial"

# Campo de firma en query/form del agregador
EPAY_SIGN_FIELD = "sign"

# Razones para payments_webhooks_rejected_total
REJECT_UNKNOWN_PROVIDER = "unknown_provider"
REJECT_INVALID_SIGNATURE = "invalid_signature"
REJECT_PROCESSING_ERROR = "processing_error"

__all__ = [
    "STRIPE_ACK", "EPAY_ACK", "ALIPAY_ACK", "WECHAT_PAY_ACK", "PLAIN_TEXT_ACKS",
    "STRIPE_SIGNATURE_HEADER",
    "WECHATPAY_TIMESTAMP_HEADER", "WECHATPAY_NONCE_HEADER",
    "WECHATPAY_SIGNATURE_HEADER", "WECHATPAY_SERIAL_HEADER",
    "EPAY_SIGN_FIELD",
    "REJECT_UNKNOWN_PROVIDER", "REJECT_INVALID_SIGNATURE", "REJECT_PROCESSING_ERROR",
]

# Fin del archivo aiproxy_payments/modules/payments/facades/webhooks/constants.py
