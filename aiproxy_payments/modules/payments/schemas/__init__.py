# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/schemas/__init__.py

Superficie de exportación de esquemas del módulo Payments.
"""

from .payment_schemas import (
    PRESENTATION_FIELDS,
    BillingRecordSnapshot,
    CreatePaymentParams,
    PaymentIntent,
    PaymentResult,
    WebhookEvent,
)
from .payment_request_schemas import (
    ConfirmPaymentRequest,
    CreatePaymentRequest,
    PaymentStatusOut,
    RefundPaymentRequest,
)
from .provider_config_schemas import (
    AlipayConfig,
    EpayConfig,
    PaymentMethodOut,
    PaymentSystemStatus,
    ProviderConfig,
    StripeConfig,
    WechatPayConfig,
)

__all__ = [
    "PRESENTATION_FIELDS",
    "BillingRecordSnapshot",
    "CreatePaymentParams",
    "PaymentIntent",
    "PaymentResult",
    "WebhookEvent",
    "ConfirmPaymentRequest",
    "CreatePaymentRequest",
    "PaymentStatusOut",
    "RefundPaymentRequest",
    "AlipayConfig",
    "EpayConfig",
    "PaymentMethodOut",
    "PaymentSystemStatus",
    "ProviderConfig",
    "StripeConfig",
    "WechatPayConfig",
]
