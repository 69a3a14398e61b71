# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/enums/payment_provider_enum.py

Enum de proveedores de pago soportados y sus nombres visibles.

Autor: Equipo AIProxy
Fecha: 2026-09-03
"""

from enum import StrEnum


class PaymentProvider(StrEnum):
    """Proveedor de pago externo."""

    STRIPE = "stripe"
    EPAY = "epay"
    ALIPAY = "alipay"
    WECHAT_PAY = "wechat_pay"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    PaymentProvider.STRIPE: "Stripe",
    PaymentProvider.EPAY: "易支付",
    PaymentProvider.ALIPAY: "支付宝",
    PaymentProvider.WECHAT_PAY: "微信支付",
}


__all__ = ["PaymentProvider"]

# Fin del archivo aiproxy_payments/modules/payments/enums/payment_provider_enum.py
