# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/providers/__init__.py

Proveedores de pago registrables en PaymentManager.

Autor: Equipo AIProxy
Fecha: 2026-09-10
"""

from .base import PaymentProviderProtocol
from .stripe_provider import StripeProvider
from .epay_provider import EpayProvider
from .alipay_provider import AlipayProvider
from .wechat_pay_provider import WechatPayProvider

__all__ = [
    "PaymentProviderProtocol",
    "StripeProvider",
    "EpayProvider",
    "AlipayProvider",
    "WechatPayProvider",
]
