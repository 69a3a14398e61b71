# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/enums/__init__.py

Superficie de exportación de enums del módulo Payments.
"""

from .currency_enum import Currency, DEFAULT_MINOR_UNIT_FACTOR, MINOR_UNIT_FACTORS
from .payment_provider_enum import PaymentProvider
from .payment_status_enum import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, PaymentStatus

__all__ = [
    "Currency",
    "DEFAULT_MINOR_UNIT_FACTOR",
    "MINOR_UNIT_FACTORS",
    "PaymentProvider",
    "PaymentStatus",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
]

# Fin del archivo aiproxy_payments/modules/payments/enums/__init__.py
