# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/facades/__init__.py

Fachadas del módulo Payments: arranque del sistema y transporte de webhooks.
"""

from .initialization import (
    get_payment_system_status,
    initialize_payment_system,
    reinitialize_payment_system,
)

__all__ = [
    "initialize_payment_system",
    "reinitialize_payment_system",
    "get_payment_system_status",
]
