# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/config/__init__.py

Punto único de acceso a la configuración:
    from aiproxy_payments.shared.config import get_app_settings, get_payments_settings
"""

from .settings_base import AppSettings, get_app_settings
from .settings_payments import PaymentsSettings, get_payments_settings, reset_payments_settings

__all__ = [
    "AppSettings",
    "get_app_settings",
    "PaymentsSettings",
    "get_payments_settings",
    "reset_payments_settings",
]

# Fin del archivo aiproxy_payments/shared/config/__init__.py
