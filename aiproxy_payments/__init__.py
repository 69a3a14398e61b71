# -*- coding: utf-8 -*-
"""
aiproxy_payments

Subsistema de pagos multi-proveedor (Stripe, Epay, Alipay, WeChat Pay)
para la reventa de acceso a APIs de IA.
"""

__version__ = "0.3.0"

# Fin del archivo aiproxy_payments/__init__.py
