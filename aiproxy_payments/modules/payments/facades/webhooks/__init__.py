# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/facades/webhooks/__init__.py

Transporte HTTP de webhooks de pasarelas.
"""

from .handler import ack_response, extract_signature, process_webhook

__all__ = ["ack_response", "extract_signature", "process_webhook"]
