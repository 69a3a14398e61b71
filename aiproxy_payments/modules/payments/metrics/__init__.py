# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/metrics/__init__.py

Métricas Prometheus de pagos (creación y webhooks).

Autor: Equipo AIProxy
Fecha: 2026-09-11
"""

from .exporters.prometheus_exporter import (
    observe_payment_created,
    observe_webhook_processed,
    observe_webhook_received,
    observe_webhook_rejected,
    registry,
    render_prometheus_metrics,
)

__all__ = [
    "registry",
    "render_prometheus_metrics",
    "observe_payment_created",
    "observe_webhook_received",
    "observe_webhook_rejected",
    "observe_webhook_processed",
]
