# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/metrics/exporters/prometheus_exporter.py

Exporter Prometheus del subsistema de pagos.
Usa un CollectorRegistry propio para no mezclar con métricas del proceso.

Autor: Equipo AIProxy
Fecha: 2026-09-11
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------
# Registro de Prometheus
# --------------------------------------------------------------------------
registry = CollectorRegistry()

# --------------------------------------------------------------------------
# Definición de métricas
# --------------------------------------------------------------------------

PAYMENTS_CREATED_TOTAL = Counter(
    "payments_created_total",
    "Pagos creados por proveedor y estado inicial",
    ["provider", "status"],
    registry=registry,
)

WEBHOOKS_RECEIVED_TOTAL = Counter(
    "payments_webhooks_received_total",
    "Total webhooks recibidos por proveedor",
    ["provider"],
    registry=registry,
)

WEBHOOKS_REJECTED_TOTAL = Counter(
    "payments_webhooks_rejected_total",
    "Total webhooks rechazados por proveedor y razón",
    ["provider", "reason"],  # reason: invalid_signature/unknown_provider/processing_error
    registry=registry,
)

WEBHOOKS_PROCESSING_SECONDS = Histogram(
    "payments_webhook_processing_seconds",
    "Tiempo de procesamiento de webhooks (segundos)",
    ["provider"],
    registry=registry,
)


# --------------------------------------------------------------------------
# Funciones auxiliares
# --------------------------------------------------------------------------
def render_prometheus_metrics() -> bytes:
    """Genera la salida actual de las métricas en formato Prometheus."""
    return generate_latest(registry)


def observe_payment_created(provider: str, status: str):
    PAYMENTS_CREATED_TOTAL.labels(provider=provider, status=status).inc()
    logger.debug(f"[Prometheus] Pago creado {provider} status={status}")


def observe_webhook_received(provider: str):
    """Registra recepción de un webhook."""
    WEBHOOKS_RECEIVED_TOTAL.labels(provider=provider).inc()


def observe_webhook_rejected(provider: str, reason: str):
    """
    Registra webhook rechazado.

    Args:
        provider: stripe/epay/alipay/wechat_pay
        reason: invalid_signature/unknown_provider/processing_error
    """
    WEBHOOKS_REJECTED_TOTAL.labels(provider=provider, reason=reason).inc()
    logger.debug(f"[Prometheus] Webhook {provider} rejected reason={reason}")


def observe_webhook_processed(provider: str, duration: float):
    WEBHOOKS_PROCESSING_SECONDS.labels(provider=provider).observe(duration)
    logger.debug(f"[Prometheus] Webhook {provider} duration={duration:.4f}s")


# --------------------------------------------------------------------------
# Health-check de Prometheus
# --------------------------------------------------------------------------
def prometheus_ping() -> dict:
    """Devuelve un simple dict para verificar salud del exporter."""
    return {
        "status": "ok",
        "service": "payments-metrics",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

# Fin del archivo aiproxy_payments/modules/payments/metrics/exporters/prometheus_exporter.py
