# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/metrics/routes/routes_prometheus.py

Rutas Prometheus del subsistema de pagos:
- /metrics            → Export en formato Prometheus
- /metrics/ping       → Health simple del exporter

Autor: Equipo AIProxy
Fecha: 2026-09-11
"""

from __future__ import annotations

from typing import Dict, Any

from fastapi import APIRouter
from starlette.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..exporters.prometheus_exporter import (
    render_prometheus_metrics,
    prometheus_ping,
)

router_prometheus = APIRouter(tags=["payments-metrics"])


@router_prometheus.get("/metrics")
async def prometheus_metrics() -> Response:
    """Devuelve las métricas en formato Prometheus para scraping."""
    return Response(render_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)


@router_prometheus.get("/metrics/ping")
async def ping() -> Dict[str, Any]:
    return prometheus_ping()

# Fin del archivo aiproxy_payments/modules/payments/metrics/routes/routes_prometheus.py
