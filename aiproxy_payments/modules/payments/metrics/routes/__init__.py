# -*- coding: utf-8 -*-
"""Rutas de métricas de pagos."""

from .routes_prometheus import router_prometheus

__all__ = ["router_prometheus"]
