# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/routes/__init__.py

Ensamblador de rutas del módulo Payments.

Incluye:
- /payments/*
- /webhooks/*
- /metrics

Autor: Equipo AIProxy
Fecha: 2026-09-12
"""

from fastapi import APIRouter

from .payments import router as payments_router
from .webhooks import router as webhooks_router
from aiproxy_payments.modules.payments.metrics.routes import router_prometheus

router = APIRouter()

router.include_router(payments_router)
router.include_router(webhooks_router)
router.include_router(router_prometheus)

__all__ = ["router"]

# Fin del archivo aiproxy_payments/modules/payments/routes/__init__.py
