# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/routes/webhooks.py

Endpoints de notificación de pasarelas:
- POST /webhooks/{provider}   (stripe, epay, alipay, wechat_pay)
- GET  /webhooks/epay         (el agregador también notifica por GET)

Respuestas: acuse literal de la pasarela si el evento fue aceptado;
400 sin cuerpo si la firma no valida.

Autor: Equipo AIProxy
Fecha: 2026-09-12
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from aiproxy_payments.modules.payments.facades.webhooks import process_webhook
from aiproxy_payments.modules.payments.enums import PaymentProvider
from aiproxy_payments.modules.payments.routes.dependencies import get_payment_manager
from aiproxy_payments.modules.payments.services.payment_manager import PaymentManager

router = APIRouter(prefix="/webhooks", tags=["payments:webhooks"])


@router.get("/epay", include_in_schema=False)
async def epay_webhook_get(
    request: Request,
    manager: PaymentManager = Depends(get_payment_manager),
) -> Response:
    return await process_webhook(manager, PaymentProvider.EPAY, request)


@router.post("/{provider}")
async def provider_webhook(
    provider: str,
    request: Request,
    manager: PaymentManager = Depends(get_payment_manager),
) -> Response:
    """Lee el body crudo: la firma se calcula sobre los bytes tal cual llegaron."""
    return await process_webhook(manager, provider, request)


# Fin del archivo aiproxy_payments/modules/payments/routes/webhooks.py
