# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/routes/payments.py

Rutas de pagos.

Endpoints:
- GET  /payments/methods
- GET  /payments/status
- POST /payments
- GET  /payments/{provider}/{payment_id}
- POST /payments/{provider}/{payment_id}/confirm
- POST /payments/{provider}/{payment_id}/cancel
- POST /payments/{provider}/{payment_id}/refund

Autor: Equipo AIProxy
Fecha: 2026-09-12
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from aiproxy_payments.modules.payments.exceptions import PaymentError
from aiproxy_payments.modules.payments.facades.initialization import get_payment_system_status
from aiproxy_payments.modules.payments.enums import PaymentProvider
from aiproxy_payments.modules.payments.routes.dependencies import (
    get_optional_payment_manager,
    get_payment_manager,
    to_http_exception,
)
from aiproxy_payments.modules.payments.schemas import (
    ConfirmPaymentRequest,
    CreatePaymentRequest,
    PaymentIntent,
    PaymentMethodOut,
    PaymentResult,
    PaymentStatusOut,
    PaymentSystemStatus,
    RefundPaymentRequest,
)
from aiproxy_payments.modules.payments.services.payment_manager import PaymentManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def _require_provider(manager: PaymentManager, provider: str) -> PaymentProvider:
    registered = manager.get_provider(provider)
    if registered is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Proveedor {provider} no registrado",
        )
    return PaymentProvider(registered.name)


@router.get("/methods", response_model=List[PaymentMethodOut])
async def list_payment_methods(manager: PaymentManager = Depends(get_payment_manager)):
    """Métodos disponibles para el cliente (sin secretos)."""
    return manager.get_available_payment_methods()


@router.get("/status", response_model=PaymentSystemStatus)
async def payment_system_status(
    manager: Optional[PaymentManager] = Depends(get_optional_payment_manager),
):
    return get_payment_system_status(manager)


@router.post("", response_model=PaymentIntent, status_code=status.HTTP_201_CREATED)
async def create_payment(
    body: CreatePaymentRequest,
    manager: PaymentManager = Depends(get_payment_manager),
):
    try:
        return await manager.create_payment(body.to_params(), body.provider)
    except PaymentError as e:
        logger.warning(f"[payments] Creación rechazada ({e.code}): {e.message}")
        raise to_http_exception(e)


@router.get("/{provider}/{payment_id}", response_model=PaymentStatusOut)
async def get_payment_status(
    provider: str,
    payment_id: str,
    manager: PaymentManager = Depends(get_payment_manager),
):
    name = _require_provider(manager, provider)
    try:
        current = await manager.get_payment_status(name, payment_id)
    except PaymentError as e:
        raise to_http_exception(e)
    return PaymentStatusOut(
        provider=name,
        payment_id=payment_id,
        status=current,
        is_final=current.is_terminal,
    )


@router.post("/{provider}/{payment_id}/confirm", response_model=PaymentResult)
async def confirm_payment(
    provider: str,
    payment_id: str,
    body: Optional[ConfirmPaymentRequest] = None,
    manager: PaymentManager = Depends(get_payment_manager),
):
    name = _require_provider(manager, provider)
    try:
        return await manager.confirm_payment(
            name, payment_id, body.payment_method if body else None
        )
    except PaymentError as e:
        raise to_http_exception(e)


@router.post("/{provider}/{payment_id}/cancel", response_model=PaymentResult)
async def cancel_payment(
    provider: str,
    payment_id: str,
    manager: PaymentManager = Depends(get_payment_manager),
):
    name = _require_provider(manager, provider)
    try:
        return await manager.cancel_payment(name, payment_id)
    except PaymentError as e:
        raise to_http_exception(e)


@router.post("/{provider}/{payment_id}/refund", response_model=PaymentResult)
async def refund_payment(
    provider: str,
    payment_id: str,
    body: Optional[RefundPaymentRequest] = None,
    manager: PaymentManager = Depends(get_payment_manager),
):
    name = _require_provider(manager, provider)
    body = body or RefundPaymentRequest()
    try:
        return await manager.refund_payment(name, payment_id, body.amount, body.reason)
    except PaymentError as e:
        raise to_http_exception(e)


# Fin del archivo aiproxy_payments/modules/payments/routes/payments.py
