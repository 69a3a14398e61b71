# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/routes/dependencies.py

Dependencias FastAPI del módulo Payments.

El PaymentManager vive en app.state.payment_manager (creado en el lifespan);
los tests pueden sustituirlo con app.dependency_overrides.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request, status

from aiproxy_payments.modules.payments.exceptions import (
    ConfigurationError,
    InvalidPaymentRequest,
    NoProviderAvailable,
    PaymentError,
    PaymentRecordNotFound,
    UnsupportedOperation,
    UpstreamError,
    UpstreamTimeout,
)
from aiproxy_payments.modules.payments.services.payment_manager import PaymentManager


def get_optional_payment_manager(request: Request) -> Optional[PaymentManager]:
    return getattr(request.app.state, "payment_manager", None)


def get_payment_manager(request: Request) -> PaymentManager:
    manager = get_optional_payment_manager(request)
    if manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sistema de pagos no inicializado",
        )
    return manager


def to_http_exception(error: PaymentError) -> HTTPException:
    """Traduce la taxonomía de errores de pago a códigos HTTP."""
    if isinstance(error, InvalidPaymentRequest):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, PaymentRecordNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, UnsupportedOperation):
        code = status.HTTP_501_NOT_IMPLEMENTED
    elif isinstance(error, (NoProviderAvailable, ConfigurationError)):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(error, UpstreamTimeout):
        code = status.HTTP_504_GATEWAY_TIMEOUT
    elif isinstance(error, UpstreamError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=error.to_dict())


__all__ = ["get_payment_manager", "get_optional_payment_manager", "to_http_exception"]

# Fin del archivo aiproxy_payments/modules/payments/routes/dependencies.py
