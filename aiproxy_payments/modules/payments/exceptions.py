# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/exceptions.py

Excepciones semánticas del módulo Payments.

Jerarquía:
    PaymentError
    ├── ConfigurationError          proveedor deshabilitado o incompleto
    ├── InvalidPaymentRequest       parámetros de creación inválidos
    │   ├── InvalidAmount           monto <= 0 o no representable
    │   └── UnsupportedCurrency     moneda no aceptada por el proveedor
    ├── NoProviderAvailable         sin proveedor resoluble/habilitado
    ├── InvalidSignature            webhook rechazado; no se toca estado
    │   └── DecryptionError         fallo AEAD o RSA sobre datos entrantes
    ├── UpstreamError               fallo de la pasarela remota
    │   ├── UpstreamTimeout         espera acotada excedida (reintentable)
    │   ├── UpstreamUnavailable     error de red/transporte (reintentable)
    │   └── UpstreamRejected        rechazo de negocio (no se reintenta)
    ├── UnsupportedOperation        confirm/cancel/refund no implementado
    └── PaymentRecordNotFound       no existe el registro local

Autor: Equipo AIProxy
Fecha: 2026-09-03
"""

from __future__ import annotations

from typing import Optional


class PaymentError(Exception):
    """Base de todos los errores del subsistema de pagos."""

    code: str = "payment_error"

    def __init__(self, message: str = "", *, provider: Optional[str] = None) -> None:
        self.provider = provider
        self.message = message or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serializa el error para respuestas JSON (sin detalles internos)."""
        return {"error": self.code, "provider": self.provider, "message": self.message}


class ConfigurationError(PaymentError):
    code = "configuration_error"


class InvalidPaymentRequest(PaymentError, ValueError):
    code = "invalid_request"


class InvalidAmount(InvalidPaymentRequest):
    code = "invalid_amount"


class UnsupportedCurrency(InvalidPaymentRequest):
    code = "unsupported_currency"


class NoProviderAvailable(PaymentError):
    code = "no_provider_available"


class InvalidSignature(PaymentError):
    code = "invalid_signature"


class DecryptionError(InvalidSignature):
    code = "decryption_error"


class UpstreamError(PaymentError):
    """
    Error de la pasarela remota.

    Attributes:
        retryable: True si es seguro reintentar la operación externa
        status_code: código HTTP si hubo respuesta
        upstream_code: código de negocio devuelto por la pasarela
    """

    code = "upstream_error"
    retryable: bool = False

    def __init__(
        self,
        message: str = "",
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        upstream_code: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.upstream_code = upstream_code
        super().__init__(message, provider=provider)


class UpstreamTimeout(UpstreamError):
    code = "upstream_timeout"
    retryable = True


class UpstreamUnavailable(UpstreamError):
    code = "upstream_unavailable"
    retryable = True


class UpstreamRejected(UpstreamError):
    code = "upstream_rejected"


class UnsupportedOperation(PaymentError):
    code = "unsupported_operation"


class PaymentRecordNotFound(PaymentError):
    code = "payment_record_not_found"


__all__ = [
    "PaymentError",
    "ConfigurationError",
    "InvalidPaymentRequest",
    "InvalidAmount",
    "UnsupportedCurrency",
    "NoProviderAvailable",
    "InvalidSignature",
    "DecryptionError",
    "UpstreamError",
    "UpstreamTimeout",
    "UpstreamUnavailable",
    "UpstreamRejected",
    "UnsupportedOperation",
    "PaymentRecordNotFound",
]

# Fin del archivo aiproxy_payments/modules/payments/exceptions.py
