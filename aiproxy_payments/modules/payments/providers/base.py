# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/providers/base.py

Contrato de proveedor (typing.Protocol) y helpers compartidos como funciones
libres. Los cuatro proveedores son clases independientes que satisfacen el
Protocol; no hay clase base con métodos protegidos.

Contrato:
- is_enabled(): habilitado en config Y config completa
- create_payment(params) -> PaymentIntent (ConfigurationError / Upstream*)
- get_payment_status(payment_id) -> PaymentStatus (cae al estado persistido)
- confirm/cancel/refund: opcionales, UnsupportedOperation si no aplican
- validate_webhook(payload, signature) -> WebhookEvent | None (nunca lanza)
- handle_webhook(event) -> PaymentResult (idempotente)

Autor: Equipo AIProxy
Fecha: 2026-09-07
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, FrozenSet, Mapping, Optional, Protocol, runtime_checkable

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.exceptions import (
    ConfigurationError,
    PaymentRecordNotFound,
    UnsupportedCurrency,
    UpstreamError,
)
from aiproxy_payments.modules.payments.repositories.billing_record_store import (
    BillingRecordStore,
    TransitionOutcome,
)
from aiproxy_payments.modules.payments.schemas import (
    BillingRecordSnapshot,
    CreatePaymentParams,
    PaymentIntent,
    PaymentMethodOut,
    PaymentResult,
    ProviderConfig,
    WebhookEvent,
)
from aiproxy_payments.modules.payments.utils.datetime_helpers import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@runtime_checkable
class PaymentProviderProtocol(Protocol):
    """Forma que todo proveedor registrado en PaymentManager debe cumplir."""

    name: PaymentProvider
    config: ProviderConfig
    supported_currencies: Optional[FrozenSet[str]]

    def is_enabled(self) -> bool:
        ...

    def public_config(self) -> PaymentMethodOut:
        ...

    async def create_payment(self, params: CreatePaymentParams) -> PaymentIntent:
        ...

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        ...

    async def confirm_payment(
        self, payment_id: str, payment_method: Optional[str] = None
    ) -> PaymentResult:
        ...

    async def cancel_payment(self, payment_id: str) -> PaymentResult:
        ...

    async def refund_payment(
        self,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> PaymentResult:
        ...

    def validate_webhook(self, payload: bytes, signature: Optional[str]) -> Optional[WebhookEvent]:
        ...

    async def handle_webhook(self, event: WebhookEvent) -> PaymentResult:
        ...

    async def aclose(self) -> None:
        ...


# =============================================================================
# HELPERS DE CONFIGURACIÓN
# =============================================================================

def config_is_enabled(config: ProviderConfig) -> bool:
    return bool(config.enabled) and config.is_complete()


def ensure_enabled(name: PaymentProvider, config: ProviderConfig) -> None:
    """Falla rápido si el proveedor está deshabilitado o incompleto."""
    if not config.enabled:
        raise ConfigurationError(f"{name.display_name} no está habilitado", provider=name)
    missing = config.missing_fields()
    if missing:
        raise ConfigurationError(
            f"{name.display_name} con configuración incompleta: faltan {', '.join(missing)}",
            provider=name,
        )


def ensure_currency(
    name: PaymentProvider,
    supported: Optional[FrozenSet[str]],
    currency: str,
) -> None:
    if supported is not None and currency.upper() not in supported:
        raise UnsupportedCurrency(
            f"{name.display_name} no acepta {currency.upper()}", provider=name
        )


def build_public_config(name: PaymentProvider, config: ProviderConfig) -> PaymentMethodOut:
    """Solo nombre/flags: ningún secreto ni identificador de comercio."""
    return PaymentMethodOut(
        provider=name,
        name=name.display_name,
        enabled=config_is_enabled(config),
        test_mode=config.test_mode,
    )


def first_non_empty(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


# =============================================================================
# ESTADO PERSISTIDO
# =============================================================================

def effective_status(
    record: BillingRecordSnapshot,
    reported: Optional[PaymentStatus] = None,
) -> PaymentStatus:
    """
    Estado a reportar: el remoto si se conoce, si no el persistido; un estado
    no terminal consultado después de expires_at se reporta como expired.
    No escribe nada.
    """
    status = reported or record.status
    if (
        not status.is_terminal
        and record.expires_at is not None
        and ensure_utc(record.expires_at) <= utcnow()
    ):
        return PaymentStatus.EXPIRED
    return status


async def persisted_status(
    store: BillingRecordStore,
    name: PaymentProvider,
    payment_id: str,
    reported: Optional[PaymentStatus] = None,
) -> PaymentStatus:
    record = await store.get(payment_id, name)
    if record is None:
        raise PaymentRecordNotFound(f"No existe el pago {payment_id}", provider=name)
    return effective_status(record, reported)


async def status_with_fallback(
    store: BillingRecordStore,
    name: PaymentProvider,
    payment_id: str,
    remote_status: Optional[PaymentStatus],
    remote_error: Optional[UpstreamError],
) -> PaymentStatus:
    """
    Combina la consulta remota con el registro local:
    - remoto OK: se reporta (ajustado por expiración si hay registro)
    - remoto falló: estado persistido; sin registro se relanza el error remoto
    """
    record = await store.get(payment_id, name)
    if remote_error is None and remote_status is not None:
        return effective_status(record, remote_status) if record else remote_status
    if record is None:
        raise remote_error or PaymentRecordNotFound(f"No existe el pago {payment_id}", provider=name)
    logger.warning(
        f"[{name}] Consulta remota fallida para {payment_id} ({remote_error.code}); "
        f"se usa estado persistido {record.status}"
    )
    return effective_status(record)


# =============================================================================
# TRANSICIONES -> PaymentResult
# =============================================================================

async def apply_status_change(
    store: BillingRecordStore,
    name: PaymentProvider,
    payment_id: str,
    new_status: PaymentStatus,
    *,
    transaction_id: Optional[str] = None,
    metadata_patch: Optional[Mapping[str, Any]] = None,
    message: Optional[str] = None,
) -> PaymentResult:
    """
    Aplica una transición vía UPDATE condicional y la traduce a PaymentResult.

    - APPLIED / DUPLICATE -> success=True (un duplicado es no-op)
    - REJECTED            -> success=False, status = estado actual (sin cambios)
    - NOT_FOUND           -> success=False
    """
    result = await store.transition(
        payment_id,
        name,
        new_status,
        transaction_id=transaction_id,
        metadata_patch=metadata_patch,
    )
    extra = {"outcome": result.outcome.value}
    if result.subscription_extended:
        extra["subscription_extended"] = True

    if result.outcome == TransitionOutcome.APPLIED:
        return PaymentResult(
            success=True,
            payment_id=payment_id,
            status=new_status,
            message=message,
            transaction_id=transaction_id,
            metadata=extra,
        )
    if result.outcome == TransitionOutcome.DUPLICATE:
        return PaymentResult(
            success=True,
            payment_id=payment_id,
            status=new_status,
            message="already processed",
            transaction_id=result.record.transaction_id if result.record else None,
            metadata=extra,
        )
    if result.outcome == TransitionOutcome.REJECTED:
        current = result.status or new_status
        return PaymentResult(
            success=False,
            payment_id=payment_id,
            status=current,
            message=f"transition {current} -> {new_status} rejected",
            metadata=extra,
        )
    return PaymentResult(
        success=False,
        payment_id=payment_id,
        status=new_status,
        message="billing record not found",
        metadata=extra,
    )


__all__ = [
    "PaymentProviderProtocol",
    "config_is_enabled",
    "ensure_enabled",
    "ensure_currency",
    "build_public_config",
    "first_non_empty",
    "effective_status",
    "persisted_status",
    "status_with_fallback",
    "apply_status_change",
]
# Fin del archivo aiproxy_payments/modules/payments/providers/base.py
