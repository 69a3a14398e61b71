# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/services/payment_manager.py

PaymentManager: registro explícito nombre → proveedor con un proveedor por
defecto. Se construye una vez al arrancar (lifespan) y se pasa por referencia
a la capa HTTP; los tests construyen registros aislados con proveedores falsos.

Reglas:
- El default se autoselecciona como el primer proveedor habilitado registrado,
  salvo set_default_provider explícito.
- create_payment: proveedor explícito primero, si no el default; si ninguno
  existe o el nombrado está deshabilitado -> NoProviderAvailable.
- El registro de cobro (BillingRecord) se persiste aquí tras crear el intent.
- handle_webhook: validate_webhook -> None => InvalidSignature; si no, se
  delega en handle_webhook del proveedor.

Autor: Equipo AIProxy
Fecha: 2026-09-11
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Union

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.exceptions import (
    InvalidSignature,
    NoProviderAvailable,
    UnsupportedOperation,
)
from aiproxy_payments.modules.payments.metrics import observe_payment_created
from aiproxy_payments.modules.payments.providers.base import PaymentProviderProtocol
from aiproxy_payments.modules.payments.repositories.billing_record_store import BillingRecordStore
from aiproxy_payments.modules.payments.schemas import (
    BillingRecordSnapshot,
    CreatePaymentParams,
    PaymentIntent,
    PaymentMethodOut,
    PaymentResult,
)
from aiproxy_payments.modules.payments.utils.amounts import ensure_positive

logger = logging.getLogger(__name__)

ProviderName = Union[PaymentProvider, str]


def _coerce_name(name: ProviderName) -> Optional[PaymentProvider]:
    if isinstance(name, PaymentProvider):
        return name
    try:
        return PaymentProvider(str(name).strip().lower())
    except ValueError:
        return None


class PaymentManager:
    """Registro de proveedores y punto de entrada de operaciones de pago."""

    def __init__(self, store: BillingRecordStore) -> None:
        self.store = store
        self._providers: Dict[PaymentProvider, PaymentProviderProtocol] = {}
        self._default: Optional[PaymentProvider] = None

    # ------------------------------------------------------------------
    # Registro
    # ------------------------------------------------------------------
    def register_provider(self, provider: PaymentProviderProtocol) -> None:
        name = PaymentProvider(provider.name)
        if name in self._providers:
            logger.warning(f"[payments] Proveedor {name} ya registrado; se reemplaza")
        self._providers[name] = provider
        if self._default is None and provider.is_enabled():
            self._default = name
            logger.info(f"[payments] Proveedor por defecto: {name}")
        logger.info(f"[payments] Proveedor registrado: {name} (enabled={provider.is_enabled()})")

    def set_default_provider(self, name: ProviderName) -> None:
        provider = self.get_provider(name)
        if provider is None or not provider.is_enabled():
            raise NoProviderAvailable(f"No se puede usar {name} como default: no disponible")
        self._default = PaymentProvider(provider.name)
        logger.info(f"[payments] Proveedor por defecto: {self._default}")

    @property
    def default_provider_name(self) -> Optional[PaymentProvider]:
        provider = self.get_default_provider()
        return PaymentProvider(provider.name) if provider else None

    def get_provider(self, name: ProviderName) -> Optional[PaymentProviderProtocol]:
        key = _coerce_name(name)
        return self._providers.get(key) if key else None

    def get_default_provider(self) -> Optional[PaymentProviderProtocol]:
        if self._default is None:
            return None
        provider = self._providers.get(self._default)
        return provider if provider is not None and provider.is_enabled() else None

    def get_enabled_providers(self) -> List[PaymentProviderProtocol]:
        return [p for p in self._providers.values() if p.is_enabled()]

    def get_providers_by_currency(self, currency: str) -> List[PaymentProviderProtocol]:
        code = currency.upper()
        return [
            p
            for p in self.get_enabled_providers()
            if p.supported_currencies is None or code in p.supported_currencies
        ]

    def has_available_providers(self) -> bool:
        return any(p.is_enabled() for p in self._providers.values())

    def get_available_payment_methods(self) -> List[PaymentMethodOut]:
        """Superficie pública: solo {provider, name, enabled, test_mode}."""
        return [p.public_config() for p in self.get_enabled_providers()]

    def _resolve(self, provider_name: Optional[ProviderName]) -> PaymentProviderProtocol:
        if provider_name:
            provider = self.get_provider(provider_name)
            if provider is None or not provider.is_enabled():
                raise NoProviderAvailable(f"Proveedor {provider_name} no disponible")
            return provider
        provider = self.get_default_provider()
        if provider is None:
            raise NoProviderAvailable("No hay proveedores de pago disponibles")
        return provider

    def _registered(self, provider_name: ProviderName) -> PaymentProviderProtocol:
        provider = self.get_provider(provider_name)
        if provider is None:
            raise NoProviderAvailable(f"Proveedor {provider_name} no registrado")
        return provider

    # ------------------------------------------------------------------
    # Operaciones
    # ------------------------------------------------------------------
    async def create_payment(
        self,
        params: CreatePaymentParams,
        provider_name: Optional[ProviderName] = None,
    ) -> PaymentIntent:
        ensure_positive(params.amount)
        provider = self._resolve(provider_name)

        intent = await provider.create_payment(params)
        await self.store.create_from_intent(intent, description=params.description)
        observe_payment_created(str(provider.name), str(intent.status))

        logger.info(
            f"[payments] Pago {intent.id} creado con {provider.name} "
            f"({intent.amount} {intent.currency}, usuario {params.user_id})"
        )
        return intent

    async def handle_webhook(
        self,
        provider_name: ProviderName,
        payload: bytes,
        signature: Optional[str],
    ) -> PaymentResult:
        provider = self._registered(provider_name)
        event = provider.validate_webhook(payload, signature)
        if event is None:
            raise InvalidSignature("Webhook rechazado", provider=str(provider.name))

        result = await provider.handle_webhook(event)
        logger.info(
            f"[payments] Webhook {provider.name} {event.type} -> "
            f"{result.payment_id} {result.status} (success={result.success})"
        )
        return result

    async def get_payment_status(self, provider_name: ProviderName, payment_id: str) -> PaymentStatus:
        return await self._registered(provider_name).get_payment_status(payment_id)

    async def get_payment_record(
        self, provider_name: ProviderName, payment_id: str
    ) -> Optional[BillingRecordSnapshot]:
        provider = self._registered(provider_name)
        return await self.store.get(payment_id, PaymentProvider(provider.name))

    async def confirm_payment(
        self,
        provider_name: ProviderName,
        payment_id: str,
        payment_method: Optional[str] = None,
    ) -> PaymentResult:
        provider = self._registered(provider_name)
        confirm = getattr(provider, "confirm_payment", None)
        if confirm is None:
            raise UnsupportedOperation("confirm_payment no soportado", provider=str(provider.name))
        return await confirm(payment_id, payment_method)

    async def cancel_payment(self, provider_name: ProviderName, payment_id: str) -> PaymentResult:
        provider = self._registered(provider_name)
        cancel = getattr(provider, "cancel_payment", None)
        if cancel is None:
            raise UnsupportedOperation("cancel_payment no soportado", provider=str(provider.name))
        return await cancel(payment_id)

    async def refund_payment(
        self,
        provider_name: ProviderName,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> PaymentResult:
        provider = self._registered(provider_name)
        refund = getattr(provider, "refund_payment", None)
        if refund is None:
            raise UnsupportedOperation("refund_payment no soportado", provider=str(provider.name))
        if amount is not None:
            amount = ensure_positive(amount)
        return await refund(payment_id, amount, reason)

    async def aclose(self) -> None:
        for name, provider in self._providers.items():
            try:
                await provider.aclose()
            except Exception:
                logger.exception(f"[payments] Error cerrando proveedor {name}")
        self._providers.clear()
        self._default = None


__all__ = ["PaymentManager"]
# Fin del archivo aiproxy_payments/modules/payments/services/payment_manager.py
