# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/facades/initialization.py

Arranque del sistema de pagos:

1. Traduce PaymentsSettings (SecretStr) a configs inmutables por proveedor
2. Construye los proveedores con config.enabled=True y los registra
3. Aplica PAYMENTS_DEFAULT_PROVIDER si está disponible

Reconfigurar = cerrar el manager y construir uno nuevo
(reinitialize_payment_system); las configs nunca se mutan.

Autor: Equipo AIProxy
Fecha: 2026-09-11
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Optional

import httpx
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aiproxy_payments.modules.payments.enums import PaymentProvider
from aiproxy_payments.modules.payments.exceptions import NoProviderAvailable
from aiproxy_payments.modules.payments.providers import (
    AlipayProvider,
    EpayProvider,
    PaymentProviderProtocol,
    StripeProvider,
    WechatPayProvider,
)
from aiproxy_payments.modules.payments.repositories import SqlAlchemyBillingRecordStore
from aiproxy_payments.modules.payments.schemas import (
    AlipayConfig,
    EpayConfig,
    PaymentSystemStatus,
    StripeConfig,
    WechatPayConfig,
)
from aiproxy_payments.modules.payments.services.gateway_client import GatewayClient
from aiproxy_payments.modules.payments.services.payment_manager import PaymentManager
from aiproxy_payments.modules.payments.services.subscription_service import SubscriptionService
from aiproxy_payments.shared.config import PaymentsSettings, get_payments_settings
from aiproxy_payments.shared.database import get_session_factory

logger = logging.getLogger(__name__)


def _secret(value: Optional[SecretStr]) -> Optional[str]:
    return value.get_secret_value() if value is not None else None


# =============================================================================
# SETTINGS -> CONFIGS
# =============================================================================

def build_stripe_config(settings: PaymentsSettings) -> StripeConfig:
    return StripeConfig(
        enabled=settings.stripe_enabled,
        test_mode=settings.stripe_test_mode,
        publishable_key=settings.stripe_publishable_key,
        secret_key=_secret(settings.stripe_secret_key),
        webhook_secret=_secret(settings.stripe_webhook_secret),
        currency=settings.stripe_currency,
        country=settings.stripe_country,
    )


def build_epay_config(settings: PaymentsSettings) -> EpayConfig:
    return EpayConfig(
        enabled=settings.epay_enabled,
        test_mode=settings.epay_test_mode,
        merchant_id=settings.epay_merchant_id,
        merchant_key=_secret(settings.epay_merchant_key),
        api_url=settings.epay_api_url,
        notify_url=settings.epay_notify_url or settings.default_notify_url(PaymentProvider.EPAY),
        return_url=settings.epay_return_url or settings.default_return_url(),
        sign_type=settings.epay_sign_type,
        supported_channels=tuple(settings.epay_channels()),
    )


def build_alipay_config(settings: PaymentsSettings) -> AlipayConfig:
    return AlipayConfig(
        enabled=settings.alipay_enabled,
        test_mode=settings.alipay_test_mode,
        app_id=settings.alipay_app_id,
        private_key=_secret(settings.alipay_private_key),
        alipay_public_key=settings.alipay_public_key,
        notify_url=settings.alipay_notify_url or settings.default_notify_url(PaymentProvider.ALIPAY),
        return_url=settings.alipay_return_url or settings.default_return_url(),
    )


def build_wechat_pay_config(settings: PaymentsSettings) -> WechatPayConfig:
    return WechatPayConfig(
        enabled=settings.wechat_pay_enabled,
        test_mode=settings.wechat_pay_test_mode,
        app_id=settings.wechat_pay_app_id,
        mch_id=settings.wechat_pay_mch_id,
        api_v3_key=_secret(settings.wechat_pay_api_v3_key),
        private_key=_secret(settings.wechat_pay_private_key),
        serial_no=settings.wechat_pay_serial_no,
        platform_public_key=settings.wechat_pay_platform_public_key,
        notify_url=settings.wechat_pay_notify_url
        or settings.default_notify_url(PaymentProvider.WECHAT_PAY),
    )


# =============================================================================
# CONSTRUCCIÓN DEL MANAGER
# =============================================================================

def build_providers(
    settings: PaymentsSettings,
    store: SqlAlchemyBillingRecordStore,
    http_client: Optional[httpx.AsyncClient] = None,
) -> List[PaymentProviderProtocol]:
    """Instancia los proveedores habilitados en settings (completos o no)."""

    def gateway(name: PaymentProvider) -> GatewayClient:
        return GatewayClient(
            name,
            http_client,
            submit_timeout=settings.payments_submit_timeout_seconds,
            query_timeout=settings.payments_query_timeout_seconds,
        )

    window = timedelta(minutes=settings.payments_window_minutes)
    providers: List[PaymentProviderProtocol] = []

    stripe = build_stripe_config(settings)
    if stripe.enabled:
        providers.append(StripeProvider(stripe, store, gateway(PaymentProvider.STRIPE)))

    epay = build_epay_config(settings)
    if epay.enabled:
        providers.append(EpayProvider(epay, store))

    alipay = build_alipay_config(settings)
    if alipay.enabled:
        providers.append(
            AlipayProvider(alipay, store, gateway(PaymentProvider.ALIPAY), payment_window=window)
        )

    wechat = build_wechat_pay_config(settings)
    if wechat.enabled:
        providers.append(
            WechatPayProvider(wechat, store, gateway(PaymentProvider.WECHAT_PAY), payment_window=window)
        )

    for provider in providers:
        missing = provider.config.missing_fields()
        if missing:
            logger.warning(
                f"[payments] {provider.name} habilitado con configuración incompleta "
                f"(faltan {', '.join(missing)}); queda fuera de servicio"
            )
    return providers


def initialize_payment_system(
    settings: Optional[PaymentsSettings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> PaymentManager:
    settings = settings or get_payments_settings()
    session_factory = session_factory or get_session_factory()

    store = SqlAlchemyBillingRecordStore(
        session_factory,
        subscriptions=SubscriptionService(stacking=settings.payments_subscription_stacking),
    )
    manager = PaymentManager(store)
    for provider in build_providers(settings, store, http_client):
        manager.register_provider(provider)

    if settings.payments_default_provider:
        try:
            manager.set_default_provider(settings.payments_default_provider)
        except NoProviderAvailable:
            logger.warning(
                f"[payments] PAYMENTS_DEFAULT_PROVIDER={settings.payments_default_provider} "
                f"no disponible; se usa {manager.default_provider_name}"
            )

    if not manager.has_available_providers():
        logger.warning("[payments] Sistema de pagos sin proveedores disponibles")
    else:
        enabled = ", ".join(str(p.name) for p in manager.get_enabled_providers())
        logger.info(f"[payments] Sistema de pagos listo: {enabled} (default={manager.default_provider_name})")
    return manager


async def reinitialize_payment_system(
    manager: Optional[PaymentManager],
    settings: Optional[PaymentsSettings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> PaymentManager:
    """Cierra el registro actual y construye uno nuevo con la config vigente."""
    if manager is not None:
        await manager.aclose()
    return initialize_payment_system(settings, session_factory, http_client)


def get_payment_system_status(manager: Optional[PaymentManager]) -> PaymentSystemStatus:
    if manager is None:
        return PaymentSystemStatus(
            initialized=False,
            enabled_providers_count=0,
            has_available_providers=False,
        )
    return PaymentSystemStatus(
        initialized=True,
        enabled_providers_count=len(manager.get_enabled_providers()),
        default_provider=manager.default_provider_name,
        available_methods=manager.get_available_payment_methods(),
        has_available_providers=manager.has_available_providers(),
    )


__all__ = [
    "build_stripe_config",
    "build_epay_config",
    "build_alipay_config",
    "build_wechat_pay_config",
    "build_providers",
    "initialize_payment_system",
    "reinitialize_payment_system",
    "get_payment_system_status",
]
# Fin del archivo aiproxy_payments/modules/payments/facades/initialization.py
