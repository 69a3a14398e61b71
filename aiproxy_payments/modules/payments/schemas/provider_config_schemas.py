# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/schemas/provider_config_schemas.py

Configuración por proveedor (inmutable tras la construcción).

Todas comparten `enabled` y `test_mode`. `is_complete()` indica si los
campos obligatorios están presentes; un proveedor está habilitado solo si
ambos son ciertos. Reconfigurar implica reconstruir el registro
(PaymentManager), nunca mutar estas instancias.

Autor: Equipo AIProxy
Fecha: 2026-09-04
"""

from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from aiproxy_payments.modules.payments.enums import PaymentProvider


class ProviderConfig(BaseModel):
    """Campos comunes; frozen para impedir mutaciones tras construir el proveedor."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    test_mode: bool = False

    def required_fields(self) -> Tuple[str, ...]:
        return ()

    def missing_fields(self) -> List[str]:
        return [f for f in self.required_fields() if not getattr(self, f)]

    def is_complete(self) -> bool:
        return not self.missing_fields()


class StripeConfig(ProviderConfig):
    publishable_key: Optional[str] = None
    secret_key: Optional[str] = Field(default=None, repr=False)
    webhook_secret: Optional[str] = Field(default=None, repr=False)
    currency: str = "usd"
    country: str = "US"
    api_base: str = "https://api.stripe.com"
    api_version: str = "2024-06-20"

    def required_fields(self) -> Tuple[str, ...]:
        return ("publishable_key", "secret_key", "currency", "country")


class EpayConfig(ProviderConfig):
    merchant_id: Optional[str] = None
    merchant_key: Optional[str] = Field(default=None, repr=False)
    api_url: Optional[str] = None
    notify_url: Optional[str] = None
    return_url: Optional[str] = None
    sign_type: Literal["MD5", "RSA"] = "MD5"
    supported_channels: Tuple[str, ...] = ("alipay", "wxpay")

    def required_fields(self) -> Tuple[str, ...]:
        return ("merchant_id", "merchant_key", "api_url")


class AlipayConfig(ProviderConfig):
    app_id: Optional[str] = None
    private_key: Optional[str] = Field(default=None, repr=False)
    alipay_public_key: Optional[str] = None
    notify_url: Optional[str] = None
    return_url: Optional[str] = None

    @property
    def gateway_url(self) -> str:
        if self.test_mode:
            return "https://openapi.alipaydev.com/gateway.do"
        return "https://openapi.alipay.com/gateway.do"

    def required_fields(self) -> Tuple[str, ...]:
        return ("app_id", "private_key", "alipay_public_key")


class WechatPayConfig(ProviderConfig):
    app_id: Optional[str] = None
    mch_id: Optional[str] = None
    api_v3_key: Optional[str] = Field(default=None, repr=False)
    private_key: Optional[str] = Field(default=None, repr=False)
    serial_no: Optional[str] = None
    platform_public_key: Optional[str] = None
    notify_url: Optional[str] = None
    api_base: str = "https://api.mch.weixin.qq.com"

    def required_fields(self) -> Tuple[str, ...]:
        return ("mch_id", "api_v3_key", "private_key", "serial_no")


class PaymentMethodOut(BaseModel):
    """Superficie pública de un proveedor: nunca incluye secretos."""

    provider: PaymentProvider
    name: str
    enabled: bool
    test_mode: bool


class PaymentSystemStatus(BaseModel):
    initialized: bool
    enabled_providers_count: int
    default_provider: Optional[PaymentProvider] = None
    available_methods: List[PaymentMethodOut] = Field(default_factory=list)
    has_available_providers: bool


__all__ = [
    "ProviderConfig",
    "StripeConfig",
    "EpayConfig",
    "AlipayConfig",
    "WechatPayConfig",
    "PaymentMethodOut",
    "PaymentSystemStatus",
]

# Fin del archivo aiproxy_payments/modules/payments/schemas/provider_config_schemas.py
