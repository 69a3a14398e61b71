# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/config/settings_payments.py

Configuración de pagos multi-proveedor.

Descripción:
    Centraliza flags de habilitación, secretos por proveedor (Stripe, Epay,
    Alipay, WeChat Pay), tiempos de espera hacia las pasarelas y la política
    de extensión de suscripciones.

    Los secretos se declaran como SecretStr para que nunca aparezcan en
    repr() ni en logs; los builders de facades/initialization los
    desenvuelven al construir cada proveedor.

Autor: Equipo AIProxy
Fecha: 2026-09-02
"""

from __future__ import annotations

import os
from typing import List, Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaymentsSettings(BaseSettings):
    """Configuración del sistema de pagos."""

    # =========================================================================
    # GENERAL
    # =========================================================================

    payments_default_provider: Optional[str] = Field(
        default=None,
        description="Proveedor por defecto (stripe, epay, alipay, wechat_pay)"
    )

    payments_site_url: Optional[str] = Field(
        default=None,
        validate_default=True,
        description="URL pública base para construir notify_url/return_url por defecto"
    )

    payments_submit_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout para llamadas de creación/confirmación hacia pasarelas"
    )

    payments_query_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout para consultas de estado y pings"
    )

    payments_window_minutes: int = Field(
        default=15,
        ge=1,
        description="Ventana de pago antes de que la pasarela expire la orden"
    )

    payments_subscription_stacking: bool = Field(
        default=True,
        description=(
            "True: la renovación se suma al vencimiento vigente. "
            "False: el vencimiento se recalcula desde ahora."
        )
    )

    @field_validator("payments_site_url", mode="before")
    @classmethod
    def _load_site_url(cls, v: Optional[str]) -> Optional[str]:
        """Fallback a SITE_URL si PAYMENTS_SITE_URL no está definido."""
        if v:
            return str(v).rstrip("/")
        fallback = os.getenv("SITE_URL")
        return fallback.rstrip("/") if fallback else None

    # =========================================================================
    # STRIPE
    # =========================================================================

    stripe_enabled: bool = Field(default=False, description="Habilita pagos con Stripe")
    stripe_test_mode: bool = Field(default=True, description="Modo test de Stripe")
    stripe_publishable_key: Optional[str] = Field(
        default=None,
        description="Stripe publishable key (pk_live_... o pk_test_...)"
    )
    stripe_secret_key: Optional[SecretStr] = Field(
        default=None,
        description="Stripe secret key (sk_live_... o sk_test_...)"
    )
    stripe_webhook_secret: Optional[SecretStr] = Field(
        default=None,
        description="Stripe webhook signing secret (whsec_...)"
    )
    stripe_currency: str = Field(default="usd", description="Moneda por defecto en Stripe")
    stripe_country: str = Field(default="US", description="País de la cuenta Stripe")

    # =========================================================================
    # EPAY (agregador)
    # =========================================================================

    epay_enabled: bool = Field(default=False, description="Habilita el agregador Epay")
    epay_test_mode: bool = Field(default=False, description="Modo test del agregador")
    epay_merchant_id: Optional[str] = Field(default=None, description="ID de comercio (pid)")
    epay_merchant_key: Optional[SecretStr] = Field(default=None, description="Llave de firma MD5")
    epay_api_url: Optional[str] = Field(default=None, description="URL base del agregador")
    epay_notify_url: Optional[str] = Field(default=None, description="URL de notificación asíncrona")
    epay_return_url: Optional[str] = Field(default=None, description="URL de retorno del navegador")
    epay_sign_type: Literal["MD5", "RSA"] = Field(default="MD5", description="Algoritmo de firma")
    epay_supported_channels: str = Field(
        default="alipay,wxpay",
        description="Canales aceptados por el agregador (CSV)"
    )

    @field_validator("epay_sign_type", mode="before")
    @classmethod
    def _upper_sign_type(cls, v):
        return str(v).upper() if v else "MD5"

    # =========================================================================
    # ALIPAY (pasarela directa A)
    # =========================================================================

    alipay_enabled: bool = Field(default=False, description="Habilita Alipay")
    alipay_test_mode: bool = Field(default=True, description="Usa el gateway sandbox de Alipay")
    alipay_app_id: Optional[str] = Field(default=None, description="APPID de Alipay")
    alipay_private_key: Optional[SecretStr] = Field(
        default=None,
        description="Llave privada RSA del comercio (PEM o base64)"
    )
    alipay_public_key: Optional[str] = Field(
        default=None,
        description="Llave pública de Alipay para verificar notificaciones"
    )
    alipay_notify_url: Optional[str] = Field(default=None, description="URL de notificación")
    alipay_return_url: Optional[str] = Field(default=None, description="URL de retorno")

    # =========================================================================
    # WECHAT PAY (pasarela directa B)
    # =========================================================================

    wechat_pay_enabled: bool = Field(default=False, description="Habilita WeChat Pay")
    wechat_pay_test_mode: bool = Field(default=False, description="Modo test de WeChat Pay")
    wechat_pay_app_id: Optional[str] = Field(default=None, description="AppID vinculado")
    wechat_pay_mch_id: Optional[str] = Field(default=None, description="Merchant ID (mchid)")
    wechat_pay_api_v3_key: Optional[SecretStr] = Field(
        default=None,
        description="Llave simétrica APIv3 (32 bytes) para descifrar notificaciones"
    )
    wechat_pay_private_key: Optional[SecretStr] = Field(
        default=None,
        description="Llave privada del certificado de comercio (PEM)"
    )
    wechat_pay_serial_no: Optional[str] = Field(
        default=None,
        description="Número de serie del certificado de comercio"
    )
    wechat_pay_platform_public_key: Optional[str] = Field(
        default=None,
        description="Llave pública de plataforma para verificar Wechatpay-Signature"
    )
    wechat_pay_notify_url: Optional[str] = Field(default=None, description="URL de notificación")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def default_notify_url(self, provider: str) -> Optional[str]:
        """Construye {site}/webhooks/{provider} si hay URL base."""
        if not self.payments_site_url:
            return None
        return f"{self.payments_site_url}/webhooks/{provider}"

    def epay_channels(self) -> List[str]:
        """Canales del agregador como lista, sin vacíos."""
        return [c.strip() for c in self.epay_supported_channels.split(",") if c.strip()]

    def default_return_url(self) -> Optional[str]:
        if not self.payments_site_url:
            return None
        return f"{self.payments_site_url}/payment/success"


# Singleton global
_payments_settings: Optional[PaymentsSettings] = None


def get_payments_settings() -> PaymentsSettings:
    """
    Obtiene la instancia global de configuración de pagos.

    Returns:
        PaymentsSettings: Configuración de pagos
    """
    global _payments_settings
    if _payments_settings is None:
        _payments_settings = PaymentsSettings()
    return _payments_settings


def reset_payments_settings() -> None:
    """Descarta la instancia cacheada (útil tras cambiar variables de entorno)."""
    global _payments_settings
    _payments_settings = None


__all__ = [
    "PaymentsSettings",
    "get_payments_settings",
    "reset_payments_settings",
]
# Fin del archivo aiproxy_payments/shared/config/settings_payments.py
