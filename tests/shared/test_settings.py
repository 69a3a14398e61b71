# -*- coding: utf-8 -*-
"""
tests/shared/test_settings.py

Configuración por entorno, construcción de configs por proveedor e
inicialización del sistema de pagos.

Autor: Equipo AIProxy
Fecha: 2026-09-17
"""

import logging

import pytest

from aiproxy_payments.modules.payments.enums import PaymentProvider
from aiproxy_payments.modules.payments.facades import (
    get_payment_system_status,
    initialize_payment_system,
    reinitialize_payment_system,
)
from aiproxy_payments.modules.payments.facades.initialization import (
    build_alipay_config,
    build_epay_config,
    build_stripe_config,
    build_wechat_pay_config,
)
from aiproxy_payments.shared.config import AppSettings, PaymentsSettings, get_payments_settings
from aiproxy_payments.shared.config.logging_config import setup_logging

EPAY = dict(
    epay_enabled=True,
    epay_merchant_id="M1001",
    epay_merchant_key="K1",
    epay_api_url="https://pay.example.com",
)
STRIPE = dict(
    stripe_enabled=True,
    stripe_publishable_key="pk_test_1",
    stripe_secret_key="sk_test_1",
    stripe_webhook_secret="whsec_1",
)


class TestPaymentsSettings:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("EPAY_ENABLED", "true")
        monkeypatch.setenv("EPAY_MERCHANT_ID", "M2002")
        monkeypatch.setenv("EPAY_MERCHANT_KEY", "super-secret")
        monkeypatch.setenv("EPAY_SIGN_TYPE", "md5")
        monkeypatch.setenv("PAYMENTS_WINDOW_MINUTES", "30")

        settings = get_payments_settings()

        assert settings.epay_enabled is True
        assert settings.epay_merchant_id == "M2002"
        assert settings.epay_merchant_key.get_secret_value() == "super-secret"
        assert settings.epay_sign_type == "MD5"
        assert settings.payments_window_minutes == 30
        assert get_payments_settings() is settings

    def test_secrets_are_hidden(self):
        settings = PaymentsSettings(**EPAY, **STRIPE)
        rendered = repr(settings) + str(settings.model_dump())
        assert "K1" not in rendered
        assert "sk_test_1" not in rendered
        assert "whsec_1" not in rendered

    def test_site_url_drives_default_urls(self, monkeypatch):
        monkeypatch.delenv("PAYMENTS_SITE_URL", raising=False)
        monkeypatch.setenv("SITE_URL", "https://shop.example.com/")
        settings = PaymentsSettings()
        assert settings.payments_site_url == "https://shop.example.com"
        assert settings.default_notify_url(PaymentProvider.WECHAT_PAY) == (
            "https://shop.example.com/webhooks/wechat_pay"
        )

    def test_channels_csv(self):
        settings = PaymentsSettings(epay_supported_channels=" wxpay, ,alipay ")
        assert settings.epay_channels() == ["wxpay", "alipay"]

    def test_database_url_normalization(self, monkeypatch):
        monkeypatch.setenv("DB_URL", "postgres://u:p@db/payments")
        assert AppSettings().database_url == "postgresql+asyncpg://u:p@db/payments"
        monkeypatch.delenv("DB_URL")
        assert AppSettings().database_url.startswith("sqlite+aiosqlite://")


class TestProviderConfigs:
    def test_secrets_are_unwrapped(self):
        settings = PaymentsSettings(**EPAY, **STRIPE, payments_site_url="https://shop.example.com")

        epay = build_epay_config(settings)
        assert epay.merchant_key == "K1"
        assert epay.notify_url == "https://shop.example.com/webhooks/epay"
        assert epay.supported_channels == ("alipay", "wxpay")
        assert epay.is_complete()
        assert "K1" not in repr(epay)

        stripe = build_stripe_config(settings)
        assert stripe.secret_key == "sk_test_1"
        assert stripe.is_complete()

    def test_missing_fields_are_listed(self):
        settings = PaymentsSettings(alipay_enabled=True, alipay_app_id="2021")
        assert build_alipay_config(settings).missing_fields() == ["private_key", "alipay_public_key"]
        assert set(build_wechat_pay_config(settings).missing_fields()) == {
            "mch_id",
            "api_v3_key",
            "private_key",
            "serial_no",
        }


class TestInitialization:
    def test_only_enabled_providers_are_registered(self, session_factory, caplog):
        settings = PaymentsSettings(**EPAY, alipay_enabled=True, alipay_app_id="2021")

        with caplog.at_level(logging.WARNING):
            manager = initialize_payment_system(settings, session_factory)

        assert manager.get_provider("stripe") is None
        assert manager.get_provider("alipay") is not None
        assert [p.name for p in manager.get_enabled_providers()] == [PaymentProvider.EPAY]
        assert manager.default_provider_name == PaymentProvider.EPAY
        assert any("configuración incompleta" in r.getMessage() for r in caplog.records)

    def test_default_provider_setting(self, session_factory):
        settings = PaymentsSettings(**STRIPE, **EPAY, payments_default_provider="epay")
        manager = initialize_payment_system(settings, session_factory)
        assert manager.default_provider_name == PaymentProvider.EPAY

    def test_unavailable_default_falls_back(self, session_factory, caplog):
        settings = PaymentsSettings(**EPAY, payments_default_provider="wechat_pay")
        with caplog.at_level(logging.WARNING):
            manager = initialize_payment_system(settings, session_factory)
        assert manager.default_provider_name == PaymentProvider.EPAY
        assert any("PAYMENTS_DEFAULT_PROVIDER" in r.getMessage() for r in caplog.records)

    def test_system_status(self, session_factory):
        assert get_payment_system_status(None).initialized is False

        status = get_payment_system_status(initialize_payment_system(PaymentsSettings(**EPAY), session_factory))
        assert status.initialized is True
        assert status.enabled_providers_count == 1
        assert status.default_provider == PaymentProvider.EPAY
        assert [m.provider for m in status.available_methods] == [PaymentProvider.EPAY]

    @pytest.mark.asyncio
    async def test_reinitialize_builds_fresh_registry(self, session_factory):
        old = initialize_payment_system(PaymentsSettings(**EPAY), session_factory)
        new = await reinitialize_payment_system(old, PaymentsSettings(**STRIPE), session_factory)

        assert old.has_available_providers() is False
        assert new.default_provider_name == PaymentProvider.STRIPE
        assert new.get_provider("epay") is None
        await new.aclose()

    def test_nothing_enabled(self, session_factory):
        manager = initialize_payment_system(PaymentsSettings(), session_factory)
        assert manager.has_available_providers() is False
        assert get_payment_system_status(manager).default_provider is None


class TestLogging:
    @pytest.fixture(autouse=True)
    def _restore_logging(self):
        yield
        setup_logging("INFO", "plain")

    def test_json_format_uses_json_formatter(self):
        setup_logging("INFO", "json")
        formatters = {type(h.formatter).__name__ for h in logging.getLogger().handlers if h.formatter}
        assert "JsonFormatter" in formatters

    def test_noisy_loggers_are_quieted(self):
        setup_logging("DEBUG", "plain")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger().level == logging.DEBUG

# Fin del archivo tests/shared/test_settings.py
