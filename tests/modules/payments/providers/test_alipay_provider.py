# -*- coding: utf-8 -*-
"""
tests/modules/payments/providers/test_alipay_provider.py

AlipayProvider: URL de page pay firmada RSA2, precreate con fallback,
notificaciones verificadas con la llave pública de la plataforma.

Autor: Equipo AIProxy
Fecha: 2026-09-16
"""

import json
from datetime import timedelta
from decimal import Decimal
from urllib.parse import parse_qsl, urlencode, urlsplit

import httpx
import pytest

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.exceptions import InvalidAmount, UnsupportedCurrency
from aiproxy_payments.modules.payments.providers.alipay_provider import AlipayProvider
from aiproxy_payments.modules.payments.schemas import AlipayConfig, CreatePaymentParams
from aiproxy_payments.modules.payments.services.signing import canonical_query, rsa_sign, rsa_verify

APP_ID = "2021000000000001"


def _form(request: httpx.Request) -> dict:
    return dict(parse_qsl(request.content.decode("utf-8")))


def _envelope(method: str, **fields):
    return {method.replace(".", "_") + "_response": {"code": "10000", "msg": "Success", **fields}, "sign": "x"}


@pytest.fixture
def config(merchant_keys, platform_keys):
    return AlipayConfig(
        enabled=True,
        test_mode=True,
        app_id=APP_ID,
        private_key=merchant_keys.private_pem,
        alipay_public_key=platform_keys.public_pem,
        notify_url="https://shop.example.com/webhooks/alipay",
        return_url="https://shop.example.com/done",
    )


@pytest.fixture
def provider_factory(config, store, mock_gateway):
    def _make(handler=None):
        handler = handler or (lambda r: httpx.Response(500))
        return AlipayProvider(
            config,
            store,
            mock_gateway(PaymentProvider.ALIPAY, handler),
            payment_window=timedelta(minutes=15),
        )

    return _make


def _notification(platform_keys, order_id="o1", trade_status="TRADE_SUCCESS", **overrides):
    params = {
        "notify_id": "n-1",
        "app_id": APP_ID,
        "out_trade_no": order_id,
        "trade_no": "2026091622001",
        "trade_status": trade_status,
        "total_amount": "99.00",
        "buyer_id": "2088000000000001",
    }
    params.update(overrides)
    params["sign_type"] = "RSA2"
    params["sign"] = rsa_sign(canonical_query(params), platform_keys.private_pem)
    return urlencode(params).encode()


class TestCreatePayment:
    @pytest.mark.asyncio
    async def test_page_pay_url_is_signed(self, provider_factory, merchant_keys):
        provider = provider_factory()
        intent = await provider.create_payment(
            CreatePaymentParams(amount=Decimal("99"), currency="CNY", user_id="user_1", description="Pro")
        )

        url = urlsplit(intent.payment_url)
        assert url.netloc == "openapi.alipaydev.com"
        params = dict(parse_qsl(url.query))
        assert params["method"] == "alipay.trade.page.pay"
        assert params["app_id"] == APP_ID
        assert rsa_verify(
            canonical_query(params, exclude=("sign",)), params["sign"], merchant_keys.public_pem
        )

        biz = json.loads(params["biz_content"])
        assert biz["out_trade_no"] == intent.id
        assert biz["total_amount"] == "99.00"
        assert biz["timeout_express"] == "15m"
        assert intent.qr_code is None
        assert intent.expires_at - intent.created_at == timedelta(minutes=15)
        assert provider.gateway.requests == []

    @pytest.mark.asyncio
    async def test_qrcode_uses_precreate(self, provider_factory):
        provider = provider_factory(
            lambda r: httpx.Response(200, json=_envelope("alipay.trade.precreate", qr_code="https://qr.alipay.com/abc"))
        )
        intent = await provider.create_payment(
            CreatePaymentParams(amount=Decimal("99"), currency="CNY", user_id="u", payment_method="qrcode")
        )

        assert intent.qr_code == "https://qr.alipay.com/abc"
        assert intent.payment_url is None
        form = _form(provider.gateway.requests[0])
        assert form["method"] == "alipay.trade.precreate"
        assert form["notify_url"] == "https://shop.example.com/webhooks/alipay"

    @pytest.mark.asyncio
    async def test_precreate_failure_falls_back_to_page_pay(self, provider_factory):
        provider = provider_factory(
            lambda r: httpx.Response(200, json={
                "alipay_trade_precreate_response": {"code": "40004", "sub_msg": "商户无权限"}
            })
        )
        intent = await provider.create_payment(
            CreatePaymentParams(amount=Decimal("99"), currency="CNY", user_id="u", payment_method="mobile")
        )
        assert intent.qr_code is None
        assert intent.payment_url.startswith("https://openapi.alipaydev.com/gateway.do?")

    @pytest.mark.asyncio
    async def test_only_cny(self, provider_factory):
        with pytest.raises(UnsupportedCurrency):
            await provider_factory().create_payment(
                CreatePaymentParams(amount=Decimal("1"), currency="USD", user_id="u")
            )


    @pytest.mark.asyncio
    async def test_excess_precision_is_rejected(self, provider_factory):
        provider = provider_factory()
        with pytest.raises(InvalidAmount):
            await provider.create_payment(
                CreatePaymentParams(amount=Decimal("0.005"), currency="CNY", user_id="u")
            )
        assert provider.gateway.requests == []


class TestNotifications:
    @pytest.mark.asyncio
    async def test_valid_notification_succeeds(self, provider_factory, platform_keys, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.ALIPAY))
        provider = provider_factory()

        event = provider.validate_webhook(_notification(platform_keys), None)
        assert event is not None
        result = await provider.handle_webhook(event)

        assert result.success is True
        record = await store.get("o1", PaymentProvider.ALIPAY)
        assert record.status == PaymentStatus.SUCCEEDED
        assert record.transaction_id == "2026091622001"
        assert record.metadata["alipay_buyer_id"] == "2088000000000001"

    def test_tampered_notification_is_rejected(self, provider_factory, platform_keys):
        payload = _notification(platform_keys).replace(b"total_amount=99.00", b"total_amount=0.01")
        assert provider_factory().validate_webhook(payload, None) is None

    def test_merchant_key_cannot_forge_notifications(self, provider_factory, merchant_keys):
        assert provider_factory().validate_webhook(_notification(merchant_keys), None) is None

    def test_other_app_id_is_rejected(self, provider_factory, platform_keys):
        payload = _notification(platform_keys, app_id="2021999999999999")
        assert provider_factory().validate_webhook(payload, None) is None

    @pytest.mark.asyncio
    async def test_wait_buyer_pay_is_acknowledged_without_change(
        self, provider_factory, platform_keys, store, make_intent
    ):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.ALIPAY))
        provider = provider_factory()
        event = provider.validate_webhook(_notification(platform_keys, trade_status="WAIT_BUYER_PAY"), None)
        result = await provider.handle_webhook(event)
        assert result.success is True
        assert (await store.get("o1", PaymentProvider.ALIPAY)).status == PaymentStatus.PENDING


class TestOperations:
    @pytest.mark.asyncio
    async def test_cancel_closes_trade(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.ALIPAY))
        provider = provider_factory(
            lambda r: httpx.Response(200, json=_envelope("alipay.trade.close", trade_no="T1"))
        )
        result = await provider.cancel_payment("o1")

        assert result.success is True
        assert _form(provider.gateway.requests[0])["method"] == "alipay.trade.close"
        assert (await store.get("o1", PaymentProvider.ALIPAY)).status == PaymentStatus.CANCELED

    @pytest.mark.asyncio
    async def test_refund_rejects_excess_precision(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.ALIPAY))
        provider = provider_factory()
        with pytest.raises(InvalidAmount):
            await provider.refund_payment("o1", amount=Decimal("10.001"))
        assert provider.gateway.requests == []

    @pytest.mark.asyncio
    async def test_status_from_query(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.ALIPAY))
        provider = provider_factory(
            lambda r: httpx.Response(200, json=_envelope("alipay.trade.query", trade_status="TRADE_SUCCESS"))
        )
        assert await provider.get_payment_status("o1") == PaymentStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_status_falls_back_on_gateway_error(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.ALIPAY))
        provider = provider_factory(lambda r: httpx.Response(500, text="boom"))
        assert await provider.get_payment_status("o1") == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_confirm_reconciles_paid_trade(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.ALIPAY))
        provider = provider_factory(
            lambda r: httpx.Response(
                200, json=_envelope("alipay.trade.query", trade_status="TRADE_SUCCESS", trade_no="T9")
            )
        )
        result = await provider.confirm_payment("o1")
        assert result.success is True
        assert (await store.get("o1", PaymentProvider.ALIPAY)).transaction_id == "T9"

# Fin del archivo tests/modules/payments/providers/test_alipay_provider.py
