# -*- coding: utf-8 -*-
"""
tests/modules/payments/providers/test_wechat_pay_provider.py

WechatPayProvider v3: header Authorization, flujos NATIVE/H5/JSAPI,
notificaciones AES-256-GCM y firma de plataforma.

Autor: Equipo AIProxy
Fecha: 2026-09-16
"""

import base64
import json
import re
import time
from decimal import Decimal

import httpx
import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.exceptions import ConfigurationError, InvalidPaymentRequest
from aiproxy_payments.modules.payments.providers.wechat_pay_provider import (
    AUTH_SCHEMA,
    WechatPayProvider,
)
from aiproxy_payments.modules.payments.schemas import CreatePaymentParams, WechatPayConfig
from aiproxy_payments.modules.payments.services.signing import rsa_sign, rsa_verify, wechat_message

API_V3_KEY = "0123456789abcdef0123456789abcdef"
MCH_ID = "1900000001"


@pytest.fixture
def config(merchant_keys):
    return WechatPayConfig(
        enabled=True,
        app_id="wx0000000000000001",
        mch_id=MCH_ID,
        api_v3_key=API_V3_KEY,
        private_key=merchant_keys.private_pem,
        serial_no="SERIAL01",
        notify_url="https://shop.example.com/webhooks/wechat_pay",
    )


@pytest.fixture
def provider_factory(config, store, mock_gateway):
    def _make(handler=None, cfg=None):
        handler = handler or (lambda r: httpx.Response(500))
        return WechatPayProvider(cfg or config, store, mock_gateway(PaymentProvider.WECHAT_PAY, handler))

    return _make


def _auth_fields(header: str) -> dict:
    assert header.startswith(AUTH_SCHEMA + " ")
    return dict(re.findall(r'(\w+)="([^"]*)"', header))


def _notification_body(resource: dict, event_type="TRANSACTION.SUCCESS", nonce="abcdefghijkl") -> bytes:
    aad = "transaction"
    ciphertext = AESGCM(API_V3_KEY.encode()).encrypt(
        nonce.encode(), json.dumps(resource).encode(), aad.encode()
    )
    return json.dumps({
        "id": "EV-1",
        "create_time": "2026-09-16T10:00:00+08:00",
        "event_type": event_type,
        "resource_type": "encrypt-resource",
        "resource": {
            "algorithm": "AEAD_AES_256_GCM",
            "ciphertext": base64.b64encode(ciphertext).decode(),
            "associated_data": aad,
            "nonce": nonce,
        },
    }).encode()


def _paid_resource(order_id="o1", **overrides):
    resource = {
        "mchid": MCH_ID,
        "out_trade_no": order_id,
        "transaction_id": "4200000000202609160001",
        "trade_state": "SUCCESS",
        "amount": {"total": 9900, "currency": "CNY"},
        "payer": {"openid": "oUpF8uMuAJO_M2pxb1Q9zNjWeS6o"},
    }
    resource.update(overrides)
    return resource


class TestRequestSigning:
    @pytest.mark.asyncio
    async def test_native_create_is_signed(self, provider_factory, merchant_keys):
        provider = provider_factory(
            lambda r: httpx.Response(200, json={"code_url": "weixin://wxpay/bizpayurl?pr=abc"})
        )
        intent = await provider.create_payment(
            CreatePaymentParams(amount=Decimal("99.00"), currency="CNY", user_id="user_1")
        )

        assert intent.qr_code == "weixin://wxpay/bizpayurl?pr=abc"
        assert intent.payment_method == "native"
        assert intent.expires_at is not None

        request = provider.gateway.requests[0]
        assert request.url.path == "/v3/pay/transactions/native"
        body_text = request.content.decode()
        body = json.loads(body_text)
        assert body["amount"] == {"total": 9900, "currency": "CNY"}
        assert body["mchid"] == MCH_ID
        assert body["out_trade_no"] == intent.id
        assert body["notify_url"] == "https://shop.example.com/webhooks/wechat_pay"

        fields = _auth_fields(request.headers["Authorization"])
        assert fields["mchid"] == MCH_ID
        assert fields["serial_no"] == "SERIAL01"
        message = wechat_message("POST", "/v3/pay/transactions/native", fields["timestamp"], fields["nonce_str"], body_text)
        assert rsa_verify(message, fields["signature"], merchant_keys.public_pem)

    @pytest.mark.asyncio
    async def test_h5_returns_payment_url(self, provider_factory):
        provider = provider_factory(lambda r: httpx.Response(200, json={"h5_url": "https://wx.tenpay.com/h5"}))
        intent = await provider.create_payment(
            CreatePaymentParams(
                amount=Decimal("1"), currency="CNY", user_id="u", payment_method="h5", client_ip="10.0.0.8"
            )
        )
        assert intent.payment_url == "https://wx.tenpay.com/h5"
        body = json.loads(provider.gateway.requests[0].content)
        assert body["scene_info"]["payer_client_ip"] == "10.0.0.8"

    @pytest.mark.asyncio
    async def test_jsapi_returns_signed_client_params(self, provider_factory, merchant_keys):
        provider = provider_factory(lambda r: httpx.Response(200, json={"prepay_id": "wx201410272009395522657a690389285100"}))
        intent = await provider.create_payment(
            CreatePaymentParams(
                amount=Decimal("1"), currency="CNY", user_id="u", payment_method="jsapi", payer_id="openid-1"
            )
        )
        pay = json.loads(intent.client_secret)
        assert pay["package"] == "prepay_id=wx201410272009395522657a690389285100"
        message = wechat_message(pay["appId"], pay["timeStamp"], pay["nonceStr"], pay["package"])
        assert rsa_verify(message, pay["paySign"], merchant_keys.public_pem)
        assert json.loads(provider.gateway.requests[0].content)["payer"] == {"openid": "openid-1"}

    @pytest.mark.asyncio
    async def test_jsapi_requires_payer(self, provider_factory):
        provider = provider_factory()
        with pytest.raises(InvalidPaymentRequest):
            await provider.create_payment(
                CreatePaymentParams(amount=Decimal("1"), currency="CNY", user_id="u", payment_method="jsapi")
            )
        assert provider.gateway.requests == []

    @pytest.mark.asyncio
    async def test_jsapi_requires_app_id(self, provider_factory, config):
        provider = provider_factory(cfg=config.model_copy(update={"app_id": None}))
        with pytest.raises(ConfigurationError):
            await provider.create_payment(
                CreatePaymentParams(
                    amount=Decimal("1"), currency="CNY", user_id="u", payment_method="jsapi", payer_id="o"
                )
            )


class TestNotifications:
    def _header(self, body: bytes, keys=None, timestamp=None) -> str:
        ts = str(int(time.time()) if timestamp is None else timestamp)
        nonce = "n0nce"
        signature = rsa_sign(wechat_message(ts, nonce, body.decode()), keys.private_pem) if keys else "unused"
        return f"t={ts},n={nonce},s={signature}"

    @pytest.mark.asyncio
    async def test_decrypted_success_notification(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.WECHAT_PAY))
        provider = provider_factory()
        body = _notification_body(_paid_resource())

        event = provider.validate_webhook(body, self._header(body))
        assert event is not None
        assert event.data["resource"]["out_trade_no"] == "o1"

        result = await provider.handle_webhook(event)
        assert result.success is True
        record = await store.get("o1", PaymentProvider.WECHAT_PAY)
        assert record.status == PaymentStatus.SUCCEEDED
        assert record.transaction_id == "4200000000202609160001"

    def test_tampered_ciphertext_is_rejected(self, provider_factory):
        body = json.loads(_notification_body(_paid_resource()))
        raw = bytearray(base64.b64decode(body["resource"]["ciphertext"]))
        raw[-1] ^= 0x01
        body["resource"]["ciphertext"] = base64.b64encode(bytes(raw)).decode()
        payload = json.dumps(body).encode()
        assert provider_factory().validate_webhook(payload, self._header(payload)) is None

    def test_missing_signature_headers(self, provider_factory):
        body = _notification_body(_paid_resource())
        assert provider_factory().validate_webhook(body, None) is None
        assert provider_factory().validate_webhook(body, "t=1,n=x") is None

    def test_malformed_resource_fields_return_none(self, provider_factory):
        provider = provider_factory()
        for resource in (
            {"algorithm": "AEAD_AES_256_GCM", "ciphertext": "AAAA", "nonce": 123, "associated_data": "transaction"},
            {"algorithm": "AEAD_AES_256_GCM", "ciphertext": "AAAA", "nonce": "abcdefghijkl", "associated_data": 7},
            {"algorithm": "AEAD_AES_256_GCM", "ciphertext": ["AAAA"], "nonce": "abcdefghijkl"},
            ["not", "a", "dict"],
        ):
            body = json.dumps({"id": "EV-1", "resource": resource}).encode()
            assert provider.validate_webhook(body, self._header(body)) is None
        assert provider.validate_webhook(b"[1, 2]", self._header(b"[1, 2]")) is None

    def test_other_merchant_is_rejected(self, provider_factory):
        body = _notification_body(_paid_resource(mchid="1900009999"))
        assert provider_factory().validate_webhook(body, self._header(body)) is None

    def test_platform_signature_is_checked(self, provider_factory, config, platform_keys, merchant_keys):
        provider = provider_factory(cfg=config.model_copy(update={"platform_public_key": platform_keys.public_pem}))
        body = _notification_body(_paid_resource())

        assert provider.validate_webhook(body, self._header(body, platform_keys)) is not None
        assert provider.validate_webhook(body, self._header(body, merchant_keys)) is None
        stale = self._header(body, platform_keys, timestamp=int(time.time()) - 3600)
        assert provider.validate_webhook(body, stale) is None

    @pytest.mark.asyncio
    async def test_duplicate_notification_is_noop(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.WECHAT_PAY))
        provider = provider_factory()
        body = _notification_body(_paid_resource())
        event = provider.validate_webhook(body, self._header(body))
        await provider.handle_webhook(event)
        again = await provider.handle_webhook(event)
        assert again.success is True
        assert again.message == "already processed"


class TestOperations:
    @pytest.mark.asyncio
    async def test_refund_processing_counts_as_accepted(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.WECHAT_PAY))
        await store.transition("o1", PaymentProvider.WECHAT_PAY, PaymentStatus.SUCCEEDED)
        provider = provider_factory(
            lambda r: httpx.Response(
                200,
                json={"refund_id": "50000000382019052709732678859", "status": "PROCESSING", "amount": {"refund": 5000}},
            )
        )

        result = await provider.refund_payment("o1", amount=Decimal("50.00"), reason="用户退款")

        assert result.success is True
        assert result.status == PaymentStatus.SUCCEEDED
        request = provider.gateway.requests[0]
        assert request.url.path == "/v3/refund/domestic/refunds"
        body = json.loads(request.content)
        assert body["amount"] == {"refund": 5000, "total": 9900, "currency": "CNY"}
        record = await store.get("o1", PaymentProvider.WECHAT_PAY)
        assert record.metadata["refund_status"] == "PROCESSING"
        assert record.metadata["refund_amount"] == "50.00"

    @pytest.mark.asyncio
    async def test_status_query(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.WECHAT_PAY))
        provider = provider_factory(lambda r: httpx.Response(200, json={"trade_state": "USERPAYING"}))
        assert await provider.get_payment_status("o1") == PaymentStatus.PROCESSING
        request = provider.gateway.requests[0]
        assert request.url.path == "/v3/pay/transactions/out-trade-no/o1"
        assert request.url.params["mchid"] == MCH_ID

    @pytest.mark.asyncio
    async def test_cancel_closes_order(self, provider_factory, store, make_intent):
        await store.create_from_intent(make_intent("o1", provider=PaymentProvider.WECHAT_PAY))
        provider = provider_factory(lambda r: httpx.Response(204))
        result = await provider.cancel_payment("o1")
        assert result.success is True
        assert provider.gateway.requests[0].url.path == "/v3/pay/transactions/out-trade-no/o1/close"
        assert (await store.get("o1", PaymentProvider.WECHAT_PAY)).status == PaymentStatus.CANCELED

# Fin del archivo tests/modules/payments/providers/test_wechat_pay_provider.py
