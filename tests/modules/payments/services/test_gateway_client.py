# -*- coding: utf-8 -*-
"""
tests/modules/payments/services/test_gateway_client.py

GatewayClient: clasificación de errores y reintento acotado de consultas.

Autor: Equipo AIProxy
Fecha: 2026-09-15
"""

import httpx
import pytest

from aiproxy_payments.modules.payments.enums import PaymentProvider
from aiproxy_payments.modules.payments.exceptions import (
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from aiproxy_payments.modules.payments.services import gateway_client


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch):
    monkeypatch.setattr(gateway_client, "RETRY_BACKOFF_BASE", 0)
    monkeypatch.setattr(gateway_client, "RETRY_BACKOFF_429", 0)


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_ok_json(self, mock_gateway):
        gw = mock_gateway(PaymentProvider.STRIPE, lambda r: httpx.Response(200, json={"id": "pi_1"}))
        assert await gw.request_json("GET", "https://api.example.com/x", kind="query") == {"id": "pi_1"}

    @pytest.mark.asyncio
    async def test_timeout(self, mock_gateway):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        gw = mock_gateway(PaymentProvider.STRIPE, handler)
        with pytest.raises(UpstreamTimeout) as exc:
            await gw.request("POST", "https://api.example.com/x")
        assert exc.value.provider == PaymentProvider.STRIPE

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self, mock_gateway):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        gw = mock_gateway(PaymentProvider.ALIPAY, handler)
        with pytest.raises(UpstreamUnavailable):
            await gw.request("POST", "https://api.example.com/x")

    @pytest.mark.asyncio
    async def test_client_error_is_rejected_with_upstream_code(self, mock_gateway):
        body = {"error": {"message": "Invalid amount", "code": "parameter_invalid_integer"}}
        gw = mock_gateway(PaymentProvider.STRIPE, lambda r: httpx.Response(400, json=body))
        with pytest.raises(UpstreamRejected) as exc:
            await gw.request("POST", "https://api.example.com/x")
        assert exc.value.status_code == 400
        assert exc.value.upstream_code == "parameter_invalid_integer"
        assert exc.value.message == "Invalid amount"

    @pytest.mark.asyncio
    async def test_wechat_error_shape(self, mock_gateway):
        body = {"code": "PARAM_ERROR", "message": "appid无效"}
        gw = mock_gateway(PaymentProvider.WECHAT_PAY, lambda r: httpx.Response(400, json=body))
        with pytest.raises(UpstreamRejected) as exc:
            await gw.request("POST", "https://api.example.com/x")
        assert exc.value.upstream_code == "PARAM_ERROR"

    @pytest.mark.asyncio
    async def test_non_json_body_on_request_json(self, mock_gateway):
        gw = mock_gateway(PaymentProvider.STRIPE, lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(UpstreamRejected):
            await gw.request_json("GET", "https://api.example.com/x", kind="query")

    @pytest.mark.asyncio
    async def test_empty_body_is_empty_dict(self, mock_gateway):
        gw = mock_gateway(PaymentProvider.WECHAT_PAY, lambda r: httpx.Response(204))
        assert await gw.request_json("POST", "https://api.example.com/close") == {}


class TestRetries:
    @pytest.mark.asyncio
    async def test_query_retries_once_on_transient(self, mock_gateway):
        responses = iter([httpx.Response(503), httpx.Response(200, json={"ok": True})])
        gw = mock_gateway(PaymentProvider.ALIPAY, lambda r: next(responses))

        assert await gw.request_json("GET", "https://api.example.com/q", kind="query") == {"ok": True}
        assert len(gw.requests) == 2

    @pytest.mark.asyncio
    async def test_query_gives_up_after_one_retry(self, mock_gateway):
        gw = mock_gateway(PaymentProvider.ALIPAY, lambda r: httpx.Response(429))
        with pytest.raises(UpstreamUnavailable) as exc:
            await gw.request("GET", "https://api.example.com/q", kind="query")
        assert exc.value.status_code == 429
        assert len(gw.requests) == 2

    @pytest.mark.asyncio
    async def test_submit_is_never_retried(self, mock_gateway):
        gw = mock_gateway(PaymentProvider.STRIPE, lambda r: httpx.Response(503))
        with pytest.raises(UpstreamUnavailable):
            await gw.request("POST", "https://api.example.com/x")
        assert len(gw.requests) == 1

    @pytest.mark.asyncio
    async def test_permanent_error_on_query_is_not_retried(self, mock_gateway):
        gw = mock_gateway(PaymentProvider.STRIPE, lambda r: httpx.Response(404, json={"message": "no"}))
        with pytest.raises(UpstreamRejected):
            await gw.request("GET", "https://api.example.com/q", kind="query")
        assert len(gw.requests) == 1

# Fin del archivo tests/modules/payments/services/test_gateway_client.py
