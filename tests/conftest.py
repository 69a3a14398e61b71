# -*- coding: utf-8 -*-
"""
tests/conftest.py

Config global de tests para AIProxy Payments.

- Engine aiosqlite sobre archivo temporal por test (tablas vía init_models)
- Store de BillingRecord con SubscriptionService
- Pares de llaves RSA generados con cryptography (comercio y plataforma)
- GatewayClient sobre httpx.MockTransport (sin red)

Autor: Equipo AIProxy
Fecha: 2026-09-15
"""

from decimal import Decimal
from typing import Callable, NamedTuple

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

import aiproxy_payments.modules.payments.models  # noqa: F401  (registra tablas)
from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.repositories import SqlAlchemyBillingRecordStore
from aiproxy_payments.modules.payments.schemas import PaymentIntent
from aiproxy_payments.modules.payments.services.gateway_client import GatewayClient
from aiproxy_payments.modules.payments.services.subscription_service import SubscriptionService
from aiproxy_payments.modules.payments.utils.datetime_helpers import utcnow
from aiproxy_payments.shared.config import reset_payments_settings
from aiproxy_payments.shared.database import build_engine, build_session_factory, init_models


class KeyPair(NamedTuple):
    private_pem: str
    public_pem: str


def _generate_keypair() -> KeyPair:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return KeyPair(private_pem, public_pem)


# -----------------------------------------------------------------------------
# Llaves RSA (generarlas es caro: una vez por sesión)
# -----------------------------------------------------------------------------
@pytest.fixture(scope="session")
def merchant_keys() -> KeyPair:
    """Llaves del comercio (firma peticiones salientes)."""
    return _generate_keypair()


@pytest.fixture(scope="session")
def platform_keys() -> KeyPair:
    """Llaves de la pasarela (firma notificaciones entrantes)."""
    return _generate_keypair()


# -----------------------------------------------------------------------------
# Base de datos
# -----------------------------------------------------------------------------
@pytest.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'payments_test.db'}")
    await init_models(eng)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return SqlAlchemyBillingRecordStore(session_factory, subscriptions=SubscriptionService())


@pytest.fixture
def make_intent() -> Callable[..., PaymentIntent]:
    """Fábrica de PaymentIntent mínimos para sembrar registros."""

    def _make(
        payment_id: str = "order_1",
        provider: PaymentProvider = PaymentProvider.EPAY,
        **overrides,
    ) -> PaymentIntent:
        data = dict(
            id=payment_id,
            provider=provider,
            amount=Decimal("99.00"),
            currency="CNY",
            status=PaymentStatus.PENDING,
            payment_url=f"https://pay.example.com/{payment_id}",
            user_id="user_1",
            created_at=utcnow(),
        )
        data.update(overrides)
        return PaymentIntent(**data)

    return _make


# -----------------------------------------------------------------------------
# HTTP simulado
# -----------------------------------------------------------------------------
@pytest.fixture
async def mock_gateway():
    """
    mock_gateway(provider, handler) -> GatewayClient cuyo transporte es
    httpx.MockTransport(handler). Registra las peticiones en `.requests`.
    """
    clients = []

    def _make(provider: PaymentProvider, handler: Callable[[httpx.Request], httpx.Response]):
        seen = []

        def _recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_recording))
        clients.append(client)
        gateway = GatewayClient(provider, client)
        gateway.requests = seen
        return gateway

    yield _make
    for client in clients:
        await client.aclose()


@pytest.fixture(autouse=True)
def _reset_settings():
    reset_payments_settings()
    yield
    reset_payments_settings()

# Fin del archivo tests/conftest.py
