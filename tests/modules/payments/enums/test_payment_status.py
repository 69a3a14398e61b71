# -*- coding: utf-8 -*-
"""
tests/modules/payments/enums/test_payment_status.py

Máquina de estados unificada y mapeo de estados remotos por proveedor.

Autor: Equipo AIProxy
Fecha: 2026-09-15
"""

import pytest

from aiproxy_payments.modules.payments.enums import (
    TERMINAL_STATUSES,
    PaymentProvider,
    PaymentStatus,
)
from aiproxy_payments.modules.payments.providers.alipay_provider import map_alipay_status
from aiproxy_payments.modules.payments.providers.stripe_provider import map_stripe_status
from aiproxy_payments.modules.payments.providers.wechat_pay_provider import map_wechat_status


class TestTransitions:
    """Tabla de transiciones permitidas."""

    def test_terminal_states(self):
        assert TERMINAL_STATUSES == {
            PaymentStatus.SUCCEEDED,
            PaymentStatus.FAILED,
            PaymentStatus.CANCELED,
            PaymentStatus.EXPIRED,
        }

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES))
    def test_terminal_never_moves(self, terminal):
        for target in PaymentStatus:
            assert not terminal.can_transition_to(target)

    def test_pending_reaches_everything_but_itself(self):
        for target in PaymentStatus:
            assert PaymentStatus.PENDING.can_transition_to(target) == (target != PaymentStatus.PENDING)

    def test_processing_only_to_terminal(self):
        assert not PaymentStatus.PROCESSING.can_transition_to(PaymentStatus.PENDING)
        assert not PaymentStatus.PROCESSING.can_transition_to(PaymentStatus.REQUIRES_ACTION)
        assert PaymentStatus.PROCESSING.can_transition_to(PaymentStatus.SUCCEEDED)

    def test_requires_action_to_processing_or_failed(self):
        assert PaymentStatus.REQUIRES_ACTION.can_transition_to(PaymentStatus.PROCESSING)
        assert PaymentStatus.REQUIRES_ACTION.can_transition_to(PaymentStatus.FAILED)
        assert not PaymentStatus.REQUIRES_ACTION.can_transition_to(PaymentStatus.PENDING)

    def test_predecessors_of_succeeded(self):
        assert PaymentStatus.predecessors_of(PaymentStatus.SUCCEEDED) == {
            PaymentStatus.PENDING,
            PaymentStatus.PROCESSING,
            PaymentStatus.REQUIRES_ACTION,
        }

    def test_values_are_wire_strings(self):
        assert str(PaymentStatus.REQUIRES_ACTION) == "requires_action"
        assert PaymentProvider("wechat_pay") is PaymentProvider.WECHAT_PAY


class TestRemoteStatusMaps:
    """Ningún estado desconocido se interpreta como éxito."""

    @pytest.mark.parametrize(
        "remote,expected",
        [
            ("requires_payment_method", PaymentStatus.PENDING),
            ("requires_confirmation", PaymentStatus.PENDING),
            ("requires_action", PaymentStatus.REQUIRES_ACTION),
            ("processing", PaymentStatus.PROCESSING),
            ("requires_capture", PaymentStatus.PROCESSING),
            ("canceled", PaymentStatus.CANCELED),
            ("succeeded", PaymentStatus.SUCCEEDED),
        ],
    )
    def test_stripe(self, remote, expected):
        assert map_stripe_status(remote) == expected

    @pytest.mark.parametrize(
        "remote,expected",
        [
            ("WAIT_BUYER_PAY", PaymentStatus.PENDING),
            ("TRADE_CLOSED", PaymentStatus.CANCELED),
            ("TRADE_SUCCESS", PaymentStatus.SUCCEEDED),
            ("TRADE_FINISHED", PaymentStatus.SUCCEEDED),
        ],
    )
    def test_alipay(self, remote, expected):
        assert map_alipay_status(remote) == expected

    @pytest.mark.parametrize(
        "remote,expected",
        [
            ("SUCCESS", PaymentStatus.SUCCEEDED),
            ("REFUND", PaymentStatus.SUCCEEDED),
            ("NOTPAY", PaymentStatus.PENDING),
            ("CLOSED", PaymentStatus.CANCELED),
            ("REVOKED", PaymentStatus.CANCELED),
            ("USERPAYING", PaymentStatus.PROCESSING),
            ("PAYERROR", PaymentStatus.FAILED),
        ],
    )
    def test_wechat(self, remote, expected):
        assert map_wechat_status(remote) == expected

    @pytest.mark.parametrize("remote", [None, "", "SOMETHING_NEW", "success"])
    def test_unknown_is_never_succeeded(self, remote):
        assert map_stripe_status(remote) == PaymentStatus.FAILED
        assert map_alipay_status(remote) == PaymentStatus.PENDING
        assert map_wechat_status(remote) == PaymentStatus.PENDING

# Fin del archivo tests/modules/payments/enums/test_payment_status.py
