# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/enums/payment_status_enum.py

Enum de estados del pago (máquina de estados unificada para todos los
proveedores) y tabla de transiciones permitidas.

    pending -> processing -> {succeeded | failed | canceled | expired}
    pending -> requires_action -> {processing | failed}

Un estado terminal nunca regresa a uno no terminal; un duplicado del mismo
estado terminal es un no-op.

Autor: Equipo AIProxy
Fecha: 2026-09-03
"""

from enum import StrEnum
from typing import FrozenSet, Mapping


class PaymentStatus(StrEnum):
    """Estado del pago en el ciclo de vida con el proveedor."""

    PENDING = "pending"
    PROCESSING = "processing"
    REQUIRES_ACTION = "requires_action"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, target: "PaymentStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]

    @classmethod
    def predecessors_of(cls, target: "PaymentStatus") -> FrozenSet["PaymentStatus"]:
        """Estados desde los que `target` es alcanzable (para UPDATE condicional)."""
        return frozenset(s for s, nexts in ALLOWED_TRANSITIONS.items() if target in nexts)


TERMINAL_STATUSES: FrozenSet[PaymentStatus] = frozenset({
    PaymentStatus.SUCCEEDED,
    PaymentStatus.FAILED,
    PaymentStatus.CANCELED,
    PaymentStatus.EXPIRED,
})

# requires_action admite saltar directo a terminal: las pasarelas pueden
# omitir la notificación intermedia de processing.
ALLOWED_TRANSITIONS: Mapping[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({
        PaymentStatus.PROCESSING,
        PaymentStatus.REQUIRES_ACTION,
        *TERMINAL_STATUSES,
    }),
    PaymentStatus.PROCESSING: TERMINAL_STATUSES,
    PaymentStatus.REQUIRES_ACTION: frozenset({
        PaymentStatus.PROCESSING,
        *TERMINAL_STATUSES,
    }),
    PaymentStatus.SUCCEEDED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELED: frozenset(),
    PaymentStatus.EXPIRED: frozenset(),
}


__all__ = ["PaymentStatus", "TERMINAL_STATUSES", "ALLOWED_TRANSITIONS"]

# Fin del archivo aiproxy_payments/modules/payments/enums/payment_status_enum.py
