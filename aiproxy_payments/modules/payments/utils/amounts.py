# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/utils/amounts.py

Conversión entre unidades mayores (Decimal) y unidades menores (int).

    format_amount(Decimal("19.99"), "usd") -> 1999
    parse_amount(1999, "usd")              -> Decimal("19.99")
    format_amount(Decimal("500"), "jpy")   -> 500

parse_amount(format_amount(x, c), c) == x para todo x representable en la
unidad menor de c. Los montos con más precisión que la unidad menor se
rechazan en lugar de redondearse en silencio.

Autor: Equipo AIProxy
Fecha: 2026-09-03
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

from aiproxy_payments.modules.payments.enums.currency_enum import (
    DEFAULT_MINOR_UNIT_FACTOR,
    MINOR_UNIT_FACTORS,
    Currency,
)
from aiproxy_payments.modules.payments.exceptions import InvalidAmount

Number = Union[Decimal, int, str, float]


def minor_unit_factor(currency: str) -> int:
    """Factor de la moneda (1 para JPY/KRW, 100 para el resto y desconocidas)."""
    try:
        return MINOR_UNIT_FACTORS[Currency(currency.upper())]
    except ValueError:
        return DEFAULT_MINOR_UNIT_FACTOR


def to_decimal(amount: Number) -> Decimal:
    """Normaliza a Decimal; float pasa por str() para no heredar error binario."""
    if isinstance(amount, Decimal):
        value = amount
    else:
        try:
            value = Decimal(str(amount))
        except InvalidOperation as e:
            raise InvalidAmount(f"Monto inválido: {amount!r}") from e
    if not value.is_finite():
        raise InvalidAmount(f"Monto inválido: {amount!r}")
    return value


def format_amount(amount: Number, currency: str) -> int:
    """Unidades mayores -> unidades menores enteras."""
    value = to_decimal(amount) * minor_unit_factor(currency)
    if value != value.to_integral_value():
        raise InvalidAmount(
            f"El monto {amount} excede la precisión de {currency.upper()}"
        )
    return int(value)


def parse_amount(minor: Union[int, str], currency: str) -> Decimal:
    """Unidades menores enteras -> unidades mayores."""
    factor = minor_unit_factor(currency)
    value = Decimal(int(minor))
    if factor == 1:
        return value
    return (value / factor).quantize(Decimal(1) / factor)


def format_major(amount: Number, places: int = 2) -> str:
    """Monto con decimales fijos ("99.00") para pasarelas que lo piden así."""
    quantum = Decimal(1).scaleb(-places)
    return str(to_decimal(amount).quantize(quantum))


def format_compact(amount: Number) -> str:
    """
    Forma decimal más corta sin exponente ("99.00" -> "99", "9.50" -> "9.5").

    Examples:
        >>> format_compact(Decimal("99.00"))
        '99'
        >>> format_compact(Decimal("100"))
        '100'
    """
    value = to_decimal(amount).normalize()
    return format(value, "f")


def ensure_positive(amount: Number) -> Decimal:
    value = to_decimal(amount)
    if value <= 0:
        raise InvalidAmount(f"El monto debe ser mayor a cero (recibido {amount})")
    return value


__all__ = [
    "minor_unit_factor",
    "to_decimal",
    "format_amount",
    "parse_amount",
    "format_major",
    "format_compact",
    "ensure_positive",
]
# Fin del archivo aiproxy_payments/modules/payments/utils/amounts.py
