# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/enums/currency_enum.py

Monedas con tabla de unidades menores conocida.
JPY y KRW no tienen decimales (factor 1); el resto usa centavos (factor 100).
Una moneda fuera de la tabla se trata con factor 100.

Autor: Equipo AIProxy
Fecha: 2026-09-03
"""

from enum import StrEnum


class Currency(StrEnum):
    """Moneda operativa para cobros (código ISO 4217)."""

    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CNY = "CNY"
    HKD = "HKD"
    JPY = "JPY"
    KRW = "KRW"

    @property
    def minor_unit_factor(self) -> int:
        return MINOR_UNIT_FACTORS[self]


MINOR_UNIT_FACTORS = {
    Currency.USD: 100,
    Currency.EUR: 100,
    Currency.GBP: 100,
    Currency.CNY: 100,
    Currency.HKD: 100,
    Currency.JPY: 1,
    Currency.KRW: 1,
}

DEFAULT_MINOR_UNIT_FACTOR = 100


__all__ = ["Currency", "MINOR_UNIT_FACTORS", "DEFAULT_MINOR_UNIT_FACTOR"]

# Fin del archivo aiproxy_payments/modules/payments/enums/currency_enum.py
