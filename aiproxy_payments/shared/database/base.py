# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/database/base.py

Base declarativa y convención de nombres para modelos ORM.

Este módulo proporciona:
- Base: clase base declarativa de SQLAlchemy
- NAMING_CONVENTION: convención de nombres para constraints
- JSONVariant: JSON genérico que en PostgreSQL se materializa como JSONB
- enum_column: helper para persistir StrEnum como VARCHAR portable

Autor: Equipo AIProxy
Fecha: 2026-09-03
"""

from __future__ import annotations

from enum import Enum
from typing import Type

from sqlalchemy import JSON, MetaData
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# ===== NAMING CONVENTION =====
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# JSON portable (SQLite en tests, JSONB en PostgreSQL)
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


# ===== BASE DECLARATIVA =====
class Base(DeclarativeBase):
    """
    Base declarativa para todos los modelos ORM.
    Incluye convención de nombres para constraints.
    """
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# ===== HELPER PARA ENUMS =====
def enum_column(enum_cls: Type[Enum], length: int = 32) -> SAEnum:
    """
    Devuelve un tipo Enum de SQLAlchemy guardado como VARCHAR (sin tipo nativo).

    Se persisten los *valores* del enum ("succeeded"), no los nombres
    ("SUCCEEDED"), para que las filas coincidan con lo que reportan las APIs.
    """
    def _values(_: object) -> list[str]:
        return [e.value for e in enum_cls]  # type: ignore[arg-type]

    return SAEnum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=length,
        values_callable=_values,
    )


__all__ = ["Base", "NAMING_CONVENTION", "JSONVariant", "enum_column"]

# Fin del archivo aiproxy_payments/shared/database/base.py
