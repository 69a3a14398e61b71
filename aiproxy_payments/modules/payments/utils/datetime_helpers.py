# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/utils/datetime_helpers.py

Utilidades para timestamps consistentes.
Las pasarelas chinas (Alipay, WeChat Pay) esperan hora de Beijing (UTC+8).

Autor: Equipo AIProxy
Fecha: 2026-09-03
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

CHINA_TZ = timezone(timedelta(hours=8), name="UTC+08:00")


def utcnow() -> datetime:
    """
    Retorna el timestamp UTC actual (timezone-aware).

    Examples:
        >>> now = utcnow()
        >>> now.tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Asegura que un datetime sea UTC timezone-aware.
    Un datetime naive se interpreta como UTC (SQLite no conserva tzinfo).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    if dt.tzinfo != timezone.utc:
        return dt.astimezone(timezone.utc)
    return dt


def from_unix(seconds: Optional[int]) -> Optional[datetime]:
    """Epoch en segundos -> datetime UTC (None pasa como None)."""
    if seconds is None:
        return None
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def to_gateway_timestamp(dt: datetime) -> str:
    """
    Formato "YYYY-MM-DD HH:MM:SS" en hora de Beijing.

    Examples:
        >>> to_gateway_timestamp(datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc))
        '2026-01-01 08:00:00'
    """
    return ensure_utc(dt).astimezone(CHINA_TZ).strftime("%Y-%m-%d %H:%M:%S")


def to_rfc3339_china(dt: datetime) -> str:
    """
    RFC 3339 con offset +08:00 (time_expire de WeChat Pay).

    Examples:
        >>> to_rfc3339_china(datetime(2026, 1, 1, 0, 15, tzinfo=timezone.utc))
        '2026-01-01T08:15:00+08:00'
    """
    return ensure_utc(dt).astimezone(CHINA_TZ).replace(microsecond=0).isoformat()


__all__ = [
    "CHINA_TZ",
    "utcnow",
    "ensure_utc",
    "from_unix",
    "to_gateway_timestamp",
    "to_rfc3339_china",
]
# Fin del archivo aiproxy_payments/modules/payments/utils/datetime_helpers.py
