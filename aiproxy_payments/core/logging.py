# -*- coding: utf-8 -*-
"""
aiproxy_payments/core/logging.py

Fachada de logging bajo `aiproxy_payments.core`; delega en
`aiproxy_payments.shared.config.logging_config`.
"""

from typing import Literal

from aiproxy_payments.shared.config.logging_config import setup_logging as _setup_logging


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO",
    fmt: Literal["plain", "pretty", "json"] = "plain",
) -> None:
    """
    Configura el sistema de logging de la aplicación.

    Args:
        level: Nivel de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: Formato de salida (plain, pretty, json).
    """
    _setup_logging(level=level, fmt=fmt)

# Fin del archivo aiproxy_payments/core/logging.py
