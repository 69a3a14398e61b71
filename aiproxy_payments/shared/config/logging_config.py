# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/config/logging_config.py

Configuración centralizada de logging.
Soporta formato plain (desarrollo) y json (producción, python-json-logger).

Autor: Equipo AIProxy
Fecha: 2026-09-02
"""

import importlib
import logging.config
from typing import Literal

# Loggers ruidosos de terceros que se bajan a WARNING
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")


def _json_formatter_path() -> str:
    """python-json-logger v3 movió jsonlogger -> json; se resuelve la ruta disponible."""
    try:
        importlib.import_module("pythonjsonlogger.json")
        return "pythonjsonlogger.json.JsonFormatter"
    except ModuleNotFoundError:  # pragma: no cover
        return "pythonjsonlogger.jsonlogger.JsonFormatter"


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO",
    fmt: Literal["plain", "pretty", "json"] = "plain"
) -> None:
    """
    Configura el sistema de logging de la aplicación.

    Args:
        level: Nivel de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: Formato de salida (plain, pretty, json)

    Ejemplos:
        >>> setup_logging("INFO", "plain")
        >>> setup_logging("WARNING", "json")
    """
    use_json = fmt == "json"

    formatters = {
        "default": {
            "format": "%(asctime)s %(levelname)s [%(name)s]: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "json": {
            "()": _json_formatter_path(),
            "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
        },
    }

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json" if use_json else "default",
            "stream": "ext://sys.stdout",
        }
    }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        "root": {
            "handlers": ["console"],
            "level": level.upper(),
        },
    }

    logging.config.dictConfig(logging_config)


__all__ = ["setup_logging"]
# Fin del archivo aiproxy_payments/shared/config/logging_config.py
