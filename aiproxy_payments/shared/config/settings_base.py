# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/config/settings_base.py

Configuración base de la aplicación (Pydantic v2).
- Núcleo de la app (nombre, entorno, logging).
- URL de base de datos para SQLAlchemy async.

Autor: Equipo AIProxy
Fecha: 2026-09-02
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Tipos de entorno soportados
EnvName = Literal["development", "test", "production"]


class AppSettings(BaseSettings):
    # =========================
    # Núcleo de la aplicación
    # =========================
    python_env: EnvName = Field(default="development", validation_alias="PYTHON_ENV")
    app_name: str = Field(default="AIProxy Payments", validation_alias="APP_NAME")
    app_version: str = Field(default="0.3.0", validation_alias="APP_VERSION")
    debug: bool = Field(default=False, validation_alias="DEBUG")

    # =========================
    # Logging
    # =========================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["plain", "pretty", "json"] = Field(
        default="plain", validation_alias="LOG_FORMAT"
    )

    # =========================
    # Base de datos
    # =========================
    db_url: Optional[str] = Field(default=None, validation_alias="DB_URL")
    db_echo_sql: bool = Field(default=False, validation_alias="DB_ECHO_SQL")

    @computed_field  # type: ignore[misc]
    @property
    def database_url(self) -> str:
        """
        URL de conexión para SQLAlchemy async.
        Normaliza esquemas postgres:// a postgresql+asyncpg://; sin DB_URL
        se usa un archivo SQLite local (aiosqlite).
        """
        if not self.db_url:
            return "sqlite+aiosqlite:///./payments.db"
        url = self.db_url
        if url.startswith("postgres://"):
            url = "postgresql+asyncpg://" + url[len("postgres://"):]
        elif url.startswith("postgresql://"):
            url = "postgresql+asyncpg://" + url[len("postgresql://"):]
        return url

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


_app_settings: Optional[AppSettings] = None


def get_app_settings() -> AppSettings:
    """Devuelve la instancia global (perezosa) de AppSettings."""
    global _app_settings
    if _app_settings is None:
        _app_settings = AppSettings()
    return _app_settings


__all__ = ["AppSettings", "EnvName", "get_app_settings"]

# Fin del archivo aiproxy_payments/shared/config/settings_base.py
