# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/database/database.py

SQLAlchemy async (asyncpg en producción, aiosqlite en desarrollo/tests).

Provee:
- build_engine / build_session_factory (construcción explícita, sin side effects al importar)
- get_engine / get_session_factory (instancias perezosas según AppSettings)
- Dependencia FastAPI: get_async_session
- context manager: session_scope()
- init_models() para crear tablas en entornos sin migraciones
- check_database_health()
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from aiproxy_payments.shared.config.settings_base import get_app_settings
from aiproxy_payments.shared.database.base import Base

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Crea un AsyncEngine; pool_pre_ping solo aplica fuera de SQLite."""
    kwargs = {"echo": echo, "future": True}
    if not url.startswith("sqlite"):
        kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_app_settings()
        _engine = build_engine(settings.database_url, echo=settings.db_echo_sql)
        logger.info(f"[DB] Engine creado ({_engine.dialect.name})")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


# ── Dependencia FastAPI
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        try:
            yield session
        except SQLAlchemyError:
            await session.rollback()
            raise


# ── Context manager reutilizable en scripts/tests
@asynccontextmanager
async def session_scope(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Abre una sesión y una transacción; commit al salir sin errores,
    rollback si el bloque lanza.
    """
    factory = session_factory or get_session_factory()
    async with factory() as session:
        async with session.begin():
            yield session


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    """Crea las tablas registradas en Base.metadata (idempotente)."""
    eng = engine or get_engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


# ── Health check
async def check_database_health(
    engine: Optional[AsyncEngine] = None,
    timeout_s: float = 3.0,
    sql: str = "SELECT 1",
) -> bool:
    """
    Verifica conectividad a la base de datos.

    Returns:
        True si la conexión es exitosa, False en caso contrario
    """
    try:
        async with asyncio.timeout(timeout_s):
            async with (engine or get_engine()).connect() as conn:
                await conn.execute(text(sql))
        return True
    except (SQLAlchemyError, OSError, TimeoutError) as e:
        logger.warning(f"[DB] Health check fallido: {e}")
        return False


__all__ = [
    "build_engine",
    "build_session_factory",
    "get_engine",
    "get_session_factory",
    "get_async_session",
    "session_scope",
    "init_models",
    "dispose_engine",
    "check_database_health",
]
# Fin del archivo aiproxy_payments/shared/database/database.py
