# -*- coding: utf-8 -*-
"""
aiproxy_payments/main.py

Punto de entrada del servicio de pagos AIProxy.

Ajustes clave:
- .env cargado antes de leer configuración (override solo fuera de producción)
- Logging plain/json según LOG_FORMAT (python-json-logger)
- Lifespan: crea tablas, inicializa el PaymentManager y lo deja en
  app.state.payment_manager; en shutdown cierra proveedores y engine
- Rutas /payments, /webhooks, /metrics y /health

Autor: Equipo AIProxy
Fecha: 2026-09-14
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
_ENVIRONMENT = os.getenv("PYTHON_ENV", "development").strip().strip('"').strip("'").lower()
load_dotenv(dotenv_path=_ENV_PATH, override=_ENVIRONMENT != "production")

import anyio
import httpx
import uvicorn
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from aiproxy_payments.core.logging import setup_logging
from aiproxy_payments.modules.payments.facades import initialize_payment_system
from aiproxy_payments.modules.payments.routes import router as payments_router
from aiproxy_payments.shared.config import PaymentsSettings, get_app_settings
from aiproxy_payments.shared.database import build_session_factory, init_models
from aiproxy_payments.shared.database.database import (
    check_database_health,
    dispose_engine,
    get_engine,
)

logger = logging.getLogger(__name__)


def create_app(
    *,
    payments_settings: Optional[PaymentsSettings] = None,
    engine: Optional[AsyncEngine] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Construye la aplicación FastAPI.

    Los parámetros permiten inyectar configuración, engine y cliente HTTP
    (tests); sin ellos se usan los globales derivados del entorno.
    """
    app_settings = get_app_settings()
    setup_logging(level=app_settings.log_level, fmt=app_settings.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ────────── STARTUP ──────────
        db_engine = engine or get_engine()
        await init_models(db_engine)
        app.state.db_engine = db_engine
        app.state.payment_manager = initialize_payment_system(
            settings=payments_settings,
            session_factory=build_session_factory(db_engine),
            http_client=http_client,
        )
        logger.info(f"🟢 {app_settings.app_name} iniciado ({app_settings.python_env})")
        try:
            yield
        finally:
            # ────────── SHUTDOWN ──────────
            with anyio.CancelScope(shield=True):
                await app.state.payment_manager.aclose()
                app.state.payment_manager = None
                if engine is None:
                    await dispose_engine()
            logger.info(f"🔴 {app_settings.app_name} apagado")

    app = FastAPI(
        title=app_settings.app_name,
        description="Pagos multi-proveedor: Stripe, Epay, Alipay y WeChat Pay",
        version=app_settings.app_version,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "payments", "description": "Creación y ciclo de vida de pagos"},
            {"name": "payments:webhooks", "description": "Notificaciones de pasarelas"},
            {"name": "payments-metrics", "description": "Exportación Prometheus"},
        ],
    )
    app.include_router(payments_router)

    @app.get("/health", tags=["health"])
    async def health():
        manager = getattr(app.state, "payment_manager", None)
        db_ok = await check_database_health(getattr(app.state, "db_engine", None))
        return {
            "status": "ok" if db_ok else "degraded",
            "database": db_ok,
            "payments_initialized": manager is not None,
            "payments_available": bool(manager and manager.has_available_providers()),
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "aiproxy_payments.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=_ENVIRONMENT == "development",
    )

# Fin del archivo aiproxy_payments/main.py
