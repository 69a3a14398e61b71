# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/services/gateway_client.py

Cliente HTTP hacia pasarelas de pago (httpx.AsyncClient con espera acotada).

- Timeouts explícitos: envío (creación/confirmación/reembolso) 15s, consulta 10s
- Clasificación de errores:
    httpx.TimeoutException       -> UpstreamTimeout (reintentable)
    httpx.TransportError / 429, 502, 503, 504 -> UpstreamUnavailable (reintentable)
    resto de 4xx/5xx             -> UpstreamRejected (definitivo)
- Reintento limitado (1) con backoff solo para consultas: las llamadas de
  envío no son idempotentes del lado de la pasarela.

El httpx.AsyncClient se puede inyectar (tests con httpx.MockTransport);
si no, el GatewayClient crea y posee el suyo.

Autor: Equipo AIProxy
Fecha: 2026-09-05
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Literal, Optional

import httpx

from aiproxy_payments.modules.payments.exceptions import (
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)


# =============================================================================
# TIMEOUTS / LÍMITES
# =============================================================================

DEFAULT_SUBMIT_TIMEOUT_SECONDS = 15.0
DEFAULT_QUERY_TIMEOUT_SECONDS = 10.0
CONNECT_TIMEOUT_SECONDS = 5.0

GATEWAY_HTTP_LIMITS = httpx.Limits(
    max_keepalive_connections=20,
    max_connections=50,
    keepalive_expiry=30.0,
)

# Códigos HTTP transitorios (reintento permitido en consultas)
TRANSIENT_HTTP_ERRORS = frozenset({429, 502, 503, 504})
MAX_TRANSIENT_RETRIES = 1
RETRY_BACKOFF_BASE = 0.5
RETRY_BACKOFF_429 = 2.0

RequestKind = Literal["submit", "query"]


def _build_timeout(total: float) -> httpx.Timeout:
    return httpx.Timeout(total, connect=min(CONNECT_TIMEOUT_SECONDS, total))


def _get_backoff_for_status(status_code: int, attempt: int) -> float:
    if status_code == 429:
        return RETRY_BACKOFF_429 * (2 ** attempt)
    return RETRY_BACKOFF_BASE * (2 ** attempt)


class GatewayClient:
    """Envoltura de httpx.AsyncClient con timeouts y errores tipados por proveedor."""

    def __init__(
        self,
        provider: str,
        client: Optional[httpx.AsyncClient] = None,
        *,
        submit_timeout: float = DEFAULT_SUBMIT_TIMEOUT_SECONDS,
        query_timeout: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
    ) -> None:
        self.provider = provider
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(limits=GATEWAY_HTTP_LIMITS)
        self._timeouts = {
            "submit": _build_timeout(submit_timeout),
            "query": _build_timeout(query_timeout),
        }

    async def request(
        self,
        method: str,
        url: str,
        *,
        kind: RequestKind = "submit",
        **kwargs: Any,
    ) -> httpx.Response:
        """Ejecuta la petición y devuelve una respuesta 2xx o lanza Upstream*."""
        attempts = MAX_TRANSIENT_RETRIES + 1 if kind == "query" else 1

        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method, url, timeout=self._timeouts[kind], **kwargs
                )
            except httpx.TimeoutException as e:
                logger.warning(f"[{self.provider}] Timeout en {method} {_strip_query(url)} ({kind})")
                raise UpstreamTimeout(
                    f"La pasarela no respondió a tiempo ({kind})",
                    provider=self.provider,
                ) from e
            except httpx.TransportError as e:
                logger.warning(f"[{self.provider}] Error de transporte en {method} {_strip_query(url)}: {e}")
                raise UpstreamUnavailable(
                    "No se pudo contactar a la pasarela",
                    provider=self.provider,
                ) from e

            if response.status_code in TRANSIENT_HTTP_ERRORS and attempt + 1 < attempts:
                backoff = _get_backoff_for_status(response.status_code, attempt)
                logger.warning(
                    f"[{self.provider}] HTTP {response.status_code} transitorio, "
                    f"reintentando en {backoff}s (intento {attempt + 1}/{attempts})"
                )
                await asyncio.sleep(backoff)
                continue

            self._raise_for_status(response)
            return response

        # Inalcanzable: el último intento siempre retorna o lanza
        raise UpstreamUnavailable("Reintentos agotados", provider=self.provider)

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        kind: RequestKind = "submit",
        **kwargs: Any,
    ) -> Dict[str, Any]:
        response = await self.request(method, url, kind=kind, **kwargs)
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamRejected(
                "Respuesta no JSON de la pasarela",
                provider=self.provider,
                status_code=response.status_code,
            ) from e
        if not isinstance(body, dict):
            raise UpstreamRejected(
                "Respuesta JSON inesperada de la pasarela",
                provider=self.provider,
                status_code=response.status_code,
            )
        return body

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        message, code = _extract_error(response)
        logger.error(f"[{self.provider}] HTTP {status}: {message}")
        if status in TRANSIENT_HTTP_ERRORS:
            raise UpstreamUnavailable(
                message, provider=self.provider, status_code=status, upstream_code=code
            )
        raise UpstreamRejected(
            message, provider=self.provider, status_code=status, upstream_code=code
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _strip_query(url: str) -> str:
    return url.split("?", 1)[0]


def _extract_error(response: httpx.Response) -> tuple[str, Optional[str]]:
    """
    Extrae mensaje/código de error en los formatos conocidos:
    Stripe {"error": {"message", "code"}}, WeChat {"code", "message"}.
    """
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}", None
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return str(err.get("message") or "Error de la pasarela"), err.get("code")
        if "message" in body:
            return str(body["message"]), body.get("code")
    return f"HTTP {response.status_code}", None


__all__ = [
    "GatewayClient",
    "TRANSIENT_HTTP_ERRORS",
    "DEFAULT_SUBMIT_TIMEOUT_SECONDS",
    "DEFAULT_QUERY_TIMEOUT_SECONDS",
]
# Fin del archivo aiproxy_payments/modules/payments/services/gateway_client.py
