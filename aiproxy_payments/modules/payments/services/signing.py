# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/services/signing.py

Primitivas criptográficas compartidas por los proveedores (funciones libres):

- canonical_query: cadena "k=v&k2=v2" ordenada y filtrada (Epay, Alipay)
- md5_sign: firma MD5 del agregador (cadena canónica + llave del comercio)
- rsa_sign / rsa_verify: RSA-SHA256 PKCS#1 v1.5 en base64 (Alipay RSA2, WeChat Pay)
- aead_decrypt: AES-256-GCM con nonce y associated_data explícitos (WeChat Pay)
- wechat_message: mensaje canónico "l1\\nl2\\n...\\n" de WeChat Pay v3

Las llaves RSA pueden llegar como PEM completo o como el cuerpo base64
desnudo que entregan las consolas de Alipay/WeChat.

Autor: Equipo AIProxy
Fecha: 2026-09-05
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import textwrap
from functools import lru_cache
from typing import Iterable, Mapping, Optional, Union

from cryptography.exceptions import InvalidSignature as CryptoInvalidSignature
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from aiproxy_payments.modules.payments.exceptions import ConfigurationError, DecryptionError

logger = logging.getLogger(__name__)

SIGN_FIELDS = ("sign", "sign_type")

BytesLike = Union[str, bytes]


def _to_bytes(value: BytesLike) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


# =============================================================================
# CADENAS CANÓNICAS
# =============================================================================

def canonical_query(
    params: Mapping[str, object],
    exclude: Iterable[str] = SIGN_FIELDS,
) -> str:
    """
    Ordena por llave, descarta `exclude` y valores vacíos/None, y une como k=v&...

    Los valores van sin URL-encoding: es la cadena que se firma, no la que viaja.

    Examples:
        >>> canonical_query({"b": "2", "a": "1", "sign": "x", "c": ""})
        'a=1&b=2'
    """
    skip = set(exclude)
    pairs = [
        (k, str(v))
        for k, v in params.items()
        if k not in skip and v is not None and str(v) != ""
    ]
    pairs.sort(key=lambda kv: kv[0])
    return "&".join(f"{k}={v}" for k, v in pairs)


def wechat_message(*lines: str) -> str:
    """
    Mensaje canónico de WeChat Pay v3: cada componente termina en "\\n".

    Examples:
        >>> wechat_message("GET", "/v3/x", "1", "N", "")
        'GET\\n/v3/x\\n1\\nN\\n\\n'
    """
    return "".join(f"{line}\n" for line in lines)


# =============================================================================
# MD5 (agregador)
# =============================================================================

def md5_sign(params: Mapping[str, object], merchant_key: str) -> str:
    """MD5 hex de canonical_query(params) + merchant_key (sin separador)."""
    message = canonical_query(params) + merchant_key
    return hashlib.md5(message.encode("utf-8")).hexdigest()


def md5_verify(params: Mapping[str, object], merchant_key: str, signature: Optional[str]) -> bool:
    if not isinstance(signature, str) or not signature:
        return False
    try:
        expected = md5_sign(params, merchant_key)
    except UnicodeEncodeError:
        return False
    provided = signature.strip().lower().encode("utf-8", "surrogatepass")
    return hmac.compare_digest(expected.encode("ascii"), provided)


# =============================================================================
# LLAVES RSA
# =============================================================================

def _wrap_pem(body: str, label: str) -> bytes:
    compact = "".join(body.split())
    wrapped = "\n".join(textwrap.wrap(compact, 64))
    return f"-----BEGIN {label}-----\n{wrapped}\n-----END {label}-----\n".encode("ascii")


@lru_cache(maxsize=32)
def load_private_key(key_text: str) -> rsa.RSAPrivateKey:
    """Carga una llave privada RSA (PEM PKCS#8/PKCS#1 o base64 desnudo)."""
    candidates = (
        [key_text.encode("utf-8")]
        if "-----BEGIN" in key_text
        else [_wrap_pem(key_text, "PRIVATE KEY"), _wrap_pem(key_text, "RSA PRIVATE KEY")]
    )
    for pem in candidates:
        try:
            key = serialization.load_pem_private_key(pem, password=None)
        except (ValueError, TypeError):
            continue
        if isinstance(key, rsa.RSAPrivateKey):
            return key
    raise ConfigurationError("Llave privada RSA inválida o no soportada")


@lru_cache(maxsize=32)
def load_public_key(key_text: str) -> rsa.RSAPublicKey:
    """Carga una llave pública RSA (PEM SubjectPublicKeyInfo o base64 desnudo)."""
    pem = key_text.encode("utf-8") if "-----BEGIN" in key_text else _wrap_pem(key_text, "PUBLIC KEY")
    try:
        key = serialization.load_pem_public_key(pem)
    except (ValueError, TypeError) as e:
        raise ConfigurationError("Llave pública RSA inválida") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise ConfigurationError("La llave pública no es RSA")
    return key


# =============================================================================
# RSA-SHA256
# =============================================================================

def rsa_sign(message: BytesLike, private_key_text: str) -> str:
    """Firma RSA-SHA256 PKCS#1 v1.5, devuelta en base64."""
    key = load_private_key(private_key_text)
    signature = key.sign(_to_bytes(message), padding.PKCS1v15(), hashes.SHA256())
    return base64.b64encode(signature).decode("ascii")


def rsa_verify(message: BytesLike, signature_b64: Optional[str], public_key_text: str) -> bool:
    """
    Verifica una firma RSA-SHA256 en base64.
    Devuelve False ante firma inválida o mal codificada; nunca lanza por datos
    entrantes (sí por llave mal configurada).
    """
    if not signature_b64:
        return False
    key = load_public_key(public_key_text)
    try:
        signature = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError, TypeError):
        logger.warning("[signing] Firma RSA con base64 inválido")
        return False
    try:
        key.verify(signature, _to_bytes(message), padding.PKCS1v15(), hashes.SHA256())
    except CryptoInvalidSignature:
        return False
    return True


# =============================================================================
# HMAC
# =============================================================================

def hmac_sha256_hex(secret: str, message: BytesLike) -> str:
    return hmac.new(secret.encode("utf-8"), _to_bytes(message), hashlib.sha256).hexdigest()


# =============================================================================
# AEAD (AES-256-GCM)
# =============================================================================

def aead_decrypt(
    key: str,
    nonce: str,
    ciphertext_b64: str,
    associated_data: Optional[str] = None,
) -> bytes:
    """
    Descifra AES-256-GCM autenticado.

    `ciphertext_b64` es base64(ciphertext || tag de 16 bytes), el formato de
    WeChat Pay. Cualquier fallo de autenticación o de formato lanza
    DecryptionError; nunca se devuelve texto parcial.
    """
    if not all(isinstance(v, str) for v in (nonce, ciphertext_b64)):
        raise DecryptionError("nonce y ciphertext deben ser texto")
    if associated_data is not None and not isinstance(associated_data, str):
        raise DecryptionError("associated_data debe ser texto")
    key_bytes = key.encode("utf-8")
    if len(key_bytes) != 32:
        raise DecryptionError("La llave AEAD debe tener 32 bytes")
    try:
        data = base64.b64decode(ciphertext_b64, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptionError("Ciphertext con base64 inválido") from e
    aad = associated_data.encode("utf-8") if associated_data else None
    try:
        return AESGCM(key_bytes).decrypt(nonce.encode("utf-8"), data, aad)
    except InvalidTag as e:
        raise DecryptionError("Autenticación AES-GCM fallida") from e
    except ValueError as e:
        # nonce vacío o ciphertext más corto que el tag
        raise DecryptionError(f"Parámetros AES-GCM inválidos: {e}") from e


__all__ = [
    "SIGN_FIELDS",
    "canonical_query",
    "wechat_message",
    "md5_sign",
    "md5_verify",
    "load_private_key",
    "load_public_key",
    "rsa_sign",
    "rsa_verify",
    "hmac_sha256_hex",
    "aead_decrypt",
]
# Fin del archivo aiproxy_payments/modules/payments/services/signing.py
