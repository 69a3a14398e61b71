# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/utils/ids.py

Generación de identificadores de orden locales: {prefijo}_{epoch_ms}_{aleatorio}.
"""

import secrets
import string
import time

_ALPHABET = string.ascii_lowercase + string.digits


def generate_order_id(prefix: str, random_length: int = 9) -> str:
    """
    Examples:
        >>> generate_order_id("epay").startswith("epay_")
        True
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(random_length))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def generate_nonce(length: int = 32) -> str:
    """Nonce alfanumérico para firmas de WeChat Pay."""
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


__all__ = ["generate_order_id", "generate_nonce"]

# Fin del archivo aiproxy_payments/modules/payments/utils/ids.py
