# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/database/__init__.py
"""

from .base import Base, NAMING_CONVENTION, JSONVariant, enum_column
from .database import (
    build_engine,
    build_session_factory,
    get_async_session,
    get_session_factory,
    init_models,
    session_scope,
)
from .repository import BaseRepository

__all__ = [
    "Base",
    "NAMING_CONVENTION",
    "JSONVariant",
    "enum_column",
    "BaseRepository",
    "build_engine",
    "build_session_factory",
    "get_async_session",
    "get_session_factory",
    "init_models",
    "session_scope",
]
