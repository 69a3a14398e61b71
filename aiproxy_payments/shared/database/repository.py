# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/database/repository.py

Base de repositorios ORM: guarda el modelo y crea filas dentro de la
sesión del llamador (flush sin commit).

Autor: Equipo AIProxy
Fecha: 2026-09-03
"""

from typing import Generic, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    def __init__(self, model: Type[ModelT]):
        self.model = model

    async def create(self, session: AsyncSession, **values) -> ModelT:
        """Inserta y hace flush para que defaults e ids queden disponibles."""
        obj = self.model(**values)
        session.add(obj)
        await session.flush()
        return obj

# Fin del archivo aiproxy_payments/shared/database/repository.py
