# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/repositories/billing_record_repository.py

Repositorio para la tabla billing_records.

Responsabilidades:
- Búsqueda por (payment_id, provider), la llave de toda actualización
- UPDATE condicional por estado (cierra la carrera de webhooks duplicados)

Autor: Equipo AIProxy
Fecha: 2026-09-06
"""

from typing import Any, Dict, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.models.billing_record_models import BillingRecord
from aiproxy_payments.shared.database.repository import BaseRepository


class BillingRecordRepository(BaseRepository[BillingRecord]):
    def __init__(self) -> None:
        super().__init__(BillingRecord)

    # -----------------------------------------------------------
    # Búsquedas
    # -----------------------------------------------------------
    async def get_by_payment_id(
        self,
        session: AsyncSession,
        payment_id: str,
        provider: PaymentProvider,
    ) -> Optional[BillingRecord]:
        """Obtiene el registro del pago `payment_id` propiedad de `provider`."""
        stmt = select(BillingRecord).where(
            BillingRecord.payment_id == payment_id,
            BillingRecord.provider == provider,
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    # -----------------------------------------------------------
    # Escrituras de una sola fila
    # -----------------------------------------------------------
    async def conditional_update(
        self,
        session: AsyncSession,
        payment_id: str,
        provider: PaymentProvider,
        allowed_from: Iterable[PaymentStatus],
        values: Dict[str, Any],
    ) -> int:
        """
        UPDATE ... WHERE payment_id AND provider AND status IN allowed_from.

        Devuelve filas afectadas (0 o 1). Con 0, otro request ya movió el
        registro a un estado desde el que esta transición no aplica.
        """
        stmt = (
            update(BillingRecord)
            .where(
                BillingRecord.payment_id == payment_id,
                BillingRecord.provider == provider,
                BillingRecord.status.in_(list(allowed_from)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def update_fields(
        self,
        session: AsyncSession,
        payment_id: str,
        provider: PaymentProvider,
        values: Dict[str, Any],
    ) -> int:
        stmt = (
            update(BillingRecord)
            .where(
                BillingRecord.payment_id == payment_id,
                BillingRecord.provider == provider,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

# Fin del archivo aiproxy_payments/modules/payments/repositories/billing_record_repository.py
