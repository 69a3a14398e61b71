# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/repositories/billing_record_store.py

Puerto de persistencia que usan los proveedores (BillingRecordStore) y su
implementación SQLAlchemy.

Cada operación abre su propia transacción corta; todas las escrituras son de
una sola fila, llaveadas por (payment_id, provider). Las transiciones de
estado usan UPDATE condicional sobre los estados predecesores permitidos:

    APPLIED    la fila cambió de estado
    DUPLICATE  la fila ya estaba en el estado pedido (no-op idempotente)
    REJECTED   la transición no está permitida (p. ej. terminal -> otro)
    NOT_FOUND  no existe registro para ese (payment_id, provider)

Cuando la transición aplicada es a `succeeded`, la extensión de suscripción
corre en la misma transacción.

Autor: Equipo AIProxy
Fecha: 2026-09-06
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aiproxy_payments.modules.payments.enums import PaymentProvider, PaymentStatus
from aiproxy_payments.modules.payments.models.billing_record_models import BillingRecord
from aiproxy_payments.modules.payments.repositories.billing_record_repository import (
    BillingRecordRepository,
)
from aiproxy_payments.modules.payments.schemas import BillingRecordSnapshot, PaymentIntent
from aiproxy_payments.modules.payments.utils.datetime_helpers import utcnow

if TYPE_CHECKING:
    from aiproxy_payments.modules.payments.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


class TransitionOutcome(StrEnum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class TransitionResult:
    outcome: TransitionOutcome
    status: Optional[PaymentStatus] = None
    record: Optional[BillingRecordSnapshot] = None
    subscription_extended: bool = False

    @property
    def applied(self) -> bool:
        return self.outcome == TransitionOutcome.APPLIED


@runtime_checkable
class BillingRecordStore(Protocol):
    """Puerto de persistencia de BillingRecord."""

    async def create_from_intent(
        self,
        intent: PaymentIntent,
        description: Optional[str] = None,
    ) -> BillingRecordSnapshot:
        ...

    async def get(
        self,
        payment_id: str,
        provider: PaymentProvider,
    ) -> Optional[BillingRecordSnapshot]:
        ...

    async def transition(
        self,
        payment_id: str,
        provider: PaymentProvider,
        new_status: PaymentStatus,
        *,
        transaction_id: Optional[str] = None,
        metadata_patch: Optional[Mapping[str, Any]] = None,
    ) -> TransitionResult:
        ...

    async def patch_metadata(
        self,
        payment_id: str,
        provider: PaymentProvider,
        patch: Mapping[str, Any],
    ) -> bool:
        ...


class SqlAlchemyBillingRecordStore:
    """BillingRecordStore sobre SQLAlchemy async."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        subscriptions: Optional[SubscriptionService] = None,
        repo: Optional[BillingRecordRepository] = None,
    ) -> None:
        self._session_factory = session_factory
        self._subscriptions = subscriptions
        self._repo = repo or BillingRecordRepository()

    async def create_from_intent(
        self,
        intent: PaymentIntent,
        description: Optional[str] = None,
    ) -> BillingRecordSnapshot:
        now = utcnow()
        async with self._session_factory() as session:
            async with session.begin():
                record = await self._repo.create(
                    session,
                    user_id=intent.user_id or "",
                    provider=intent.provider,
                    payment_method=intent.payment_method,
                    amount=intent.amount,
                    currency=intent.currency,
                    status=intent.status,
                    description=description,
                    payment_id=intent.id,
                    plan_id=intent.plan_id,
                    subscription_id=intent.subscription_id,
                    record_metadata=dict(intent.metadata),
                    created_at=now,
                    updated_at=now,
                    expires_at=intent.expires_at,
                )
                snapshot = BillingRecordSnapshot.model_validate(record)
        logger.info(f"[billing] Registro creado {intent.provider}:{intent.id} ({intent.status})")
        return snapshot

    async def get(
        self,
        payment_id: str,
        provider: PaymentProvider,
    ) -> Optional[BillingRecordSnapshot]:
        async with self._session_factory() as session:
            record = await self._repo.get_by_payment_id(session, payment_id, provider)
            return BillingRecordSnapshot.model_validate(record) if record else None

    async def transition(
        self,
        payment_id: str,
        provider: PaymentProvider,
        new_status: PaymentStatus,
        *,
        transaction_id: Optional[str] = None,
        metadata_patch: Optional[Mapping[str, Any]] = None,
    ) -> TransitionResult:
        async with self._session_factory() as session:
            async with session.begin():
                record = await self._repo.get_by_payment_id(session, payment_id, provider)
                if record is None:
                    logger.warning(f"[billing] Sin registro para {provider}:{payment_id}")
                    return TransitionResult(TransitionOutcome.NOT_FOUND)

                current = record.status
                if current == new_status:
                    return TransitionResult(
                        TransitionOutcome.DUPLICATE,
                        status=current,
                        record=BillingRecordSnapshot.model_validate(record),
                    )
                if not current.can_transition_to(new_status):
                    logger.warning(
                        f"[billing] Transición rechazada {provider}:{payment_id} "
                        f"{current} -> {new_status}"
                    )
                    return TransitionResult(
                        TransitionOutcome.REJECTED,
                        status=current,
                        record=BillingRecordSnapshot.model_validate(record),
                    )

                values = self._transition_values(record, new_status, transaction_id, metadata_patch)
                updated = await self._repo.conditional_update(
                    session,
                    payment_id,
                    provider,
                    allowed_from=PaymentStatus.predecessors_of(new_status),
                    values=values,
                )
                await session.refresh(record)
                snapshot = BillingRecordSnapshot.model_validate(record)

                if updated != 1:
                    # Otro request ganó la carrera entre la lectura y el UPDATE
                    outcome = (
                        TransitionOutcome.DUPLICATE
                        if snapshot.status == new_status
                        else TransitionOutcome.REJECTED
                    )
                    logger.info(
                        f"[billing] UPDATE condicional sin efecto {provider}:{payment_id} "
                        f"(estado actual {snapshot.status})"
                    )
                    return TransitionResult(outcome, status=snapshot.status, record=snapshot)

                extended = False
                if new_status == PaymentStatus.SUCCEEDED and self._subscriptions is not None:
                    extended = await self._subscriptions.extend_for_payment(session, snapshot)

        logger.info(f"[billing] {provider}:{payment_id} {current} -> {new_status}")
        return TransitionResult(
            TransitionOutcome.APPLIED,
            status=new_status,
            record=snapshot,
            subscription_extended=extended,
        )

    async def patch_metadata(
        self,
        payment_id: str,
        provider: PaymentProvider,
        patch: Mapping[str, Any],
    ) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                record = await self._repo.get_by_payment_id(session, payment_id, provider)
                if record is None:
                    return False
                merged = {**(record.record_metadata or {}), **patch}
                updated = await self._repo.update_fields(
                    session,
                    payment_id,
                    provider,
                    {"record_metadata": merged, "updated_at": utcnow()},
                )
        return updated == 1

    @staticmethod
    def _transition_values(
        record: BillingRecord,
        new_status: PaymentStatus,
        transaction_id: Optional[str],
        metadata_patch: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        now = utcnow()
        values: Dict[str, Any] = {"status": new_status, "updated_at": now}
        if new_status == PaymentStatus.SUCCEEDED:
            values["completed_at"] = now
            if transaction_id:
                values["transaction_id"] = transaction_id
        elif new_status == PaymentStatus.FAILED:
            values["failed_at"] = now
        if metadata_patch:
            values["record_metadata"] = {**(record.record_metadata or {}), **metadata_patch}
        return values


__all__ = [
    "BillingRecordStore",
    "SqlAlchemyBillingRecordStore",
    "TransitionOutcome",
    "TransitionResult",
]
# Fin del archivo aiproxy_payments/modules/payments/repositories/billing_record_store.py
