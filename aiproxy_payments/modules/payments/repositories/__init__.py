# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/repositories/__init__.py

Repositorios y puerto de persistencia del módulo Payments.
"""

from .billing_record_repository import BillingRecordRepository
from .billing_record_store import (
    BillingRecordStore,
    SqlAlchemyBillingRecordStore,
    TransitionOutcome,
    TransitionResult,
)
from .subscription_repository import SubscriptionPlanRepository, UserSubscriptionRepository

__all__ = [
    "BillingRecordRepository",
    "BillingRecordStore",
    "SqlAlchemyBillingRecordStore",
    "TransitionOutcome",
    "TransitionResult",
    "SubscriptionPlanRepository",
    "UserSubscriptionRepository",
]
