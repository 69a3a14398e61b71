# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/models/__init__.py

Modelos ORM del módulo Payments (registro en Base.metadata al importar).
"""

from .billing_record_models import BillingRecord
from .subscription_models import SubscriptionPlan, UserSubscription

__all__ = ["BillingRecord", "SubscriptionPlan", "UserSubscription"]
