# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/services/webhooks/__init__.py
"""
