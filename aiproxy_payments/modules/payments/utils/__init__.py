# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/utils/__init__.py
"""
