# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/__init__.py
"""
