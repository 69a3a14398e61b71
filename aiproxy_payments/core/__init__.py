# -*- coding: utf-8 -*-
"""
aiproxy_payments/core/__init__.py

Fachadas de núcleo (logging).
"""
