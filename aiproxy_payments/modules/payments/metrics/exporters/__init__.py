# -*- coding: utf-8 -*-
"""Exporters de métricas de pagos."""
