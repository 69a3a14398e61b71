# -*- coding: utf-8 -*-
"""
aiproxy_payments/shared/__init__.py

Infraestructura compartida: configuración y base de datos.
"""
