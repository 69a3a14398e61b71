# -*- coding: utf-8 -*-
"""
aiproxy_payments/modules/payments/services/__init__.py

Servicios del módulo Payments (firmas, cliente de pasarelas, suscripciones,
PaymentManager). Importar desde los submódulos.
"""
