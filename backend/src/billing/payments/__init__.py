"""
Payments Module

Handles subscription checkouts and payment reconciliation.

Components:
- PaymentService: Payment-session initiation (plan -> Billplz bill)
- AdapterClient: HTTP client for a separately deployed payment adapter
- ReconciliationReader: Post-payment return-trip lookup
- ReconciliationService: Sweep for pending payments

Usage:
    from backend.src.billing.payments import payment_service, reconciliation_service

    # Start checkout
    session = await payment_service.create_payment_session(user, plan_id)

    # Run reconciliation
    results = await reconciliation_service.reconcile_pending_payments()
"""

from .service import (
    PaymentService,
    get_payment_gateway,
    payment_service,
)

from .adapter_client import AdapterClient

from .reconciliation import (
    ReconciliationReader,
    ReconciliationResult,
    ReconciliationService,
    ReturnTrip,
    parse_return_params,
)

from .interfaces import (
    PaymentGatewayInterface,
    PaymentSessionInterface,
    ReconciliationManagerInterface,
)

reconciliation_reader = ReconciliationReader()
reconciliation_service = ReconciliationService()

__all__ = [
    # Services
    'PaymentService',
    'payment_service',
    'get_payment_gateway',
    'AdapterClient',
    'ReconciliationReader',
    'ReconciliationResult',
    'ReconciliationService',
    'ReturnTrip',
    'parse_return_params',
    'reconciliation_reader',
    'reconciliation_service',
    # Interfaces
    'PaymentGatewayInterface',
    'PaymentSessionInterface',
    'ReconciliationManagerInterface',
]
