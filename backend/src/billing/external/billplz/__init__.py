"""
Billplz Integration Module

Provides the Billplz gateway integration for billing:
- Async bills API client
- X-Signature computation and verification
- Payment adapter (bill creation + pending payment)
- Callback processing

Usage:
    from backend.src.billing.external.billplz import (
        billplz_adapter,
        billplz_webhook_service,
        verify_signature,
    )

    response = await billplz_adapter.create_payment(request)
    result = await billplz_webhook_service.process_callback(form)
"""

from .adapter import BillplzPaymentAdapter
from .client import BillplzClient
from .signature import (
    build_source_string,
    compute_signature,
    extract_signature,
    verify_signature,
)
from .webhooks import BillplzWebhookService, parse_paid_flag

# Global instances
billplz_client = BillplzClient()
billplz_adapter = BillplzPaymentAdapter(client=billplz_client)
billplz_webhook_service = BillplzWebhookService()

__all__ = [
    # Client
    'BillplzClient',
    'billplz_client',
    # Signature
    'build_source_string',
    'compute_signature',
    'extract_signature',
    'verify_signature',
    # Adapter
    'BillplzPaymentAdapter',
    'billplz_adapter',
    # Callbacks
    'BillplzWebhookService',
    'billplz_webhook_service',
    'parse_paid_flag',
]
