"""
External Integrations Module

Integration with the Billplz payment gateway.

Usage:
    from backend.src.billing.external.billplz import (
        billplz_adapter,
        billplz_webhook_service,
    )
"""
