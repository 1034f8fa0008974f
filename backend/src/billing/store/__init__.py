"""
Billing Store Module

Data access for the billing tables.

Usage:
    from backend.src.billing.store import billing_store

    subscription = await billing_store.get_current_subscription(user_id)
"""

from backend.database.db import async_db_session

from .billing_store import BillingStore, NewPayment

# Global instance bound to the application's session factory
billing_store = BillingStore(async_db_session)

__all__ = [
    'BillingStore',
    'NewPayment',
    'billing_store',
]
