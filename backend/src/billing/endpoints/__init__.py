"""
Billing Endpoints Module

API routes for billing operations.

Routers:
- account_state: Billing dashboard overview
- subscriptions: Plans, current subscription, trial, access checks
- payments: Checkout, payment history, return trip, reconciliation sweep
- billplz: Payment adapter and Billplz callback

Usage:
    from backend.src.billing.endpoints import billing_router

    app.include_router(billing_router, prefix="/billing")
"""

from fastapi import APIRouter

from .account_state import router as account_state_router
from .subscriptions import router as subscriptions_router
from .payments import router as payments_router
from .billplz import handle_billplz_callback, router as billplz_router
from .dependencies import get_current_user, get_current_user_id, verify_reconcile_token

# Create main billing router
billing_router = APIRouter()

# Include all sub-routers
billing_router.include_router(account_state_router)
billing_router.include_router(subscriptions_router)
billing_router.include_router(payments_router)
billing_router.include_router(billplz_router)

__all__ = [
    'billing_router',
    'account_state_router',
    'subscriptions_router',
    'payments_router',
    'billplz_router',
    'handle_billplz_callback',
    'get_current_user',
    'get_current_user_id',
    'verify_reconcile_token',
]
