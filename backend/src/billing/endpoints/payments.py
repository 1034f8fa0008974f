"""
Payment Endpoints

API endpoints for checkout, payment history, the post-payment return trip
and the scheduled reconciliation sweep.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from backend.src.billing.domain import AuthenticatedUser
from backend.src.billing.payments import (
    parse_return_params,
    payment_service,
    reconciliation_reader,
    reconciliation_service,
)
from backend.src.billing.shared.formatting import format_currency, format_date
from backend.src.billing.store import billing_store
from .dependencies import get_current_user, get_current_user_id, verify_reconcile_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["billing-payments"])


# ============================================================================
# Request Models
# ============================================================================

class CheckoutRequest(BaseModel):
    """Request for a payment session."""
    plan_id: str = Field(..., min_length=1)
    idempotency_key: Optional[str] = Field(None, max_length=200)


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/checkout")
async def create_checkout(
    request: CheckoutRequest,
    user: AuthenticatedUser = Depends(get_current_user)
) -> Dict:
    """
    Create a Billplz payment session for a plan.

    Returns the hosted payment URL the browser should be sent to.
    """
    session = await payment_service.create_payment_session(
        user, request.plan_id, idempotency_key=request.idempotency_key
    )
    return {'success': True, **session.to_dict()}


@router.get("/payments")
async def list_payments(
    user_id: str = Depends(get_current_user_id),
    limit: int = Query(50, ge=1, le=100, description="Number of payments"),
    offset: int = Query(0, ge=0, description="Offset for pagination")
) -> Dict:
    """Payment history, newest first."""
    payments = await billing_store.list_payments(user_id, limit=limit, offset=offset)
    return {
        'payments': [
            {
                **payment.to_dict(),
                'amount_display': format_currency(payment.amount, payment.currency),
                'created_at_display': format_date(payment.created_at),
            }
            for payment in payments
        ],
        'pagination': {
            'limit': limit,
            'offset': offset,
            'has_more': len(payments) == limit
        }
    }


@router.get("/payments/return")
async def payment_return(
    request: Request,
    user_id: str = Depends(get_current_user_id)
) -> Dict:
    """
    Resolve Billplz's browser return trip for the confirmation page.

    The confirmation page forwards the ``billplz[id]``/``billplz[paid]``
    redirect parameters with the user's token. Bills owned by other users
    read as not found.
    """
    result = await reconciliation_reader.read(parse_return_params(request.query_params), user_id=user_id)
    return result.to_dict()


@router.post("/payments/reconcile", dependencies=[Depends(verify_reconcile_token)])
async def reconcile_payments(
    hours: int = Query(24, ge=1, le=720, description="Look back this many hours")
) -> Dict:
    """
    Settle pending payments whose Billplz callback never arrived.

    Called by a scheduler (e.g. hourly cron) with the ``X-Reconcile-Token``
    header, not by browsers.
    """
    results = await reconciliation_service.reconcile_pending_payments(hours=hours)
    return {'success': True, **results}
