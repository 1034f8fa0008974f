"""
Billplz Endpoints

- create-payment: the payment adapter contract (JSON in, bill URL out)
- webhook: Billplz server-to-server callback (form-encoded)
"""

import logging
from decimal import Decimal
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from backend.src.billing.domain import AuthenticatedUser, CreatePaymentRequest
from backend.src.billing.external.billplz import billplz_adapter, billplz_webhook_service
from .dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billplz", tags=["billing-billplz"])


# ============================================================================
# Request Models
# ============================================================================

class CreatePaymentBody(BaseModel):
    """
    Adapter request body.

    Every field is optional here so that missing ones are reported as
    "Missing required fields" rather than a validation error.
    """
    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    idempotency_key: Optional[str] = None


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/create-payment")
async def create_payment(
    body: CreatePaymentBody,
    user: AuthenticatedUser = Depends(get_current_user)
) -> Dict:
    """
    Create a Billplz bill and a pending payment.

    Returns ``{success, payment_id, payment_url, amount, description}``;
    ``amount`` is in cents.
    """
    request = CreatePaymentRequest.from_dict(body.model_dump())
    logger.info(f"[BILLPLZ] create-payment called by {user.id} for user {request.user_id}")
    response = await billplz_adapter.create_payment(request)
    return response.to_dict()


async def handle_billplz_callback(request: Request) -> Dict:
    """Process a Billplz callback (form-encoded POST)."""
    form = await request.form()
    return await billplz_webhook_service.process_callback(dict(form))


router.add_api_route("/webhook", handle_billplz_callback, methods=["POST"])
