"""
Billplz Payment Adapter

Trusted server-side component that turns an internal payment request into a
Billplz bill and records it as a pending payment.

Flow:
1. Check Billplz credentials and the request's required fields
2. Reuse a pending payment when the caller's idempotency key matches one
3. Make sure the user has a subscription to attach the payment to
4. Create the bill (amount in cents, callback + redirect URLs, user/plan refs)
5. Insert a pending payment keyed by the bill id
"""

import logging
from typing import Optional

from backend.core.conf import settings
from backend.src.billing.domain import CreatePaymentRequest, CreatePaymentResponse, Payment
from backend.src.billing.shared.config import (
    BILL_REFERENCE_1_LABEL,
    BILL_REFERENCE_2_LABEL,
    DEFAULT_CURRENCY,
    bill_description,
)
from backend.src.billing.shared.exceptions import (
    GatewayMisconfiguredError,
    InvalidRequestError,
    StoreUnavailableError,
)
from backend.src.billing.shared.formatting import to_minor_units
from backend.src.billing.store import BillingStore, NewPayment, billing_store
from backend.src.billing.payments.interfaces import PaymentGatewayInterface
from .client import BillplzClient

logger = logging.getLogger(__name__)


class BillplzPaymentAdapter(PaymentGatewayInterface):
    """
    Creates Billplz bills and pending payment rows.

    Usage:
        from backend.src.billing.external.billplz import billplz_adapter

        response = await billplz_adapter.create_payment(CreatePaymentRequest(
            user_id=user_id,
            plan_id='pro-monthly',
            amount=Decimal('1.00'),
            currency='MYR',
            customer_email='user@example.com',
            customer_name='Aisyah',
        ))
        # response.payment_url -> Billplz hosted page
    """

    def __init__(
        self,
        store: BillingStore = None,
        client: BillplzClient = None,
        collection_id: Optional[str] = None,
        callback_url: Optional[str] = None,
        redirect_url: Optional[str] = None
    ):
        self.store = store or billing_store
        self.client = client or BillplzClient()
        self.collection_id = collection_id if collection_id is not None else settings.BILLPLZ_COLLECTION_ID
        self.callback_url = callback_url or settings.billplz_callback_url
        self.redirect_url = redirect_url or settings.billplz_redirect_url

    def build_bill_payload(self, request: CreatePaymentRequest, amount_cents: int) -> dict:
        return {
            'collection_id': self.collection_id,
            'email': request.customer_email,
            'name': request.customer_name,
            'amount': amount_cents,
            'description': request.description or bill_description(request.plan_id),
            'callback_url': self.callback_url,
            'redirect_url': self.redirect_url,
            'reference_1_label': BILL_REFERENCE_1_LABEL,
            'reference_1': request.user_id,
            'reference_2_label': BILL_REFERENCE_2_LABEL,
            'reference_2': request.plan_id,
        }

    async def create_payment(
        self,
        request: CreatePaymentRequest,
        access_token: Optional[str] = None
    ) -> CreatePaymentResponse:
        """
        Open a Billplz payment for a plan.

        Args:
            request: Payment request from the session initiator
            access_token: Unused; in-process callers are already trusted

        Returns:
            CreatePaymentResponse with the bill id and hosted payment URL

        Raises:
            GatewayMisconfiguredError: Billplz API key or collection id missing
            InvalidRequestError: Required fields missing, amount not positive, or
                idempotency key already used for another plan or amount
            GatewayError: Billplz rejected the bill or could not be reached
            StoreUnavailableError: Subscription or payment could not be stored
        """
        if not self.client.is_configured or not self.collection_id:
            logger.error("[BILLPLZ] Billplz credentials not configured")
            raise GatewayMisconfiguredError()

        missing = request.missing_fields()
        if missing:
            raise InvalidRequestError(missing=missing)

        if request.idempotency_key:
            existing = await self.store.find_pending_payment_by_idempotency_key(
                request.user_id, request.idempotency_key
            )
            if existing is not None:
                if (existing.plan_id != request.plan_id
                        or to_minor_units(existing.amount) != to_minor_units(request.amount)):
                    logger.warning(
                        f"[BILLPLZ] Idempotency key {request.idempotency_key} already used for "
                        f"plan {existing.plan_id} at {existing.amount}; rejecting {request.plan_id}"
                    )
                    raise InvalidRequestError(message="Idempotency key already used for a different payment")
                logger.info(
                    f"[BILLPLZ] Reusing pending payment {existing.billplz_bill_id} "
                    f"for idempotency key {request.idempotency_key}"
                )
                return self._response_for_existing(existing, request)

        subscription_id = await self._ensure_subscription(request.user_id)

        amount_cents = to_minor_units(request.amount)
        payload = self.build_bill_payload(request, amount_cents)
        logger.info(
            f"[BILLPLZ] Creating bill for user {request.user_id}, plan {request.plan_id}, "
            f"amount={amount_cents}"
        )
        bill = await self.client.create_bill(payload)

        metadata = {
            'plan_id': request.plan_id,
            'billplz_collection_id': bill.get('collection_id', self.collection_id),
            'billplz_state': bill.get('state'),
        }
        if request.idempotency_key:
            metadata['idempotency_key'] = request.idempotency_key

        payment = await self.store.insert_payment(NewPayment(
            user_id=request.user_id,
            subscription_id=subscription_id,
            amount=request.amount,
            currency=request.currency or DEFAULT_CURRENCY,
            billplz_bill_id=bill['id'],
            billplz_url=bill['url'],
            metadata=metadata,
        ))
        logger.info(f"[BILLPLZ] Pending payment {payment.id} recorded for bill {bill['id']}")

        return CreatePaymentResponse(
            payment_id=bill['id'],
            payment_url=bill['url'],
            amount=int(bill.get('amount', amount_cents)),
            description=bill.get('description', payload['description']),
        )

    async def _ensure_subscription(self, user_id: str) -> str:
        """
        Return the user's current subscription id, provisioning a trial if absent.

        Uses strict reads: an unreachable store raises instead of looking like
        "no subscription", which would provision a duplicate trial.
        """
        subscription = await self.store.get_current_subscription(user_id)
        if subscription is not None:
            return subscription.id

        subscription_id = await self.store.create_trial_subscription(user_id)
        if subscription_id is None:
            raise StoreUnavailableError(
                message="Could not provision a subscription for the payment",
                operation="create_trial_subscription"
            )
        logger.info(f"[BILLPLZ] Provisioned trial {subscription_id} for {user_id} before payment")
        return subscription_id

    def _response_for_existing(self, payment: Payment, request: CreatePaymentRequest) -> CreatePaymentResponse:
        return CreatePaymentResponse(
            payment_id=payment.billplz_bill_id,
            payment_url=payment.billplz_url,
            amount=to_minor_units(payment.amount),
            description=request.description or bill_description(request.plan_id),
        )
