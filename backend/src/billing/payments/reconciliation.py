"""
Reconciliation

Two halves of "what happened to this payment?":

- ReconciliationReader: answers the browser's return trip from Billplz. The
  payment row is the system of record; the redirect's ``paid`` flag is only
  used for immediate feedback while the callback has not landed yet.
- ReconciliationService: a sweep that asks Billplz about pending payments and
  settles them the same way the callback does, for callbacks that never
  arrived.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from backend.core.conf import settings
from backend.src.billing.domain import Payment, PaymentStatus
from backend.src.billing.domain.values import isoformat, parse_datetime
from backend.src.billing.external.billplz.client import BillplzClient
from backend.src.billing.external.billplz.signature import verify_signature
from backend.src.billing.external.billplz.webhooks import BillplzWebhookService, parse_paid_flag
from backend.src.billing.shared.config import PRO_PLAN_NAME
from backend.src.billing.shared.exceptions import (
    BillingError,
    ReconciliationError,
    StoreUnavailableError,
)
from backend.src.billing.shared.formatting import format_currency, format_date
from backend.src.billing.store import BillingStore, billing_store
from backend.src.billing.subscriptions import SubscriptionService, subscription_service
from .interfaces import ReconciliationManagerInterface

logger = logging.getLogger(__name__)

BILL_ID_PARAMS = ('billplz[id]', 'billplz_id', 'bill_id')
PAID_PARAMS = ('billplz[paid]', 'paid')
SIGNATURE_PARAMS = ('billplz[x_signature]', 'x_signature')

DISPLAY_PAID = 'paid'
DISPLAY_PROCESSING = 'processing'
DISPLAY_FAILED = 'failed'
DISPLAY_NOT_FOUND = 'not_found'


def _first(params: Mapping[str, Any], names) -> Optional[str]:
    for name in names:
        value = params.get(name)
        if value:
            return str(value)
    return None


@dataclass
class ReturnTrip:
    """Parameters Billplz puts on the browser redirect."""
    bill_id: Optional[str]
    paid_hint: bool
    x_signature: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def parse_return_params(params: Mapping[str, Any]) -> ReturnTrip:
    """
    Read the return-trip query parameters.

    Bill id comes from ``billplz[id]``, ``billplz_id`` or ``bill_id``; the paid
    flag from ``billplz[paid]`` or ``paid`` ('true' or '1' means paid).
    """
    return ReturnTrip(
        bill_id=_first(params, BILL_ID_PARAMS),
        paid_hint=parse_paid_flag(_first(params, PAID_PARAMS)),
        x_signature=_first(params, SIGNATURE_PARAMS),
        raw=dict(params),
    )


@dataclass
class ReconciliationResult:
    """
    Outcome of a return trip.

    Attributes:
        bill_id: Billplz bill id from the redirect
        payment: Stored payment row, None if unknown
        display_status: 'paid', 'processing', 'failed' or 'not_found'
        authoritative_status: Row status (None when there is no row)
        awaiting_confirmation: Redirect says paid but the row is still pending
        plan_name: Plan shown on the confirmation page
        signature_verified: Whether the redirect's X-Signature checked out
    """
    bill_id: str
    payment: Optional[Payment]
    display_status: str
    authoritative_status: Optional[str]
    awaiting_confirmation: bool = False
    plan_name: Optional[str] = None
    signature_verified: Optional[bool] = None

    def to_dict(self) -> dict:
        payment = None
        if self.payment is not None:
            payment = {
                'billplz_bill_id': self.payment.billplz_bill_id,
                'amount': str(self.payment.amount),
                'amount_display': format_currency(self.payment.amount, self.payment.currency),
                'currency': self.payment.currency,
                'status': self.payment.status.value,
                'paid_at': isoformat(self.payment.paid_at),
                'paid_at_display': format_date(self.payment.paid_at),
                'plan_name': self.plan_name,
                'payment_method': 'Billplz (Online Banking)',
            }
        return {
            'bill_id': self.bill_id,
            'display_status': self.display_status,
            'authoritative_status': self.authoritative_status,
            'awaiting_confirmation': self.awaiting_confirmation,
            'signature_verified': self.signature_verified,
            'payment': payment,
        }


class ReconciliationReader:
    """
    Reports a payment's outcome for the post-payment page.

    Usage:
        from backend.src.billing.payments import reconciliation_reader, parse_return_params

        result = await reconciliation_reader.read(parse_return_params(request.query_params), user_id=user_id)
    """

    def __init__(
        self,
        store: BillingStore = None,
        subscriptions: SubscriptionService = None,
        x_signature_key: Optional[str] = None
    ):
        self.store = store or billing_store
        self.subscriptions = subscriptions or subscription_service
        self.x_signature_key = x_signature_key if x_signature_key is not None else settings.BILLPLZ_X_SIGNATURE_KEY

    async def read(self, trip: ReturnTrip, user_id: Optional[str] = None) -> ReconciliationResult:
        """
        Look up the payment behind a return trip.

        With ``user_id`` a bill owned by another user reads as not found.

        Raises:
            ReconciliationError: If the redirect carries no bill id
        """
        if not trip.bill_id:
            raise ReconciliationError(message="Missing bill id")

        paid_hint = trip.paid_hint
        signature_verified = None
        if self.x_signature_key and trip.x_signature:
            signature_verified = verify_signature(trip.raw, self.x_signature_key, trip.x_signature)
            if not signature_verified:
                logger.warning(f"[RECONCILIATION] Redirect signature mismatch for bill {trip.bill_id}")
                paid_hint = False

        try:
            payment = await self.store.get_payment_by_bill_id(trip.bill_id, user_id=user_id)
        except StoreUnavailableError as e:
            logger.error(f"[RECONCILIATION] Error fetching payment for bill {trip.bill_id}: {e}")
            payment = None

        if payment is None:
            return ReconciliationResult(
                bill_id=trip.bill_id,
                payment=None,
                display_status=DISPLAY_NOT_FOUND,
                authoritative_status=None,
                signature_verified=signature_verified,
            )

        awaiting = False
        if payment.status == PaymentStatus.PAID:
            display = DISPLAY_PAID
        elif payment.status == PaymentStatus.PENDING:
            awaiting = paid_hint
            display = DISPLAY_PAID if paid_hint else DISPLAY_PROCESSING
        else:
            display = DISPLAY_FAILED

        if awaiting:
            logger.info(f"[RECONCILIATION] Bill {trip.bill_id} reported paid, awaiting callback")

        return ReconciliationResult(
            bill_id=trip.bill_id,
            payment=payment,
            display_status=display,
            authoritative_status=payment.status.value,
            awaiting_confirmation=awaiting,
            plan_name=await self._plan_name(payment),
            signature_verified=signature_verified,
        )

    async def _plan_name(self, payment: Payment) -> str:
        plan_id = payment.plan_id
        if not plan_id:
            return PRO_PLAN_NAME
        try:
            plan = await self.subscriptions.get_plan(plan_id)
        except StoreUnavailableError:
            plan = None
        return plan.name if plan else plan_id


class ReconciliationService(ReconciliationManagerInterface):
    """
    Settles pending payments whose callback never arrived.

    Should be run periodically (e.g., every 15 minutes via cron/scheduler)
    by calling POST /api/v1/billing/payments/reconcile with X-Reconcile-Token.

    Usage:
        from backend.src.billing.payments import reconciliation_service

        results = await reconciliation_service.reconcile_pending_payments(hours=24)
    """

    def __init__(
        self,
        store: BillingStore = None,
        client: BillplzClient = None,
        webhooks: BillplzWebhookService = None
    ):
        self.store = store or billing_store
        self.client = client or BillplzClient()
        self.webhooks = webhooks or BillplzWebhookService(store=self.store)

    async def reconcile_pending_payments(self, hours: int = 24) -> Dict:
        """
        Check pending Billplz payments from the last ``hours`` against Billplz.

        Paid bills are settled as paid (activating the subscription), deleted
        bills as failed; bills still due are left pending.

        Returns:
            Dict with checked, paid, failed, unchanged counts and errors
        """
        results = {
            'checked': 0,
            'paid': 0,
            'failed': 0,
            'unchanged': 0,
            'errors': []
        }

        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        try:
            pending: List[Payment] = await self.store.list_pending_payments(since)
        except StoreUnavailableError as e:
            logger.error(f"[RECONCILIATION] Could not list pending payments: {e}")
            results['errors'].append(f"Fatal error: {e.message}")
            return results

        if not pending:
            logger.info("[RECONCILIATION] No pending Billplz payments found")
            return results

        results['checked'] = len(pending)
        logger.info(f"[RECONCILIATION] Checking {len(pending)} pending payments")

        for payment in pending:
            bill_id = payment.billplz_bill_id
            try:
                bill = await self.client.get_bill(bill_id)
                state = bill.get('state')
                if parse_paid_flag(bill.get('paid')):
                    outcome = await self.webhooks.apply_outcome(
                        bill_id, paid=True, paid_at=parse_datetime(bill.get('paid_at')), state=state
                    )
                    key = 'paid' if outcome['status'] == 'processed' else 'unchanged'
                elif state == 'deleted':
                    outcome = await self.webhooks.apply_outcome(bill_id, paid=False, state=state)
                    key = 'failed' if outcome['status'] == 'processed' else 'unchanged'
                else:
                    key = 'unchanged'
                results[key] += 1
            except BillingError as e:
                logger.error(f"[RECONCILIATION] Error checking bill {bill_id}: {e}")
                results['errors'].append(f"{bill_id}: {e.message}")

        logger.info(
            f"[RECONCILIATION] Complete: checked={results['checked']}, paid={results['paid']}, "
            f"failed={results['failed']}, unchanged={results['unchanged']}"
        )
        return results
