"""
Billplz Callback Service

Handles Billplz's server-to-server callback (form-encoded POST):
- Verifies the X-Signature
- Settles the pending payment exactly once (pending -> paid | failed)
- Activates the subscription when the bill was paid

The same settlement routine is used by the reconciliation sweep, so a bill
settled by one path is ignored by the other.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from backend.core.conf import settings
from backend.src.billing.domain import PaymentStatus
from backend.src.billing.domain.values import parse_datetime
from backend.src.billing.shared.exceptions import GatewayMisconfiguredError, WebhookError
from backend.src.billing.store import BillingStore, billing_store
from backend.src.billing.subscriptions import SubscriptionService, subscription_service
from .signature import verify_signature

logger = logging.getLogger(__name__)

TRUTHY_FLAGS = frozenset({'true', '1'})


def parse_paid_flag(value: Any) -> bool:
    """Billplz sends ``paid`` as 'true'/'false'; '1' is accepted too."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_FLAGS


class BillplzWebhookService:
    """
    Processes Billplz callbacks.

    Usage:
        from backend.src.billing.external.billplz import billplz_webhook_service

        form = await request.form()
        result = await billplz_webhook_service.process_callback(dict(form))
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

    async def process_callback(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Verify and apply a Billplz callback.

        Args:
            form: Callback form fields (id, paid, paid_at, state, x_signature, ...)

        Returns:
            Dict describing what was done ('processed' or 'ignored' with a reason)

        Raises:
            GatewayMisconfiguredError: If no X-Signature key is configured
            WebhookError: If the signature is missing/invalid or the bill id is absent
        """
        if not self.x_signature_key:
            logger.error("[WEBHOOK] BILLPLZ_X_SIGNATURE_KEY not configured")
            raise GatewayMisconfiguredError(message="Billplz X-Signature key not configured")

        bill_id = form.get('id')
        if not verify_signature(form, self.x_signature_key):
            logger.warning(f"[WEBHOOK] Invalid X-Signature for bill {bill_id}")
            raise WebhookError(message="Invalid X-Signature", code="INVALID_SIGNATURE", bill_id=bill_id)

        if not bill_id:
            raise WebhookError(message="Callback has no bill id", code="MALFORMED_PAYLOAD")

        paid = parse_paid_flag(form.get('paid'))
        logger.info(f"[WEBHOOK] Callback for bill {bill_id}: paid={paid} state={form.get('state')}")

        return await self.apply_outcome(
            bill_id,
            paid=paid,
            paid_at=parse_datetime(form.get('paid_at')),
            state=form.get('state'),
        )

    async def apply_outcome(
        self,
        bill_id: str,
        paid: bool,
        paid_at: Optional[datetime] = None,
        state: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Settle a pending payment and activate its subscription when paid.

        Final payments are left untouched, which makes repeated callbacks
        harmless.
        """
        payment = await self.store.get_payment_by_bill_id(bill_id)
        if payment is None:
            logger.warning(f"[WEBHOOK] Unknown bill {bill_id}")
            return {'status': 'ignored', 'reason': 'unknown_bill', 'bill_id': bill_id}

        if payment.is_final():
            logger.info(f"[WEBHOOK] Bill {bill_id} already {payment.status.value}, ignoring")
            return {'status': 'ignored', 'reason': 'already_final', 'bill_id': bill_id}

        new_status = PaymentStatus.PAID if paid else PaymentStatus.FAILED
        metadata_patch = {'billplz_state': state} if state else {}
        settled = await self.store.settle_pending_payment(
            bill_id,
            new_status,
            paid_at=(paid_at or datetime.now(timezone.utc)) if paid else None,
            metadata_patch=metadata_patch,
        )
        if settled is None:
            # Another callback or the sweep got there first
            logger.info(f"[WEBHOOK] Bill {bill_id} settled concurrently, ignoring")
            return {'status': 'ignored', 'reason': 'already_final', 'bill_id': bill_id}

        result = {
            'status': 'processed',
            'bill_id': bill_id,
            'payment_status': new_status.value,
            'subscription_activated': False,
        }
        if not paid:
            logger.info(f"[WEBHOOK] Payment {settled.id} for bill {bill_id} marked failed")
            return result

        if settled.subscription_id and settled.plan_id:
            result['subscription_activated'] = await self.subscriptions.activate(
                settled.subscription_id, settled.plan_id
            )
        else:
            logger.warning(
                f"[WEBHOOK] Payment {settled.id} paid but has no subscription/plan to activate "
                f"(subscription={settled.subscription_id}, plan={settled.plan_id})"
            )

        logger.info(
            f"[WEBHOOK] Payment {settled.id} for bill {bill_id} marked paid, "
            f"activated={result['subscription_activated']}"
        )
        return result
