"""
Payment Service

Starts a checkout for a subscription plan via Billplz.
Flow:
1. Require a signed-in user with an email
2. Look up the plan (must exist and be active)
3. Work out the payee display name (full name, username, email local part)
4. Ask the payment adapter to open the bill
5. Hand back the bill id and the hosted payment URL

Nothing is written locally here; the adapter records the pending payment.
"""

import logging
from typing import Optional

from backend.core.conf import settings
from backend.src.billing.domain import AuthenticatedUser, CreatePaymentRequest, PaymentSession
from backend.src.billing.shared.exceptions import (
    PlanNotFoundError,
    StoreUnavailableError,
    UnauthenticatedError,
)
from backend.src.billing.store import BillingStore, billing_store
from backend.src.billing.subscriptions import SubscriptionService, subscription_service
from .adapter_client import AdapterClient
from .interfaces import PaymentGatewayInterface, PaymentSessionInterface

logger = logging.getLogger(__name__)


def get_payment_gateway() -> PaymentGatewayInterface:
    """
    Pick the adapter: a remote one when PAYMENT_ADAPTER_URL is set, otherwise
    the in-process Billplz adapter.
    """
    if settings.PAYMENT_ADAPTER_URL:
        return AdapterClient(settings.PAYMENT_ADAPTER_URL)

    from backend.src.billing.external.billplz import billplz_adapter
    return billplz_adapter


class PaymentService(PaymentSessionInterface):
    """
    Handles subscription checkouts.

    Usage:
        from backend.src.billing.payments import payment_service

        session = await payment_service.create_payment_session(user, 'pro-monthly')
        # redirect the browser to session.payment_url
    """

    def __init__(
        self,
        gateway: PaymentGatewayInterface = None,
        subscriptions: SubscriptionService = None,
        store: BillingStore = None
    ):
        self._gateway = gateway
        self.subscriptions = subscriptions or subscription_service
        self.store = store or billing_store

    @property
    def gateway(self) -> PaymentGatewayInterface:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    async def create_payment_session(
        self,
        user: Optional[AuthenticatedUser],
        plan_id: str,
        idempotency_key: Optional[str] = None
    ) -> PaymentSession:
        """
        Create a Billplz payment session for a plan.

        Args:
            user: Signed-in user
            plan_id: Plan to buy
            idempotency_key: Optional key; retrying with it reuses the pending bill

        Returns:
            PaymentSession with payment_id (bill id) and payment_url

        Raises:
            UnauthenticatedError: No user or the user has no email
            PlanNotFoundError: Plan missing or inactive
            GatewayError: Adapter or gateway failure, with a cause-specific message
        """
        if user is None or not user.id or not user.email:
            raise UnauthenticatedError()

        plan = await self.subscriptions.get_plan(plan_id)
        if plan is None or not plan.is_active:
            raise PlanNotFoundError(plan_id)

        customer_name = await self.resolve_payee_name(user)

        logger.info(f"[PAYMENT] Creating payment session for {user.id}, plan={plan.id}, amount={plan.price}")
        response = await self.gateway.create_payment(
            CreatePaymentRequest(
                user_id=user.id,
                plan_id=plan.id,
                amount=plan.price,
                currency=plan.currency,
                description=f"{plan.name} subscription",
                customer_email=user.email,
                customer_name=customer_name,
                idempotency_key=idempotency_key,
            ),
            access_token=user.access_token,
        )

        logger.info(f"[PAYMENT] Payment session {response.payment_id} created for {user.id}")
        return PaymentSession(payment_id=response.payment_id, payment_url=response.payment_url)

    async def resolve_payee_name(self, user: AuthenticatedUser) -> str:
        """Profile full name, then username, then the local part of the email."""
        try:
            profile = await self.store.get_profile(user.id)
        except StoreUnavailableError as e:
            logger.warning(f"[PAYMENT] Could not read profile for {user.id}: {e}")
            profile = None

        if profile:
            name = (profile.get('full_name') or '').strip() or (profile.get('username') or '').strip()
            if name:
                return name
        return user.email.split('@', 1)[0]


# Global instance
payment_service = PaymentService()
