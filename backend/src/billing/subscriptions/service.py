"""
Subscription Service

Main orchestrator for subscription operations:
- Current-subscription lookup
- Trial provisioning (first access gets a 7-day trial)
- Activation after payment
- Plan catalogue
- Manual Pro upgrade for admins and testing

Reads here are lossy on purpose: a backend failure is logged and reported
as "no subscription" / "no plans" so pages can still render. Callers that
must not confuse the two (the payment adapter) use the store directly.
"""

import logging
from datetime import datetime
from typing import List, Optional

from backend.src.billing.domain import SubscriptionPlan, SubscriptionStatus, UserSubscription
from backend.src.billing.shared.config import DEFAULT_PLAN, PRO_PLAN_NAME
from backend.src.billing.shared.exceptions import StoreUnavailableError, SubscriptionExistsError
from backend.src.billing.store import BillingStore, billing_store

logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Unified subscription management service.

    Usage:
        from backend.src.billing.subscriptions import subscription_service

        # First access: read, provisioning a trial when the user has none
        subscription = await subscription_service.get_or_provision(user_id)

        # After a confirmed payment
        await subscription_service.activate(subscription.id, plan_id)
    """

    def __init__(self, store: BillingStore = None):
        self.store = store or billing_store

    # =========================================================================
    # Current subscription
    # =========================================================================

    async def get_current_subscription(self, user_id: str) -> Optional[UserSubscription]:
        """
        Get the user's current subscription.

        Store failures are logged and reported as None.
        """
        try:
            return await self.store.get_current_subscription(user_id)
        except StoreUnavailableError as e:
            logger.error(f"[SUBSCRIPTION] Error fetching subscription for {user_id}: {e}")
            return None

    async def provision_trial(self, user_id: str) -> Optional[str]:
        """
        Create a trial subscription via the create_trial_subscription procedure.

        Not idempotent by itself: calling it twice creates two rows. Use
        get_or_provision() unless the caller already checked.

        Returns:
            New subscription id, or None on failure
        """
        try:
            subscription_id = await self.store.create_trial_subscription(user_id)
        except StoreUnavailableError as e:
            logger.error(f"[SUBSCRIPTION] Error creating trial for {user_id}: {e}")
            return None

        logger.info(f"[SUBSCRIPTION] Trial created for {user_id}: {subscription_id}")
        return subscription_id

    async def get_or_provision(self, user_id: str) -> Optional[UserSubscription]:
        """
        Read the current subscription, provisioning a trial if there is none.

        Returns:
            The subscription, or None if it could not be read or created
        """
        subscription = await self.get_current_subscription(user_id)
        if subscription is not None:
            return subscription

        logger.info(f"[SUBSCRIPTION] No subscription for {user_id}, provisioning trial")
        if await self.provision_trial(user_id) is None:
            return None
        return await self.get_current_subscription(user_id)

    async def start_trial(self, user_id: str) -> UserSubscription:
        """
        Explicit trial request.

        Raises:
            SubscriptionExistsError: If the user already has a subscription
            StoreUnavailableError: If the store cannot be read or written
        """
        existing = await self.store.get_current_subscription(user_id)
        if existing is not None:
            raise SubscriptionExistsError(subscription_id=existing.id)

        await self.store.create_trial_subscription(user_id)
        subscription = await self.store.get_current_subscription(user_id)
        if subscription is None:
            raise StoreUnavailableError(
                message="Trial was created but could not be read back",
                operation="start_trial"
            )
        logger.info(f"[SUBSCRIPTION] Trial started for {user_id}: {subscription.id}")
        return subscription

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def activate(self, subscription_id: str, plan_id: str) -> bool:
        """Activate a subscription on a plan through activate_subscription."""
        try:
            activated = await self.store.activate_subscription(subscription_id, plan_id)
        except StoreUnavailableError as e:
            logger.error(f"[SUBSCRIPTION] Error activating {subscription_id}: {e}")
            return False

        if activated:
            logger.info(f"[SUBSCRIPTION] Activated {subscription_id} on plan {plan_id}")
        else:
            logger.warning(f"[SUBSCRIPTION] activate_subscription reported failure for {subscription_id}")
        return activated

    async def update_status(
        self,
        subscription_id: str,
        status: SubscriptionStatus,
        period_end: Optional[datetime] = None
    ) -> bool:
        """Plain status write for admin use. No transition checks are made."""
        try:
            return await self.store.update_subscription_status(subscription_id, status, period_end)
        except StoreUnavailableError as e:
            logger.error(f"[SUBSCRIPTION] Error updating {subscription_id} to {status.value}: {e}")
            return False

    async def can_make_calls(self, user_id: str) -> bool:
        """Server-side permission check (can_user_make_calls). False on error."""
        try:
            return await self.store.can_user_make_calls(user_id)
        except StoreUnavailableError as e:
            logger.error(f"[SUBSCRIPTION] Error checking permissions for {user_id}: {e}")
            return False

    # =========================================================================
    # Plans
    # =========================================================================

    async def list_plans(self) -> List[SubscriptionPlan]:
        """Active plans, cheapest first. Falls back to the built-in Pro plan."""
        try:
            plans = await self.store.list_active_plans()
        except StoreUnavailableError as e:
            logger.error(f"[SUBSCRIPTION] Error fetching plans: {e}")
            plans = []

        return plans or [DEFAULT_PLAN]

    async def get_plan(self, plan_id: str) -> Optional[SubscriptionPlan]:
        """
        Look up a stored plan by id.

        Only rows in the plans table answer; the built-in Pro plan is for
        display in list_plans and cannot be checked out. Store failures propagate.
        """
        return await self.store.get_plan(plan_id)

    async def get_pro_plan(self) -> Optional[SubscriptionPlan]:
        try:
            return await self.store.get_active_plan_by_name(PRO_PLAN_NAME)
        except StoreUnavailableError as e:
            logger.error(f"[SUBSCRIPTION] Error fetching Pro plan: {e}")
            return None

    # =========================================================================
    # Admin / testing
    # =========================================================================

    async def manual_upgrade_to_pro(self, user_id: str) -> bool:
        """
        Upgrade a user to the Pro plan without a payment.

        Returns:
            True if the subscription was activated
        """
        pro_plan = await self.get_pro_plan()
        if pro_plan is None:
            logger.warning("[SUBSCRIPTION] Pro plan not found, cannot upgrade")
            return False

        subscription = await self.get_or_provision(user_id)
        if subscription is None:
            return False

        return await self.activate(subscription.id, pro_plan.id)


# Global instance
subscription_service = SubscriptionService()
