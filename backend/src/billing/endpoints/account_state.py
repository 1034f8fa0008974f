"""
Account Overview Endpoint

Unified endpoint for the billing dashboard.
Combines subscription, trial state, plans and recent payments in one response.
"""

import asyncio
import logging
from typing import Dict

from fastapi import APIRouter, Depends, Query

from backend.src.billing.domain.values import isoformat
from backend.src.billing.shared.exceptions import StoreUnavailableError
from backend.src.billing.shared.formatting import format_currency, format_date
from backend.src.billing.store import billing_store
from backend.src.billing.subscriptions import (
    can_transact,
    has_active_subscription,
    remaining_trial_days,
    subscription_display_state,
    subscription_service,
)
from .dependencies import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["billing-account-state"])


@router.get("/overview")
async def get_overview(
    user_id: str = Depends(get_current_user_id),
    payments_limit: int = Query(10, ge=1, le=50, description="Recent payments to include")
) -> Dict:
    """
    Get the billing dashboard state.

    Single source of truth for the billing page:
    - Subscription and its display state (trial / active / expired / none)
    - Trial days remaining and key dates
    - Plans on offer
    - Recent payments

    A first visit provisions the trial.
    """
    subscription = await subscription_service.get_or_provision(user_id)
    plans, payments = await asyncio.gather(
        subscription_service.list_plans(),
        _recent_payments(user_id, payments_limit),
    )

    state = subscription_display_state(subscription)
    dates = {}
    if subscription is not None:
        dates = {
            'trial_start_date': isoformat(subscription.trial_start_date),
            'trial_end_date': isoformat(subscription.trial_end_date),
            'trial_start_display': format_date(subscription.trial_start_date),
            'trial_end_display': format_date(subscription.trial_end_date),
            'current_period_end': isoformat(subscription.current_period_end),
            'current_period_end_display': format_date(subscription.current_period_end),
        }

    return {
        'subscription': subscription.to_dict() if subscription else None,
        'state': state,
        'remaining_trial_days': remaining_trial_days(subscription),
        'can_transact': can_transact(subscription),
        'has_active_subscription': has_active_subscription(subscription),
        'show_plans': state != 'active',
        'dates': dates,
        'plans': [
            {**plan.to_dict(), 'price_display': format_currency(plan.price, plan.currency)}
            for plan in plans
        ],
        'payments': payments,
    }


async def _recent_payments(user_id: str, limit: int) -> list:
    try:
        payments = await billing_store.list_payments(user_id, limit=limit)
    except StoreUnavailableError as e:
        logger.error(f"[ACCOUNT_STATE] Error fetching payments for {user_id}: {e}")
        return []

    return [
        {
            **payment.to_dict(),
            'amount_display': format_currency(payment.amount, payment.currency),
            'created_at_display': format_date(payment.created_at),
        }
        for payment in payments
    ]
