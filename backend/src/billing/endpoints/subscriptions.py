"""
Subscription Endpoints

API endpoints for plans, the current subscription and access checks.
"""

import logging
from typing import Dict

from fastapi import APIRouter, Depends

from backend.src.billing.domain import AuthenticatedUser
from backend.src.billing.shared.config import TRIAL_DURATION_DAYS
from backend.src.billing.subscriptions import (
    can_transact,
    has_active_subscription,
    is_trial_active,
    remaining_trial_days,
    subscription_display_state,
    subscription_service,
)
from .dependencies import get_current_user, get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["billing-subscriptions"])


@router.get("/plans")
async def list_plans() -> Dict:
    """Active plans, cheapest first."""
    plans = await subscription_service.list_plans()
    return {'plans': [plan.to_dict() for plan in plans]}


@router.get("/subscription")
async def get_subscription(user_id: str = Depends(get_current_user_id)) -> Dict:
    """
    Get the current subscription.

    A user seen for the first time is given a trial.
    """
    subscription = await subscription_service.get_or_provision(user_id)
    return {
        'subscription': subscription.to_dict() if subscription else None,
        'state': subscription_display_state(subscription),
        'remaining_trial_days': remaining_trial_days(subscription),
    }


@router.post("/subscription/trial", status_code=201)
async def start_trial(user_id: str = Depends(get_current_user_id)) -> Dict:
    """Explicitly start the trial. 409 if the user already has a subscription."""
    subscription = await subscription_service.start_trial(user_id)
    return {
        'success': True,
        'subscription': subscription.to_dict(),
        'trial_duration_days': TRIAL_DURATION_DAYS,
        'remaining_trial_days': remaining_trial_days(subscription),
    }


@router.get("/access")
async def get_access(user: AuthenticatedUser = Depends(get_current_user)) -> Dict:
    """
    Access check used to gate paid features and the community page.

    ``can_transact`` covers trial and paid users; ``has_active_subscription``
    is the stricter paid-only gate.
    """
    subscription = await subscription_service.get_current_subscription(user.id)
    return {
        'can_transact': can_transact(subscription),
        'has_active_subscription': has_active_subscription(subscription),
        'is_trial_active': is_trial_active(subscription),
        'remaining_trial_days': remaining_trial_days(subscription),
        'state': subscription_display_state(subscription),
    }
