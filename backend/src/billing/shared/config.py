"""
Billing Configuration

This module defines the trial window, the Pro plan and billing constants.

Usage:
    from backend.src.billing.shared.config import DEFAULT_PLAN, TRIAL_DURATION_DAYS

    print(DEFAULT_PLAN.price)  # Decimal('1.00')
"""

from decimal import Decimal

from backend.src.billing.domain import SubscriptionPlan


# =============================================================================
# TRIAL CONFIGURATION
# =============================================================================
# The window itself is set by the create_trial_subscription procedure; this
# value is only used for display and for tests.
TRIAL_DURATION_DAYS: int = 7


# =============================================================================
# CURRENCY / GATEWAY CONSTANTS
# =============================================================================
DEFAULT_CURRENCY: str = 'MYR'

# Billplz takes amounts in cents
MINOR_UNITS_PER_MAJOR: int = 100

PAYMENT_METHOD_BILLPLZ: str = 'billplz'

# Reference labels attached to every bill
BILL_REFERENCE_1_LABEL: str = 'user_id'
BILL_REFERENCE_2_LABEL: str = 'plan_id'


# =============================================================================
# PLAN DEFINITIONS
# =============================================================================
PRO_PLAN_NAME: str = 'Pro Plan'
DEFAULT_PLAN_ID: str = 'pro-monthly'

# Offered when the subscription_plans table has no active rows
DEFAULT_PLAN = SubscriptionPlan(
    id=DEFAULT_PLAN_ID,
    name=PRO_PLAN_NAME,
    price=Decimal('1.00'),
    currency=DEFAULT_CURRENCY,
    interval_type='month',
    description='Everything you need to publish without limits',
    features=[
        'Unlimited projects',
        'Custom domain support',
        'Priority support',
        'Advanced analytics',
        'API access',
        'No watermark',
    ],
    is_active=True,
)


def bill_description(plan_id: str) -> str:
    """Default bill description when the caller doesn't send one."""
    return f"Subscription - {plan_id}"
