"""
Subscriptions Module

Subscription management for the billing system.

Components:
- policy: pure trial / access decisions over a subscription snapshot
- SubscriptionService: lookup, trial provisioning, activation, plans

Usage:
    from backend.src.billing.subscriptions import subscription_service, can_transact

    subscription = await subscription_service.get_or_provision(user_id)
    if can_transact(subscription):
        ...
"""

from .policy import (
    can_transact,
    has_active_subscription,
    is_trial_active,
    remaining_trial_days,
    subscription_display_state,
)
from .service import (
    SubscriptionService,
    subscription_service,
)

__all__ = [
    # Policy
    'can_transact',
    'has_active_subscription',
    'is_trial_active',
    'remaining_trial_days',
    'subscription_display_state',
    # Service
    'SubscriptionService',
    'subscription_service',
]
