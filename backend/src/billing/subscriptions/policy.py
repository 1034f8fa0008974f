"""
Trial / Status Policy

Pure decisions over a subscription snapshot. Nothing here performs I/O;
``now`` is injectable so callers (and tests) control the clock.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from backend.src.billing.domain import SubscriptionStatus, UserSubscription

ONE_DAY = timedelta(days=1)


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def is_trial_active(subscription: Optional[UserSubscription], now: Optional[datetime] = None) -> bool:
    """True iff the subscription is on trial and the trial ends strictly after ``now``."""
    if subscription is None or subscription.status != SubscriptionStatus.TRIAL:
        return False
    if subscription.trial_end_date is None:
        return False
    return subscription.trial_end_date > _now(now)


def remaining_trial_days(subscription: Optional[UserSubscription], now: Optional[datetime] = None) -> int:
    """
    Whole days left on the trial, rounded up.

    A trial ending in 1 second still counts as 1 day; an ended trial is 0.
    """
    if subscription is None or subscription.status != SubscriptionStatus.TRIAL:
        return 0
    if subscription.trial_end_date is None:
        return 0

    remaining = subscription.trial_end_date - _now(now)
    return max(0, math.ceil(remaining / ONE_DAY))


def can_transact(subscription: Optional[UserSubscription], now: Optional[datetime] = None) -> bool:
    """
    Whether the user may use paid functionality right now.

    Allowed during an unexpired trial, or while an active subscription's
    current period has not ended. Expired and cancelled subscriptions never
    qualify, and a missing end date counts as not allowed.
    """
    if subscription is None:
        return False

    current = _now(now)
    if subscription.status == SubscriptionStatus.TRIAL:
        return subscription.trial_end_date is not None and subscription.trial_end_date > current
    if subscription.status == SubscriptionStatus.ACTIVE:
        return subscription.current_period_end is not None and subscription.current_period_end > current
    return False


def has_active_subscription(subscription: Optional[UserSubscription]) -> bool:
    """Community gating: only paid (``active``) subscriptions unlock it."""
    return subscription is not None and subscription.status == SubscriptionStatus.ACTIVE


def subscription_display_state(subscription: Optional[UserSubscription], now: Optional[datetime] = None) -> str:
    """Dashboard label: ``trial``, ``active``, ``expired`` or ``none``."""
    if subscription is None:
        return 'none'
    if is_trial_active(subscription, now):
        return 'trial'
    if subscription.status == SubscriptionStatus.ACTIVE:
        return 'active'
    return 'expired'
