"""
Subscription Domain Entity

Represents a user's subscription row with status tracking.
A user has at most one *current* subscription: the most recently created row.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .values import isoformat, parse_datetime


class SubscriptionStatus(Enum):
    """Possible subscription statuses."""
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


@dataclass
class UserSubscription:
    """
    Represents a user's subscription.

    Status moves trial -> active -> expired | cancelled in practice; nothing
    at this layer enforces the ordering.

    Attributes:
        id: Internal subscription ID
        user_id: Owning user ID
        status: Current subscription status
        plan_id: Plan the subscription is bound to (None while on trial)
        trial_start_date: Start of the trial window
        trial_end_date: End of the trial window
        current_period_start: Start of the current billing period
        current_period_end: End of the current billing period
        cancel_at_period_end: Whether subscription is set to cancel
        cancelled_at: When the subscription was cancelled (if applicable)
        created_at: When subscription was created
        updated_at: Last update timestamp
    """
    id: str
    user_id: str
    status: SubscriptionStatus
    plan_id: Optional[str] = None
    trial_start_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_trial(self) -> bool:
        return self.status == SubscriptionStatus.TRIAL

    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    @classmethod
    def from_dict(cls, data: dict) -> 'UserSubscription':
        """
        Create a UserSubscription from a database row or API payload.

        Args:
            data: Mapping with subscription columns

        Returns:
            UserSubscription instance

        Raises:
            ValueError: If the status is not a known subscription status
        """
        status = data.get('status', SubscriptionStatus.TRIAL.value)
        if not isinstance(status, SubscriptionStatus):
            status = SubscriptionStatus(status)

        return cls(
            id=str(data['id']),
            user_id=str(data['user_id']),
            status=status,
            plan_id=str(data['plan_id']) if data.get('plan_id') is not None else None,
            trial_start_date=parse_datetime(data.get('trial_start_date')),
            trial_end_date=parse_datetime(data.get('trial_end_date')),
            current_period_start=parse_datetime(data.get('current_period_start')),
            current_period_end=parse_datetime(data.get('current_period_end')),
            cancel_at_period_end=bool(data.get('cancel_at_period_end') or False),
            cancelled_at=parse_datetime(data.get('cancelled_at')),
            created_at=parse_datetime(data.get('created_at')),
            updated_at=parse_datetime(data.get('updated_at')),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'status': self.status.value,
            'plan_id': self.plan_id,
            'trial_start_date': isoformat(self.trial_start_date),
            'trial_end_date': isoformat(self.trial_end_date),
            'current_period_start': isoformat(self.current_period_start),
            'current_period_end': isoformat(self.current_period_end),
            'cancel_at_period_end': self.cancel_at_period_end,
            'cancelled_at': isoformat(self.cancelled_at),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
