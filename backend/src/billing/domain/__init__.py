"""Domain entities for billing module."""

from .checkout import AuthenticatedUser, CreatePaymentRequest, CreatePaymentResponse, PaymentSession
from .payment import Payment, PaymentStatus
from .plan import SubscriptionPlan
from .subscription import SubscriptionStatus, UserSubscription

__all__ = [
    'AuthenticatedUser',
    'CreatePaymentRequest',
    'CreatePaymentResponse',
    'Payment',
    'PaymentSession',
    'PaymentStatus',
    'SubscriptionPlan',
    'SubscriptionStatus',
    'UserSubscription',
]
