"""
Billing Module

Subscription billing for the web app, with Billplz as the payment gateway.

Submodules:
- shared: Configuration, exceptions, money/date formatting
- domain: Core entities (SubscriptionPlan, UserSubscription, Payment)
- store: Typed access to the billing tables and procedures
- subscriptions: Trial/status policy and subscription service
- external: Billplz client, signature, adapter and callback handling
- payments: Payment-session initiation and reconciliation
- endpoints: API routes

Usage:
    from backend.src.billing.subscriptions import subscription_service, can_transact
    from backend.src.billing.payments import payment_service

    subscription = await subscription_service.get_or_provision(user_id)
    if not can_transact(subscription):
        session = await payment_service.create_payment_session(user, 'pro-monthly')
"""

from .shared.exceptions import (
    BillingError,
    GatewayError,
    PaymentError,
    SubscriptionError,
    WebhookError,
)

__all__ = [
    'BillingError',
    'GatewayError',
    'PaymentError',
    'SubscriptionError',
    'WebhookError',
]
