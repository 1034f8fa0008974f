"""
Payment Domain Entity

A payment is opened in ``pending`` state every time a checkout starts and
becomes final once the gateway reports an outcome.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from .values import isoformat, parse_datetime, parse_decimal


class PaymentStatus(Enum):
    """Possible payment statuses."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


FINAL_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.REFUNDED})


@dataclass
class Payment:
    """
    Represents a payment attempt.

    Attributes:
        id: Internal payment ID
        user_id: Owning user ID
        subscription_id: Subscription the payment is attached to
        amount: Amount in major currency units
        currency: ISO currency code
        status: Current payment status
        payment_method: Gateway tag ('billplz')
        billplz_bill_id: Billplz bill identifier
        billplz_url: Billplz hosted payment page
        stripe_payment_intent_id: External payment-intent id, if any
        paid_at: When the gateway confirmed payment
        metadata: Free-form metadata (plan_id, collection, state, ...)
        created_at: When the payment was opened
    """
    id: str
    user_id: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    subscription_id: Optional[str] = None
    payment_method: Optional[str] = None
    billplz_bill_id: Optional[str] = None
    billplz_url: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    metadata: Dict = field(default_factory=dict)
    created_at: Optional[datetime] = None

    def is_final(self) -> bool:
        """Check if the gateway has already reported an outcome."""
        return self.status in FINAL_PAYMENT_STATUSES

    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID

    @property
    def plan_id(self) -> Optional[str]:
        return self.metadata.get('plan_id')

    @classmethod
    def from_dict(cls, data: dict) -> 'Payment':
        status = data.get('status', PaymentStatus.PENDING.value)
        if not isinstance(status, PaymentStatus):
            status = PaymentStatus(status)

        metadata = data.get('metadata') or {}
        if isinstance(metadata, str):
            metadata = json.loads(metadata)

        subscription_id = data.get('subscription_id')
        return cls(
            id=str(data['id']),
            user_id=str(data['user_id']),
            amount=parse_decimal(data.get('amount')),
            currency=data.get('currency') or 'MYR',
            status=status,
            subscription_id=str(subscription_id) if subscription_id is not None else None,
            payment_method=data.get('payment_method'),
            billplz_bill_id=data.get('billplz_bill_id'),
            billplz_url=data.get('billplz_url'),
            stripe_payment_intent_id=data.get('stripe_payment_intent_id'),
            paid_at=parse_datetime(data.get('paid_at')),
            metadata=dict(metadata),
            created_at=parse_datetime(data.get('created_at')),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'subscription_id': self.subscription_id,
            'amount': str(self.amount),
            'currency': self.currency,
            'status': self.status.value,
            'payment_method': self.payment_method,
            'billplz_bill_id': self.billplz_bill_id,
            'billplz_url': self.billplz_url,
            'stripe_payment_intent_id': self.stripe_payment_intent_id,
            'paid_at': isoformat(self.paid_at),
            'metadata': self.metadata,
            'created_at': isoformat(self.created_at),
        }
