"""
Checkout Contract

Request and response exchanged between the payment-session initiator and
the gateway adapter. Fields stay optional on the request so the adapter,
not the transport, decides what is missing.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional


def _optional_decimal(value) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


@dataclass
class CreatePaymentRequest:
    """
    Ask the adapter to open a payment for a plan.

    Attributes:
        user_id: Paying user
        plan_id: Plan being bought
        amount: Price in major units
        currency: ISO currency code
        description: Bill description shown by the gateway
        customer_email: Payee email
        customer_name: Payee display name
        idempotency_key: Optional key; a pending payment carrying it is reused
    """
    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    idempotency_key: Optional[str] = None

    def missing_fields(self) -> list:
        """Names of required fields that are absent, empty, non-finite or non-positive."""
        missing = []
        for name in ('user_id', 'plan_id', 'amount', 'customer_email', 'customer_name'):
            value = getattr(self, name)
            if name == 'amount':
                if value is None or not value.is_finite() or value <= 0:
                    missing.append(name)
            elif not value:
                missing.append(name)
        return missing

    @classmethod
    def from_dict(cls, data: dict) -> 'CreatePaymentRequest':
        return cls(
            user_id=data.get('user_id'),
            plan_id=data.get('plan_id'),
            amount=_optional_decimal(data.get('amount')),
            currency=data.get('currency'),
            description=data.get('description'),
            customer_email=data.get('customer_email'),
            customer_name=data.get('customer_name'),
            idempotency_key=data.get('idempotency_key'),
        )

    def to_dict(self) -> dict:
        data = {
            'user_id': self.user_id,
            'plan_id': self.plan_id,
            'amount': str(self.amount) if self.amount is not None else None,
            'currency': self.currency,
            'description': self.description,
            'customer_email': self.customer_email,
            'customer_name': self.customer_name,
        }
        if self.idempotency_key:
            data['idempotency_key'] = self.idempotency_key
        return data


@dataclass
class CreatePaymentResponse:
    """
    Adapter answer for a successfully opened payment.

    ``payment_id`` is the gateway's bill id and ``amount`` is in minor units.
    """
    payment_id: str
    payment_url: str
    amount: int
    description: Optional[str] = None
    success: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> 'CreatePaymentResponse':
        return cls(
            payment_id=str(data['payment_id']),
            payment_url=data['payment_url'],
            amount=int(data.get('amount') or 0),
            description=data.get('description'),
            success=bool(data.get('success', True)),
        )

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'payment_id': self.payment_id,
            'payment_url': self.payment_url,
            'amount': self.amount,
            'description': self.description,
        }


@dataclass(frozen=True)
class AuthenticatedUser:
    """The signed-in caller, as established by the auth boundary."""
    id: str
    email: Optional[str] = None
    access_token: Optional[str] = None


@dataclass
class PaymentSession:
    """What the initiator hands back: where to send the browser."""
    payment_id: str
    payment_url: str

    def to_dict(self) -> dict:
        return {'payment_id': self.payment_id, 'payment_url': self.payment_url}
