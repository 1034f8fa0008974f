"""
Subscription Plan Domain Entity

Reference data describing what a user can buy. Plans are never mutated by
the billing code; only the ``is_active`` flag decides whether they can be
checked out.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from .values import parse_decimal


@dataclass(frozen=True)
class SubscriptionPlan:
    """
    A purchasable plan.

    Attributes:
        id: Plan identifier
        name: Display name (e.g., 'Pro Plan')
        price: Price in major currency units
        currency: ISO currency code
        interval_type: Billing interval ('month')
        description: Marketing description
        features: Feature bullet points
        is_active: Whether the plan can be purchased
    """
    id: str
    name: str
    price: Decimal
    currency: str = 'MYR'
    interval_type: str = 'month'
    description: Optional[str] = None
    features: List[str] = field(default_factory=list)
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> 'SubscriptionPlan':
        features = data.get('features') or []
        return cls(
            id=str(data['id']),
            name=data['name'],
            price=parse_decimal(data.get('price')),
            currency=data.get('currency') or 'MYR',
            interval_type=data.get('interval_type') or 'month',
            description=data.get('description'),
            features=[str(f) for f in features],
            is_active=bool(data.get('is_active', True)),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'price': str(self.price),
            'currency': self.currency,
            'interval_type': self.interval_type,
            'description': self.description,
            'features': list(self.features),
            'is_active': self.is_active,
        }
