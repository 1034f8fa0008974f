"""Row builders and fakes shared by the billing tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
USER_ID = '5b0c7d3e-1f2a-4c1b-9d7e-0a1b2c3d4e5f'
SUBSCRIPTION_ID = '9f1e2d3c-4b5a-4697-8a1b-2c3d4e5f6a7b'
PAYMENT_ID = '0c1d2e3f-4a5b-4c6d-8e9f-a0b1c2d3e4f5'


def subscription_row(**overrides) -> dict:
    """A user_subscriptions row for a trial that started at NOW."""
    row = {
        'id': SUBSCRIPTION_ID,
        'user_id': USER_ID,
        'status': 'trial',
        'plan_id': None,
        'trial_start_date': NOW,
        'trial_end_date': NOW + timedelta(days=7),
        'current_period_start': None,
        'current_period_end': None,
        'cancel_at_period_end': False,
        'cancelled_at': None,
        'created_at': NOW,
        'updated_at': NOW,
    }
    row.update(overrides)
    return row


def plan_row(**overrides) -> dict:
    row = {
        'id': 'pro-monthly',
        'name': 'Pro Plan',
        'price': Decimal('1.00'),
        'currency': 'MYR',
        'interval_type': 'month',
        'description': 'Everything you need',
        'features': ['Unlimited projects', 'API access'],
        'is_active': True,
    }
    row.update(overrides)
    return row


def payment_row(**overrides) -> dict:
    row = {
        'id': PAYMENT_ID,
        'user_id': USER_ID,
        'subscription_id': SUBSCRIPTION_ID,
        'amount': Decimal('1.00'),
        'currency': 'MYR',
        'status': 'pending',
        'payment_method': 'billplz',
        'billplz_bill_id': 'bill123',
        'billplz_url': 'https://www.billplz.com/bills/bill123',
        'stripe_payment_intent_id': None,
        'paid_at': None,
        'metadata': {'plan_id': 'pro-monthly', 'billplz_collection_id': 'col1', 'billplz_state': 'due'},
        'created_at': NOW,
    }
    row.update(overrides)
    return row


def mapping_result(rows=None, scalar=None) -> MagicMock:
    """Fake SQLAlchemy result answering ``mappings().first()/.all()`` and ``scalar()``."""
    rows = rows or []
    result = MagicMock()
    result.mappings.return_value.first.return_value = rows[0] if rows else None
    result.mappings.return_value.all.return_value = rows
    result.scalar.return_value = scalar
    return result
