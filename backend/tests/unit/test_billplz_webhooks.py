"""
Tests for Billplz callback processing.

Tests cover:
- X-Signature enforcement
- Unknown and already-settled bills
- Paid callbacks activating the subscription
- Unpaid callbacks failing the payment
- Losing the settle race to a concurrent callback or sweep
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from backend.src.billing.domain import Payment, PaymentStatus
from backend.src.billing.external.billplz import BillplzWebhookService, compute_signature, parse_paid_flag
from backend.src.billing.shared.exceptions import GatewayMisconfiguredError, WebhookError
from backend.tests.factories import SUBSCRIPTION_ID, payment_row

KEY = 'x-signature-key'


def signed_form(**fields) -> dict:
    form = {
        'id': 'bill123',
        'collection_id': 'col1',
        'paid': 'true',
        'state': 'paid',
        'amount': '100',
        'paid_amount': '100',
        'paid_at': '2026-03-01T12:30:00+08:00',
    }
    form.update(fields)
    form['x_signature'] = compute_signature(form, KEY)
    return form


@pytest.fixture
def subscriptions():
    service = MagicMock()
    service.activate = AsyncMock(return_value=True)
    return service


@pytest.fixture
def webhooks(mock_store, subscriptions):
    mock_store.get_payment_by_bill_id.return_value = Payment.from_dict(payment_row())
    mock_store.settle_pending_payment.return_value = Payment.from_dict(payment_row(status='paid'))
    return BillplzWebhookService(store=mock_store, subscriptions=subscriptions, x_signature_key=KEY)


class TestParsePaidFlag:
    """Tests for parse_paid_flag."""

    @pytest.mark.parametrize("value, expected", [
        ('true', True),
        ('TRUE', True),
        ('1', True),
        (True, True),
        ('false', False),
        ('0', False),
        ('', False),
        (None, False),
        (False, False),
    ])
    def test_values(self, value, expected):
        assert parse_paid_flag(value) is expected


class TestSignature:
    """Tests for callback authentication."""

    @pytest.mark.asyncio
    async def test_invalid_signature_is_rejected(self, webhooks, mock_store):
        form = signed_form()
        form['paid'] = 'false'

        with pytest.raises(WebhookError) as exc_info:
            await webhooks.process_callback(form)

        assert exc_info.value.code == 'INVALID_SIGNATURE'
        mock_store.get_payment_by_bill_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_signature_is_rejected(self, webhooks):
        form = signed_form()
        del form['x_signature']

        with pytest.raises(WebhookError):
            await webhooks.process_callback(form)

    @pytest.mark.asyncio
    async def test_unconfigured_key(self, mock_store, subscriptions):
        webhooks = BillplzWebhookService(store=mock_store, subscriptions=subscriptions, x_signature_key='')

        with pytest.raises(GatewayMisconfiguredError):
            await webhooks.process_callback(signed_form())

    @pytest.mark.asyncio
    async def test_signed_form_without_id(self, webhooks):
        form = {'paid': 'true'}
        form['x_signature'] = compute_signature(form, KEY)

        with pytest.raises(WebhookError) as exc_info:
            await webhooks.process_callback(form)

        assert exc_info.value.code == 'MALFORMED_PAYLOAD'


class TestPaidCallback:
    """Tests for paid=true callbacks."""

    @pytest.mark.asyncio
    async def test_settles_and_activates(self, webhooks, mock_store, subscriptions):
        result = await webhooks.process_callback(signed_form())

        assert result == {
            'status': 'processed',
            'bill_id': 'bill123',
            'payment_status': 'paid',
            'subscription_activated': True,
        }
        args, kwargs = mock_store.settle_pending_payment.await_args
        assert args == ('bill123', PaymentStatus.PAID)
        assert kwargs['paid_at'] == datetime(2026, 3, 1, 4, 30, tzinfo=timezone.utc)
        assert kwargs['metadata_patch'] == {'billplz_state': 'paid'}
        subscriptions.activate.assert_awaited_once_with(SUBSCRIPTION_ID, 'pro-monthly')

    @pytest.mark.asyncio
    async def test_paid_at_defaults_to_now(self, webhooks, mock_store):
        await webhooks.apply_outcome('bill123', paid=True)

        paid_at = mock_store.settle_pending_payment.await_args[1]['paid_at']
        assert paid_at is not None
        assert paid_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_payment_without_plan_is_settled_but_not_activated(self, webhooks, mock_store, subscriptions):
        mock_store.settle_pending_payment.return_value = Payment.from_dict(payment_row(status='paid', metadata={}))

        result = await webhooks.process_callback(signed_form())

        assert result['payment_status'] == 'paid'
        assert result['subscription_activated'] is False
        subscriptions.activate.assert_not_called()

    @pytest.mark.asyncio
    async def test_activation_failure_is_reported(self, webhooks, subscriptions):
        subscriptions.activate.return_value = False

        result = await webhooks.process_callback(signed_form())

        assert result['status'] == 'processed'
        assert result['subscription_activated'] is False


class TestUnpaidCallback:
    """Tests for paid=false callbacks."""

    @pytest.mark.asyncio
    async def test_marks_failed_without_activation(self, webhooks, mock_store, subscriptions):
        mock_store.settle_pending_payment.return_value = Payment.from_dict(payment_row(status='failed'))

        result = await webhooks.process_callback(signed_form(paid='false', state='due', paid_at=''))

        assert result['payment_status'] == 'failed'
        args, kwargs = mock_store.settle_pending_payment.await_args
        assert args == ('bill123', PaymentStatus.FAILED)
        assert kwargs['paid_at'] is None
        subscriptions.activate.assert_not_called()


class TestIgnored:
    """Tests for callbacks that change nothing."""

    @pytest.mark.asyncio
    async def test_unknown_bill(self, webhooks, mock_store):
        mock_store.get_payment_by_bill_id.return_value = None

        result = await webhooks.process_callback(signed_form())

        assert result == {'status': 'ignored', 'reason': 'unknown_bill', 'bill_id': 'bill123'}
        mock_store.settle_pending_payment.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ['paid', 'failed', 'refunded'])
    async def test_final_payment_is_untouched(self, webhooks, mock_store, subscriptions, status):
        mock_store.get_payment_by_bill_id.return_value = Payment.from_dict(payment_row(status=status))

        result = await webhooks.process_callback(signed_form())

        assert result['reason'] == 'already_final'
        mock_store.settle_pending_payment.assert_not_called()
        subscriptions.activate.assert_not_called()

    @pytest.mark.asyncio
    async def test_lost_settle_race(self, webhooks, mock_store, subscriptions):
        mock_store.settle_pending_payment.return_value = None

        result = await webhooks.process_callback(signed_form())

        assert result['status'] == 'ignored'
        assert result['reason'] == 'already_final'
        subscriptions.activate.assert_not_called()
