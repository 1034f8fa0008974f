"""Tests for AdapterClient error mapping against an httpx MockTransport."""

import json

import httpx
import pytest

from backend.src.billing.domain import CreatePaymentRequest
from backend.src.billing.payments import AdapterClient
from backend.src.billing.shared.exceptions import (
    AdapterNotDeployedError,
    GatewayError,
    GatewayMisconfiguredError,
    GatewayRejectedError,
    GatewayServerError,
    GatewayUnreachableError,
    InvalidRequestError,
    UnauthenticatedError,
)
from backend.tests.factories import USER_ID

ADAPTER_URL = 'https://adapter.example.com/api/v1/billing/billplz/create-payment'

REQUEST = CreatePaymentRequest(
    user_id=USER_ID,
    plan_id='pro-monthly',
    amount=None,
    customer_email='aisyah@example.com',
    customer_name='Aisyah',
)


def respond(status: int, body=None, text: str = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=body)
    return handler


async def call(handler, access_token='token-1'):
    client = AdapterClient(ADAPTER_URL, timeout=5, transport=httpx.MockTransport(handler))
    return await client.create_payment(REQUEST, access_token=access_token)


class TestSuccess:
    """Tests for successful adapter answers."""

    @pytest.mark.asyncio
    async def test_forwards_request_and_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['url'] = str(request.url)
            seen['auth'] = request.headers.get('authorization')
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={
                'success': True,
                'payment_id': 'bill123',
                'payment_url': 'https://www.billplz.com/bills/bill123',
                'amount': 100,
            })

        response = await call(handler)

        assert response.payment_id == 'bill123'
        assert response.amount == 100
        assert seen['url'] == ADAPTER_URL
        assert seen['auth'] == 'Bearer token-1'
        assert seen['body']['plan_id'] == 'pro-monthly'
        assert 'idempotency_key' not in seen['body']

    @pytest.mark.asyncio
    async def test_no_token_no_header(self):
        seen = {}

        def handler(request):
            seen['auth'] = request.headers.get('authorization')
            return httpx.Response(200, json={'payment_id': 'bill123', 'payment_url': 'https://x/bill123'})

        await call(handler, access_token=None)

        assert seen['auth'] is None


class TestErrorMapping:
    """Tests for cause-specific errors."""

    @pytest.mark.asyncio
    async def test_not_deployed(self):
        with pytest.raises(AdapterNotDeployedError) as exc_info:
            await call(respond(404, text='Not Found'))

        assert 'needs to be deployed' in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        with pytest.raises(GatewayUnreachableError) as exc_info:
            await call(handler)

        assert not isinstance(exc_info.value, AdapterNotDeployedError)

    @pytest.mark.asyncio
    async def test_credentials_missing_by_code(self):
        body = {'success': False, 'error': 'Billplz credentials not configured', 'code': 'GATEWAY_MISCONFIGURED'}

        with pytest.raises(GatewayMisconfiguredError):
            await call(respond(503, body))

    @pytest.mark.asyncio
    async def test_credentials_missing_by_message(self):
        with pytest.raises(GatewayMisconfiguredError):
            await call(respond(500, {'error': 'Billplz credentials not configured'}))

    @pytest.mark.asyncio
    async def test_missing_fields(self):
        body = {'error': 'Missing required fields', 'code': 'INVALID_REQUEST', 'details': {'missing': ['amount']}}

        with pytest.raises(InvalidRequestError) as exc_info:
            await call(respond(400, body))

        assert exc_info.value.missing == ['amount']

    @pytest.mark.asyncio
    async def test_gateway_rejection(self):
        body = {
            'error': 'Billplz API error: 422',
            'code': 'GATEWAY_REJECTED',
            'details': {'gateway_status': 422, 'gateway_error': 'Email is invalid'},
        }

        with pytest.raises(GatewayRejectedError) as exc_info:
            await call(respond(502, body))

        assert exc_info.value.gateway_status == 422
        assert exc_info.value.gateway_error == 'Email is invalid'

    @pytest.mark.asyncio
    async def test_server_error_without_code(self):
        with pytest.raises(GatewayServerError) as exc_info:
            await call(respond(500, {'error': 'boom'}))

        assert exc_info.value.message == 'Server error (500): boom'

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        with pytest.raises(UnauthenticatedError):
            await call(respond(401, {'error': 'Invalid token'}))

    @pytest.mark.asyncio
    async def test_success_without_url(self):
        with pytest.raises(GatewayServerError):
            await call(respond(200, {'success': True, 'payment_id': 'bill123'}))

    @pytest.mark.asyncio
    async def test_explicit_failure_in_2xx(self):
        with pytest.raises(GatewayServerError):
            await call(respond(200, {'success': False, 'payment_url': 'https://x', 'error': 'nope'}))

    @pytest.mark.asyncio
    async def test_other_status(self):
        with pytest.raises(GatewayError) as exc_info:
            await call(respond(409, {'error': 'conflict'}))

        assert exc_info.value.message == 'conflict'
