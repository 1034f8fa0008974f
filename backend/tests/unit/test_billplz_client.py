"""Tests for BillplzClient against an httpx MockTransport."""

import base64
import json

import httpx
import pytest

from backend.src.billing.external.billplz.client import BillplzClient
from backend.src.billing.shared.exceptions import (
    GatewayMisconfiguredError,
    GatewayRejectedError,
    GatewayServerError,
    GatewayUnreachableError,
)

BASE_URL = 'https://www.billplz-sandbox.com/api/v3'


def make_client(handler, api_key='sk-test') -> BillplzClient:
    return BillplzClient(api_key=api_key, base_url=BASE_URL, timeout=5, transport=httpx.MockTransport(handler))


class TestCreateBill:
    """Tests for POST /bills."""

    @pytest.mark.asyncio
    async def test_posts_payload_with_basic_auth(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['method'] = request.method
            seen['url'] = str(request.url)
            seen['auth'] = request.headers.get('authorization')
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={'id': 'bill123', 'url': 'https://billplz/bill123', 'amount': 100})

        bill = await make_client(handler).create_bill({'collection_id': 'col1', 'amount': 100})

        assert bill['id'] == 'bill123'
        assert seen['method'] == 'POST'
        assert seen['url'] == f'{BASE_URL}/bills'
        assert seen['auth'] == 'Basic ' + base64.b64encode(b'sk-test:').decode()
        assert seen['body'] == {'collection_id': 'col1', 'amount': 100}

    @pytest.mark.asyncio
    async def test_unconfigured_client_never_calls_out(self):
        def handler(request):
            raise AssertionError('should not be called')

        with pytest.raises(GatewayMisconfiguredError):
            await make_client(handler, api_key='').create_bill({})

    @pytest.mark.asyncio
    async def test_client_error_is_rejected(self):
        def handler(request):
            return httpx.Response(422, json={'error': {'type': 'RecordInvalid', 'message': ['Email is invalid']}})

        with pytest.raises(GatewayRejectedError) as exc_info:
            await make_client(handler).create_bill({})

        assert exc_info.value.gateway_status == 422
        assert 'RecordInvalid' in exc_info.value.gateway_error
        assert exc_info.value.message == 'Billplz API error: 422'

    @pytest.mark.asyncio
    async def test_server_error(self):
        def handler(request):
            return httpx.Response(503, text='maintenance')

        with pytest.raises(GatewayServerError) as exc_info:
            await make_client(handler).create_bill({})

        assert exc_info.value.gateway_status == 503

    @pytest.mark.asyncio
    async def test_transport_failure_is_unreachable(self):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        with pytest.raises(GatewayUnreachableError):
            await make_client(handler).create_bill({})

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        def handler(request):
            return httpx.Response(200, text='<html>')

        with pytest.raises(GatewayServerError):
            await make_client(handler).create_bill({})


class TestGetBill:
    """Tests for GET /bills/{id}."""

    @pytest.mark.asyncio
    async def test_reads_bill(self):
        def handler(request):
            assert request.method == 'GET'
            assert request.url.path.endswith('/bills/bill123')
            return httpx.Response(200, json={'id': 'bill123', 'paid': True, 'state': 'paid'})

        bill = await make_client(handler).get_bill('bill123')

        assert bill['paid'] is True
