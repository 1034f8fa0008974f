"""
Billplz API Client

Thin async wrapper over the Billplz v3 bills API:
- POST /bills         create a bill (hosted payment page)
- GET  /bills/{id}    read a bill's state

Billplz authenticates with HTTP basic auth, the API key as user name and an
empty password. Every failure is mapped to a GatewayError subclass so the
caller can tell "not configured", "rejected", "server error" and
"unreachable" apart.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from backend.core.conf import settings
from backend.src.billing.shared.exceptions import (
    GatewayMisconfiguredError,
    GatewayRejectedError,
    GatewayServerError,
    GatewayUnreachableError,
)

logger = logging.getLogger(__name__)


class BillplzClient:
    """
    Billplz bills API client.

    Usage:
        client = BillplzClient()
        bill = await client.create_bill({
            'collection_id': 'inbmmepb',
            'email': 'api@billplz.com',
            'name': 'Michael Yap',
            'amount': 200,
            'description': 'Subscription - pro-monthly',
            'callback_url': 'https://example.com/api/billplz-webhook',
        })
        print(bill['url'])

    Args:
        api_key: Billplz API secret key (defaults to BILLPLZ_API_KEY)
        base_url: API root, production or sandbox (defaults to BILLPLZ_API_BASE_URL)
        timeout: Request timeout in seconds
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key if api_key is not None else settings.BILLPLZ_API_KEY
        self.base_url = (base_url or settings.BILLPLZ_API_BASE_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.BILLPLZ_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.api_key, ''),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.is_configured:
            raise GatewayMisconfiguredError()

        try:
            async with self._client() as client:
                response = await client.request(method, path, json=payload)
        except httpx.TransportError as e:
            logger.error(f"[BILLPLZ] {method} {path} failed: {e}")
            raise GatewayUnreachableError(message=f"Billplz is not reachable: {e}") from e

        if response.status_code >= 500:
            logger.error(f"[BILLPLZ] {method} {path} server error {response.status_code}: {response.text[:500]}")
            raise GatewayServerError(
                message=f"Billplz API error: {response.status_code}",
                gateway_status=response.status_code,
                gateway_error=response.text[:500]
            )
        if response.status_code >= 400:
            logger.error(f"[BILLPLZ] {method} {path} rejected {response.status_code}: {response.text[:500]}")
            raise GatewayRejectedError(
                gateway_status=response.status_code,
                gateway_error=response.text[:500]
            )

        try:
            return response.json()
        except ValueError as e:
            raise GatewayServerError(
                message="Billplz returned a malformed response",
                gateway_status=response.status_code
            ) from e

    async def create_bill(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a bill.

        Args:
            payload: Bill fields (collection_id, email, name, amount in cents, ...)

        Returns:
            The created bill (id, url, state, amount, ...)
        """
        bill = await self._request('POST', '/bills', payload)
        logger.info(f"[BILLPLZ] Created bill {bill.get('id')} amount={bill.get('amount')}")
        return bill

    async def get_bill(self, bill_id: str) -> Dict[str, Any]:
        """Fetch a bill, including its ``paid`` flag and ``state``."""
        return await self._request('GET', f'/bills/{bill_id}')
