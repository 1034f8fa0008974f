"""
Payment Adapter Client

HTTP client for a payment adapter deployed behind its own URL (see
PAYMENT_ADAPTER_URL). The adapter answers ``{success, payment_id,
payment_url, ...}`` or an error body; every failure is turned into a typed
billing error with an actionable message:

- adapter not deployed (404) or unreachable
- Billplz credentials missing
- request rejected (missing fields / gateway rejection)
- server error (5xx)
"""

import logging
from typing import Optional

import httpx

from backend.core.conf import settings
from backend.src.billing.domain import CreatePaymentRequest, CreatePaymentResponse
from backend.src.billing.shared.exceptions import (
    AdapterNotDeployedError,
    BillingError,
    GatewayError,
    GatewayMisconfiguredError,
    GatewayRejectedError,
    GatewayServerError,
    GatewayUnreachableError,
    InvalidRequestError,
    StoreUnavailableError,
    UnauthenticatedError,
)
from .interfaces import PaymentGatewayInterface

logger = logging.getLogger(__name__)


class AdapterClient(PaymentGatewayInterface):
    """
    Calls a remote payment adapter over HTTP.

    Usage:
        client = AdapterClient('https://api.example.com/api/v1/billing/billplz/create-payment')
        response = await client.create_payment(request, access_token=user.access_token)

    Args:
        url: Full URL of the adapter's create-payment endpoint
        timeout: Request timeout in seconds
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.timeout = timeout if timeout is not None else settings.BILLPLZ_TIMEOUT_SECONDS
        self._transport = transport

    async def create_payment(
        self,
        request: CreatePaymentRequest,
        access_token: Optional[str] = None
    ) -> CreatePaymentResponse:
        headers = {}
        if access_token:
            headers['Authorization'] = f"Bearer {access_token}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=request.to_dict(), headers=headers)
        except httpx.TransportError as e:
            logger.error(f"[PAYMENT] Payment adapter not reachable at {self.url}: {e}")
            raise GatewayUnreachableError(
                message="Payment service is not reachable. The payment adapter may not be deployed."
            ) from e

        body = self._json_body(response)
        if response.is_success and body.get('success', True) and body.get('payment_url'):
            return CreatePaymentResponse.from_dict(body)

        raise self._error_from_response(response.status_code, body)

    @staticmethod
    def _json_body(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {'error': response.text[:500]} if response.text else {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _error_from_response(status: int, body: dict) -> BillingError:
        """Map an adapter error answer to the matching billing error."""
        code = body.get('code')
        message = body.get('error') or body.get('message') or ''
        details = body.get('details') or {}
        logger.error(f"[PAYMENT] Payment adapter answered {status}: code={code} error={message}")

        if code == 'GATEWAY_MISCONFIGURED' or 'Billplz credentials' in message:
            return GatewayMisconfiguredError(message=message or "Billplz credentials not configured")
        if code == 'INVALID_REQUEST':
            return InvalidRequestError(message=message or "Missing required fields", missing=details.get('missing'))
        if code == 'GATEWAY_REJECTED':
            return GatewayRejectedError(
                gateway_status=details.get('gateway_status', status),
                gateway_error=details.get('gateway_error'),
                message=message or None
            )
        if code == 'GATEWAY_SERVER_ERROR':
            return GatewayServerError(
                message=message or "Payment server error",
                gateway_status=details.get('gateway_status', status),
                gateway_error=details.get('gateway_error')
            )
        if code == 'GATEWAY_UNREACHABLE':
            return GatewayUnreachableError(message=message or "Payment gateway is not reachable")
        if code == 'STORE_UNAVAILABLE':
            return StoreUnavailableError(message=message or "Billing store unavailable")
        if code == 'UNAUTHENTICATED' or status in (401, 403):
            return UnauthenticatedError(message=message or "You must be signed in to continue")

        if status == 404:
            return AdapterNotDeployedError()
        if status == 400:
            return InvalidRequestError(message=message or "Missing required fields")
        if status >= 500:
            return GatewayServerError(
                message=f"Server error ({status}): {message}" if message else f"Server error ({status})",
                gateway_status=status
            )
        if status < 300:
            # 2xx without a payment URL
            return GatewayServerError(message=message or "Payment adapter returned no payment URL", gateway_status=status)
        return GatewayError(message=message or f"Payment adapter error: {status}", gateway_status=status)
