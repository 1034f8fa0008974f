"""
Billing Exceptions

Custom exception classes for billing-related errors.
These provide structured error handling across the billing module.

Each exception carries the HTTP status the API layer answers with, so the
endpoints can surface cause-specific messages instead of a generic failure.
"""


class BillingError(Exception):
    """
    Base exception for all billing-related errors.

    All billing exceptions inherit from this class, allowing for
    broad exception handling when needed.
    """

    status_code: int = 500

    def __init__(self, message: str, code: str = "BILLING_ERROR", details: dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        return {
            'success': False,
            'error': self.message,
            'code': self.code,
            'details': self.details
        }


class UnauthenticatedError(BillingError):
    """Raised when no authenticated user (or no contact email) is available."""

    status_code = 401

    def __init__(self, message: str = "You must be signed in to continue"):
        super().__init__(message=message, code="UNAUTHENTICATED")


class PlanNotFoundError(BillingError):
    """Raised when a requested plan doesn't exist or is not active."""

    status_code = 404

    def __init__(self, plan_id: str):
        super().__init__(
            message=f"Plan '{plan_id}' not found",
            code="PLAN_NOT_FOUND",
            details={'plan_id': plan_id}
        )
        self.plan_id = plan_id


class InvalidRequestError(BillingError):
    """
    Raised when a payment request is missing required fields.

    Attributes:
        missing: Names of the fields that were absent or empty
    """

    status_code = 400

    def __init__(self, message: str = "Missing required fields", missing: list = None):
        super().__init__(
            message=message,
            code="INVALID_REQUEST",
            details={'missing': missing} if missing else {}
        )
        self.missing = missing or []


class StoreUnavailableError(BillingError):
    """Raised when the billing store cannot be read or written."""

    status_code = 503

    def __init__(self, message: str = "Billing store unavailable", operation: str = None):
        super().__init__(
            message=message,
            code="STORE_UNAVAILABLE",
            details={'operation': operation} if operation else {}
        )
        self.operation = operation


# =============================================================================
# Gateway / adapter errors
# =============================================================================

class GatewayError(BillingError):
    """Base class for payment gateway and payment adapter failures."""

    status_code = 502

    def __init__(
        self,
        message: str = "Payment gateway error",
        code: str = "GATEWAY_ERROR",
        gateway_status: int = None,
        gateway_error: str = None
    ):
        details = {}
        if gateway_status is not None:
            details['gateway_status'] = gateway_status
        if gateway_error:
            details['gateway_error'] = gateway_error

        super().__init__(message=message, code=code, details=details)
        self.gateway_status = gateway_status
        self.gateway_error = gateway_error


class GatewayMisconfiguredError(GatewayError):
    """Raised when Billplz credentials are not configured."""

    status_code = 503

    def __init__(self, message: str = "Billplz credentials not configured"):
        super().__init__(message=message, code="GATEWAY_MISCONFIGURED")


class GatewayRejectedError(GatewayError):
    """Raised when Billplz answers a bill request with a non-2xx status."""

    status_code = 502

    def __init__(self, gateway_status: int, gateway_error: str = None, message: str = None):
        super().__init__(
            message=message or f"Billplz API error: {gateway_status}",
            code="GATEWAY_REJECTED",
            gateway_status=gateway_status,
            gateway_error=gateway_error
        )


class GatewayServerError(GatewayError):
    """Raised when the gateway or the payment adapter fails with a 5xx."""

    status_code = 502

    def __init__(self, message: str = "Payment server error", gateway_status: int = None, gateway_error: str = None):
        super().__init__(
            message=message,
            code="GATEWAY_SERVER_ERROR",
            gateway_status=gateway_status,
            gateway_error=gateway_error
        )


class GatewayUnreachableError(GatewayError):
    """Raised when the gateway or adapter cannot be reached at all."""

    status_code = 503

    def __init__(self, message: str = "Payment service is not reachable", code: str = "GATEWAY_UNREACHABLE"):
        super().__init__(message=message, code=code)


class AdapterNotDeployedError(GatewayUnreachableError):
    """Raised when the payment adapter endpoint answers 404."""

    status_code = 404

    def __init__(self, message: str = "Payment service not found (404). The payment adapter needs to be deployed."):
        super().__init__(message=message, code="NOT_DEPLOYED")


# =============================================================================
# Lifecycle errors
# =============================================================================

class SubscriptionError(BillingError):
    """
    Raised when there's an issue with subscription management.

    Examples:
        - Trial already provisioned
        - Activation failed
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Subscription error",
        code: str = "SUBSCRIPTION_ERROR",
        subscription_id: str = None
    ):
        super().__init__(
            message=message,
            code=code,
            details={'subscription_id': subscription_id} if subscription_id else {}
        )
        self.subscription_id = subscription_id


class SubscriptionExistsError(SubscriptionError):
    """Raised when a trial is requested for a user who already has a subscription."""

    status_code = 409

    def __init__(self, subscription_id: str = None):
        super().__init__(
            message="User already has a subscription",
            code="SUBSCRIPTION_EXISTS",
            subscription_id=subscription_id
        )


class PaymentError(BillingError):
    """
    Raised when there's an issue with payment processing.

    Examples:
        - Payment record could not be saved
        - Bill creation failed
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Payment processing error",
        code: str = "PAYMENT_ERROR",
        bill_id: str = None
    ):
        super().__init__(
            message=message,
            code=code,
            details={'bill_id': bill_id} if bill_id else {}
        )
        self.bill_id = bill_id


class WebhookError(BillingError):
    """
    Raised when there's an issue processing a Billplz callback.

    Examples:
        - Invalid signature
        - Malformed payload
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Webhook processing error",
        code: str = "WEBHOOK_ERROR",
        bill_id: str = None
    ):
        super().__init__(
            message=message,
            code=code,
            details={'bill_id': bill_id} if bill_id else {}
        )
        self.bill_id = bill_id


class ReconciliationError(BillingError):
    """Raised when a return trip cannot be matched to a payment."""

    status_code = 400

    def __init__(
        self,
        message: str = "Reconciliation error",
        bill_id: str = None
    ):
        super().__init__(
            message=message,
            code="RECONCILIATION_ERROR",
            details={'bill_id': bill_id} if bill_id else {}
        )
        self.bill_id = bill_id
