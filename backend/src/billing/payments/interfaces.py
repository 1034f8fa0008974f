"""
Payment Interfaces

Protocol definitions for payment and reconciliation services.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from backend.src.billing.domain import (
    AuthenticatedUser,
    CreatePaymentRequest,
    CreatePaymentResponse,
    PaymentSession,
)


class PaymentGatewayInterface(ABC):
    """Interface for the component that opens a payment with the gateway."""

    @abstractmethod
    async def create_payment(
        self,
        request: CreatePaymentRequest,
        access_token: Optional[str] = None
    ) -> CreatePaymentResponse:
        """Open a payment and return where to send the payer."""
        pass


class PaymentSessionInterface(ABC):
    """Interface for payment-session initiation."""

    @abstractmethod
    async def create_payment_session(
        self,
        user: Optional[AuthenticatedUser],
        plan_id: str,
        idempotency_key: Optional[str] = None
    ) -> PaymentSession:
        """Create a payment session for a plan."""
        pass


class ReconciliationManagerInterface(ABC):
    """Interface for payment reconciliation services."""

    @abstractmethod
    async def reconcile_pending_payments(self, hours: int = 24) -> Dict:
        """Settle pending payments whose outcome the gateway already knows."""
        pass
