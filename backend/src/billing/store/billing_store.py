"""
Billing Store

Typed reads and writes over the billing tables:
- subscription_plans: plan catalogue (reference data)
- user_subscriptions: one current row per user (newest by created_at)
- payments: one row per checkout attempt
- profiles: display-name lookup only

Trial creation and activation are delegated to the database procedures
``create_trial_subscription`` and ``activate_subscription`` so that the
read-then-write sequences they contain stay atomic.

Every backend failure surfaces as StoreUnavailableError; callers decide
whether to degrade or propagate.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.src.billing.domain import (
    Payment,
    PaymentStatus,
    SubscriptionPlan,
    SubscriptionStatus,
    UserSubscription,
)
from backend.src.billing.shared.config import PAYMENT_METHOD_BILLPLZ
from backend.src.billing.shared.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


@dataclass
class NewPayment:
    """Values for a payment row that is about to be opened."""
    user_id: str
    subscription_id: Optional[str]
    amount: Decimal
    currency: str
    billplz_bill_id: str
    billplz_url: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    payment_method: str = PAYMENT_METHOD_BILLPLZ
    status: PaymentStatus = PaymentStatus.PENDING


class BillingStore:
    """
    Data accessor for subscriptions, plans and payments.

    The session factory is passed in explicitly (normally
    ``backend.database.db.async_db_session``) so tests can hand in a fake.

    Usage:
        from backend.database.db import async_db_session

        store = BillingStore(async_db_session)
        subscription = await store.get_current_subscription(user_id)
    """

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    # =========================================================================
    # Low-level helpers
    # =========================================================================

    async def _fetch_one(self, sql: str, params: dict, operation: str) -> Optional[dict]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(text(sql), params)
                row = result.mappings().first()
                return dict(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"[STORE] {operation} failed: {e}")
            raise StoreUnavailableError(operation=operation) from e

    async def _fetch_all(self, sql: str, params: dict, operation: str) -> List[dict]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(text(sql), params)
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error(f"[STORE] {operation} failed: {e}")
            raise StoreUnavailableError(operation=operation) from e

    async def _write_returning(self, sql: str, params: dict, operation: str) -> Optional[dict]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(text(sql), params)
                row = result.mappings().first()
                await session.commit()
                return dict(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"[STORE] {operation} failed: {e}")
            raise StoreUnavailableError(operation=operation) from e

    async def _call_scalar(self, sql: str, params: dict, operation: str) -> Any:
        try:
            async with self._session_factory() as session:
                result = await session.execute(text(sql), params)
                value = result.scalar()
                await session.commit()
                return value
        except SQLAlchemyError as e:
            logger.error(f"[STORE] {operation} failed: {e}")
            raise StoreUnavailableError(operation=operation) from e

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def get_current_subscription(self, user_id: str) -> Optional[UserSubscription]:
        """
        Get the user's current subscription (newest by created_at).

        Returns:
            UserSubscription, or None when the user has none

        Raises:
            StoreUnavailableError: If the backend could not be queried
        """
        row = await self._fetch_one(
            """
            SELECT * FROM user_subscriptions
            WHERE user_id = CAST(:user_id AS UUID)
            ORDER BY created_at DESC
            LIMIT 1
            """,
            {"user_id": user_id},
            "get_current_subscription",
        )
        return UserSubscription.from_dict(row) if row else None

    async def create_trial_subscription(self, user_id: str) -> Optional[str]:
        """Run create_trial_subscription and return the new subscription id."""
        value = await self._call_scalar(
            "SELECT create_trial_subscription(p_user_id => CAST(:user_id AS UUID))",
            {"user_id": user_id},
            "create_trial_subscription",
        )
        return str(value) if value is not None else None

    async def activate_subscription(self, subscription_id: str, plan_id: str) -> bool:
        """Run activate_subscription; the procedure reports success as a boolean."""
        value = await self._call_scalar(
            """
            SELECT activate_subscription(
                p_subscription_id => CAST(:subscription_id AS UUID),
                p_plan_id => :plan_id
            )
            """,
            {"subscription_id": subscription_id, "plan_id": plan_id},
            "activate_subscription",
        )
        return bool(value)

    async def can_user_make_calls(self, user_id: str) -> bool:
        value = await self._call_scalar(
            "SELECT can_user_make_calls(p_user_id => CAST(:user_id AS UUID))",
            {"user_id": user_id},
            "can_user_make_calls",
        )
        return bool(value)

    async def update_subscription_status(
        self,
        subscription_id: str,
        status: SubscriptionStatus,
        period_end: Optional[datetime] = None
    ) -> bool:
        """Write a status (and optionally the period end). True if a row changed."""
        if period_end is not None:
            sql = """
                UPDATE user_subscriptions
                SET status = :status, current_period_end = :period_end, updated_at = NOW()
                WHERE id = CAST(:subscription_id AS UUID)
                RETURNING id
            """
            params = {"status": status.value, "period_end": period_end, "subscription_id": subscription_id}
        else:
            sql = """
                UPDATE user_subscriptions
                SET status = :status, updated_at = NOW()
                WHERE id = CAST(:subscription_id AS UUID)
                RETURNING id
            """
            params = {"status": status.value, "subscription_id": subscription_id}

        row = await self._write_returning(sql, params, "update_subscription_status")
        return row is not None

    # =========================================================================
    # Plans
    # =========================================================================

    async def list_active_plans(self) -> List[SubscriptionPlan]:
        rows = await self._fetch_all(
            """
            SELECT * FROM subscription_plans
            WHERE is_active = TRUE
            ORDER BY price ASC
            """,
            {},
            "list_active_plans",
        )
        return [SubscriptionPlan.from_dict(row) for row in rows]

    async def get_plan(self, plan_id: str) -> Optional[SubscriptionPlan]:
        row = await self._fetch_one(
            "SELECT * FROM subscription_plans WHERE CAST(id AS TEXT) = :plan_id",
            {"plan_id": plan_id},
            "get_plan",
        )
        return SubscriptionPlan.from_dict(row) if row else None

    async def get_active_plan_by_name(self, name: str) -> Optional[SubscriptionPlan]:
        row = await self._fetch_one(
            """
            SELECT * FROM subscription_plans
            WHERE name = :name AND is_active = TRUE
            LIMIT 1
            """,
            {"name": name},
            "get_active_plan_by_name",
        )
        return SubscriptionPlan.from_dict(row) if row else None

    # =========================================================================
    # Profiles
    # =========================================================================

    async def get_profile(self, user_id: str) -> Optional[dict]:
        """Return ``{'full_name', 'username'}`` for the user, or None."""
        return await self._fetch_one(
            "SELECT full_name, username FROM profiles WHERE id = CAST(:user_id AS UUID)",
            {"user_id": user_id},
            "get_profile",
        )

    # =========================================================================
    # Payments
    # =========================================================================

    async def insert_payment(self, payment: NewPayment) -> Payment:
        row = await self._write_returning(
            """
            INSERT INTO payments (
                user_id, subscription_id, amount, currency, status,
                payment_method, billplz_bill_id, billplz_url, metadata
            ) VALUES (
                CAST(:user_id AS UUID), CAST(:subscription_id AS UUID), :amount, :currency, :status,
                :payment_method, :billplz_bill_id, :billplz_url, CAST(:metadata AS JSONB)
            )
            RETURNING *
            """,
            {
                "user_id": payment.user_id,
                "subscription_id": payment.subscription_id,
                "amount": payment.amount,
                "currency": payment.currency,
                "status": payment.status.value,
                "payment_method": payment.payment_method,
                "billplz_bill_id": payment.billplz_bill_id,
                "billplz_url": payment.billplz_url,
                "metadata": json.dumps(payment.metadata),
            },
            "insert_payment",
        )
        if row is None:
            raise StoreUnavailableError(message="Payment insert returned no row", operation="insert_payment")
        return Payment.from_dict(row)

    async def get_payment_by_bill_id(self, bill_id: str, user_id: Optional[str] = None) -> Optional[Payment]:
        """Payment for a bill; with ``user_id`` only that user's payment matches."""
        sql = "SELECT * FROM payments WHERE billplz_bill_id = :bill_id"
        params = {"bill_id": bill_id}
        if user_id is not None:
            sql += " AND user_id = CAST(:user_id AS UUID)"
            params["user_id"] = user_id
        row = await self._fetch_one(sql + " LIMIT 1", params, "get_payment_by_bill_id")
        return Payment.from_dict(row) if row else None

    async def find_pending_payment_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[Payment]:
        row = await self._fetch_one(
            """
            SELECT * FROM payments
            WHERE user_id = CAST(:user_id AS UUID)
              AND status = 'pending'
              AND metadata ->> 'idempotency_key' = :idempotency_key
            ORDER BY created_at DESC
            LIMIT 1
            """,
            {"user_id": user_id, "idempotency_key": idempotency_key},
            "find_pending_payment_by_idempotency_key",
        )
        return Payment.from_dict(row) if row else None

    async def list_payments(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Payment]:
        rows = await self._fetch_all(
            """
            SELECT * FROM payments
            WHERE user_id = CAST(:user_id AS UUID)
            ORDER BY created_at DESC
            LIMIT :limit OFFSET :offset
            """,
            {"user_id": user_id, "limit": limit, "offset": offset},
            "list_payments",
        )
        return [Payment.from_dict(row) for row in rows]

    async def list_pending_payments(self, since: datetime) -> List[Payment]:
        """Pending Billplz payments opened at or after ``since``, oldest first."""
        rows = await self._fetch_all(
            """
            SELECT * FROM payments
            WHERE status = 'pending'
              AND payment_method = :payment_method
              AND billplz_bill_id IS NOT NULL
              AND created_at >= :since
            ORDER BY created_at ASC
            """,
            {"payment_method": PAYMENT_METHOD_BILLPLZ, "since": since},
            "list_pending_payments",
        )
        return [Payment.from_dict(row) for row in rows]

    async def settle_pending_payment(
        self,
        bill_id: str,
        status: PaymentStatus,
        paid_at: Optional[datetime] = None,
        metadata_patch: Optional[dict] = None
    ) -> Optional[Payment]:
        """
        Move a pending payment to a final status.

        The update is conditional on ``status = 'pending'``, so concurrent
        callers (callback and sweep) settle a payment at most once.

        Returns:
            The updated Payment, or None if it was not pending (or unknown)
        """
        row = await self._write_returning(
            """
            UPDATE payments
            SET status = :status,
                paid_at = :paid_at,
                metadata = COALESCE(metadata, CAST('{}' AS JSONB)) || CAST(:metadata_patch AS JSONB)
            WHERE billplz_bill_id = :bill_id AND status = 'pending'
            RETURNING *
            """,
            {
                "status": status.value,
                "paid_at": paid_at,
                "metadata_patch": json.dumps(metadata_patch or {}),
                "bill_id": bill_id,
            },
            "settle_pending_payment",
        )
        return Payment.from_dict(row) if row else None
