"""Shared fixtures for billing tests."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from backend.tests.factories import mapping_result


@pytest.fixture
def mock_session():
    """Async session whose ``execute`` is configured per test."""
    session = AsyncMock()
    session.execute = AsyncMock(return_value=mapping_result())
    return session


@pytest.fixture
def session_factory(mock_session):
    """Session factory yielding ``mock_session``."""

    @asynccontextmanager
    async def factory():
        yield mock_session

    return factory


@pytest.fixture
def mock_store():
    """BillingStore double with every method as an AsyncMock."""
    from backend.src.billing.store import BillingStore

    store = MagicMock(spec=BillingStore)
    for name in (
        'get_current_subscription',
        'create_trial_subscription',
        'activate_subscription',
        'can_user_make_calls',
        'update_subscription_status',
        'list_active_plans',
        'get_plan',
        'get_active_plan_by_name',
        'get_profile',
        'insert_payment',
        'get_payment_by_bill_id',
        'find_pending_payment_by_idempotency_key',
        'list_payments',
        'list_pending_payments',
        'settle_pending_payment',
    ):
        setattr(store, name, AsyncMock())
    return store


@pytest.fixture
def app():
    """FastAPI app with the billing routes."""
    from backend.core.registrar import register_app

    return register_app()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator:
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
