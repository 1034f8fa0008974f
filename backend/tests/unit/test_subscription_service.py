"""
Tests for SubscriptionService.

Tests cover:
- Lossy reads (store failure reported as "no subscription")
- Trial provisioning on first access
- Explicit trial requests
- Activation and plan lookup with the built-in Pro fallback
- Manual Pro upgrade
"""

import pytest

from backend.src.billing.domain import SubscriptionPlan, SubscriptionStatus, UserSubscription
from backend.src.billing.shared.config import DEFAULT_PLAN
from backend.src.billing.shared.exceptions import StoreUnavailableError, SubscriptionExistsError
from backend.src.billing.subscriptions import SubscriptionService
from backend.tests.factories import SUBSCRIPTION_ID, USER_ID, plan_row, subscription_row


@pytest.fixture
def service(mock_store):
    return SubscriptionService(store=mock_store)


@pytest.fixture
def trial():
    return UserSubscription.from_dict(subscription_row())


class TestCurrentSubscription:
    """Tests for reads and first-access provisioning."""

    @pytest.mark.asyncio
    async def test_store_failure_reads_as_none(self, service, mock_store):
        mock_store.get_current_subscription.side_effect = StoreUnavailableError()

        assert await service.get_current_subscription(USER_ID) is None

    @pytest.mark.asyncio
    async def test_existing_subscription_is_not_reprovisioned(self, service, mock_store, trial):
        mock_store.get_current_subscription.return_value = trial

        result = await service.get_or_provision(USER_ID)

        assert result is trial
        mock_store.create_trial_subscription.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_access_provisions_trial(self, service, mock_store, trial):
        mock_store.get_current_subscription.side_effect = [None, trial]
        mock_store.create_trial_subscription.return_value = SUBSCRIPTION_ID

        result = await service.get_or_provision(USER_ID)

        assert result is trial
        mock_store.create_trial_subscription.assert_awaited_once_with(USER_ID)

    @pytest.mark.asyncio
    async def test_failed_provisioning_returns_none(self, service, mock_store):
        mock_store.get_current_subscription.return_value = None
        mock_store.create_trial_subscription.side_effect = StoreUnavailableError()

        assert await service.get_or_provision(USER_ID) is None


class TestStartTrial:
    """Tests for the explicit trial request."""

    @pytest.mark.asyncio
    async def test_conflict_when_subscription_exists(self, service, mock_store, trial):
        mock_store.get_current_subscription.return_value = trial

        with pytest.raises(SubscriptionExistsError) as exc_info:
            await service.start_trial(USER_ID)

        assert exc_info.value.status_code == 409
        mock_store.create_trial_subscription.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_and_reads_back(self, service, mock_store, trial):
        mock_store.get_current_subscription.side_effect = [None, trial]

        assert await service.start_trial(USER_ID) is trial

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, service, mock_store):
        mock_store.get_current_subscription.side_effect = StoreUnavailableError()

        with pytest.raises(StoreUnavailableError):
            await service.start_trial(USER_ID)

    @pytest.mark.asyncio
    async def test_missing_read_back_is_an_error(self, service, mock_store):
        mock_store.get_current_subscription.return_value = None

        with pytest.raises(StoreUnavailableError):
            await service.start_trial(USER_ID)


class TestLifecycle:
    """Tests for activation, status writes and permission checks."""

    @pytest.mark.asyncio
    async def test_activate(self, service, mock_store):
        mock_store.activate_subscription.return_value = True

        assert await service.activate(SUBSCRIPTION_ID, 'pro-monthly') is True
        mock_store.activate_subscription.assert_awaited_once_with(SUBSCRIPTION_ID, 'pro-monthly')

    @pytest.mark.asyncio
    async def test_activate_store_failure_is_false(self, service, mock_store):
        mock_store.activate_subscription.side_effect = StoreUnavailableError()

        assert await service.activate(SUBSCRIPTION_ID, 'pro-monthly') is False

    @pytest.mark.asyncio
    async def test_update_status_passes_through(self, service, mock_store):
        mock_store.update_subscription_status.return_value = True

        assert await service.update_status(SUBSCRIPTION_ID, SubscriptionStatus.CANCELLED) is True
        mock_store.update_subscription_status.assert_awaited_once_with(
            SUBSCRIPTION_ID, SubscriptionStatus.CANCELLED, None
        )

    @pytest.mark.asyncio
    async def test_can_make_calls_false_on_error(self, service, mock_store):
        mock_store.can_user_make_calls.side_effect = StoreUnavailableError()

        assert await service.can_make_calls(USER_ID) is False


class TestPlans:
    """Tests for plan lookups."""

    @pytest.mark.asyncio
    async def test_list_plans_from_store(self, service, mock_store):
        plan = SubscriptionPlan.from_dict(plan_row(id='pro-yearly'))
        mock_store.list_active_plans.return_value = [plan]

        assert await service.list_plans() == [plan]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", [[], StoreUnavailableError()])
    async def test_list_plans_falls_back_to_default(self, service, mock_store, outcome):
        if isinstance(outcome, Exception):
            mock_store.list_active_plans.side_effect = outcome
        else:
            mock_store.list_active_plans.return_value = outcome

        assert await service.list_plans() == [DEFAULT_PLAN]

    @pytest.mark.asyncio
    async def test_get_plan_has_no_builtin_fallback(self, service, mock_store):
        mock_store.get_plan.return_value = None

        assert await service.get_plan('pro-monthly') is None
        assert await service.get_plan('gold') is None

    @pytest.mark.asyncio
    async def test_get_plan_propagates_store_errors(self, service, mock_store):
        mock_store.get_plan.side_effect = StoreUnavailableError()

        with pytest.raises(StoreUnavailableError):
            await service.get_plan('pro-monthly')


class TestManualUpgrade:
    """Tests for the admin Pro upgrade."""

    @pytest.mark.asyncio
    async def test_upgrade_activates_pro(self, service, mock_store, trial):
        mock_store.get_active_plan_by_name.return_value = SubscriptionPlan.from_dict(plan_row())
        mock_store.get_current_subscription.return_value = trial
        mock_store.activate_subscription.return_value = True

        assert await service.manual_upgrade_to_pro(USER_ID) is True
        mock_store.get_active_plan_by_name.assert_awaited_once_with('Pro Plan')
        mock_store.activate_subscription.assert_awaited_once_with(SUBSCRIPTION_ID, 'pro-monthly')

    @pytest.mark.asyncio
    async def test_upgrade_without_pro_plan(self, service, mock_store):
        mock_store.get_active_plan_by_name.return_value = None

        assert await service.manual_upgrade_to_pro(USER_ID) is False
        mock_store.activate_subscription.assert_not_called()
