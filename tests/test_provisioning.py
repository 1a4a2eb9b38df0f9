"""Tests for annual budget provisioning."""

import asyncio
from datetime import date

import pytest

from budgetal.models.audit import AuditEventType
from budgetal.orchestrator import BudgetProvisioningFlow
from budgetal.services import (
    InMemoryBudgetStorage,
    KeyedLock,
    StaticItemTemplate,
    StorageError,
)
from budgetal.validation import MalformedYearError, YearOutOfRangeError

from conftest import DEFAULT_ITEM_NAMES, TODAY


def event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class SlowInMemoryBudgetStorage(InMemoryBudgetStorage):
    """Yields to the event loop inside lookups so concurrent calls interleave."""

    async def find_by_user_and_year(self, user_id, year):
        await asyncio.sleep(0)
        return await super().find_by_user_and_year(user_id, year)


class CompetingWriterStorage(InMemoryBudgetStorage):
    """
    Simulates another process creating the budget between our lookup and
    our insert: the first lookup misses, then the competitor's row appears.
    """

    def __init__(self):
        super().__init__()
        self.competitor_id = None
        self._competed = False

    async def find_by_user_and_year(self, user_id, year):
        # create() looks the budget up itself, so flag before calling it
        if not self._competed:
            self._competed = True
            competitor = await super().create(user_id, year)
            self.competitor_id = competitor.id
            return None
        return await super().find_by_user_and_year(user_id, year)


class FailingItemsStorage(InMemoryBudgetStorage):
    """Fails while writing default items, after the budget row exists."""

    async def create_default_items(self, budget, drafts):
        await super().create_default_items(budget, drafts[:1])
        raise StorageError("connection lost while writing items")


class TestEnsureBudget:
    """Tests for BudgetProvisioningFlow.ensure_budget."""

    def test_first_call_creates_budget_and_default_items(self, provisioning_flow, storage, user):
        """Test nothing exists before, one budget and its items after."""
        assert storage.count_budgets() == 0

        result = asyncio.run(provisioning_flow.ensure_budget(user, "2017"))

        assert storage.count_budgets() == 1
        assert storage.count_items() == len(DEFAULT_ITEM_NAMES)
        budget = asyncio.run(storage.find_by_user_and_year(user.id, 2017))
        assert result.annual_budget_id == budget.id
        assert [item.name for item in result.annual_budget_items] == DEFAULT_ITEM_NAMES

    def test_default_items_are_unfunded_and_due_end_of_year(self, provisioning_flow, user):
        result = asyncio.run(provisioning_flow.ensure_budget(user, 2018))
        for item in result.annual_budget_items:
            assert item.amount == 0
            assert item.due_date == date(2018, 12, 31)
            assert item.interval == 12
            assert item.paid is False

    def test_idempotent(self, provisioning_flow, storage, user):
        """Test a second call returns the same budget and creates nothing."""
        first = asyncio.run(provisioning_flow.ensure_budget(user, "2017"))
        item_count = storage.count_items()

        second = asyncio.run(provisioning_flow.ensure_budget(user, "2017"))

        assert second.annual_budget_id == first.annual_budget_id
        assert storage.count_budgets() == 1
        assert storage.count_items() == item_count
        assert second.annual_budget_items == first.annual_budget_items

    def test_existing_budget_returns_current_items(self, provisioning_flow, storage, user, item_flow):
        """Test items added after provisioning come back on the next call."""
        from budgetal.models.budget import AnnualBudgetItemCreate

        first = asyncio.run(provisioning_flow.ensure_budget(user, 2017))
        asyncio.run(item_flow.create_item(user, AnnualBudgetItemCreate(
            annual_budget_id=first.annual_budget_id,
            name="Property Tax",
            amount="900.00",
            due_date=date(2017, 10, 1),
        )))

        second = asyncio.run(provisioning_flow.ensure_budget(user, 2017))

        assert len(second.annual_budget_items) == len(DEFAULT_ITEM_NAMES) + 1
        assert second.annual_budget_items[-1].name == "Property Tax"

    def test_budgets_are_per_user_and_year(self, provisioning_flow, storage, user, other_user):
        mine = asyncio.run(provisioning_flow.ensure_budget(user, 2017))
        next_year = asyncio.run(provisioning_flow.ensure_budget(user, 2018))
        theirs = asyncio.run(provisioning_flow.ensure_budget(other_user, 2017))

        assert len({mine.annual_budget_id, next_year.annual_budget_id, theirs.annual_budget_id}) == 3
        assert storage.count_budgets() == 3

    def test_empty_template_creates_budget_without_items(self, storage, user, budget_settings):
        flow = BudgetProvisioningFlow(
            storage=storage,
            template=StaticItemTemplate([]),
            settings=budget_settings,
            clock=lambda: TODAY,
        )
        result = asyncio.run(flow.ensure_budget(user, 2017))
        assert result.annual_budget_items == []
        assert storage.count_budgets() == 1

    def test_now_year_overrides_clock(self, provisioning_flow, user):
        """Test an explicit current year moves the window."""
        result = asyncio.run(provisioning_flow.ensure_budget(user, 2026, now_year=2026))
        assert result.annual_budget_id


class TestYearRejection:
    """Tests for rejected years."""

    def test_malformed_year(self, provisioning_flow, storage, audit_storage, user):
        with pytest.raises(MalformedYearError):
            asyncio.run(provisioning_flow.ensure_budget(user, "abcd"))

        assert storage.count_budgets() == 0
        rejected = audit_storage.events[-1]
        assert rejected.event_type == AuditEventType.YEAR_REJECTED
        assert rejected.error_code == "malformed"

    def test_low_year(self, provisioning_flow, storage, audit_storage, user):
        with pytest.raises(YearOutOfRangeError):
            asyncio.run(provisioning_flow.ensure_budget(user, "2014"))

        assert storage.count_budgets() == 0
        assert audit_storage.events[-1].error_code == "out_of_range"

    def test_high_year(self, provisioning_flow, storage, user):
        with pytest.raises(YearOutOfRangeError):
            asyncio.run(provisioning_flow.ensure_budget(user, str(TODAY.year + 4)))
        assert storage.count_budgets() == 0


class TestConcurrency:
    """Tests for the get-or-create race."""

    def test_concurrent_calls_create_one_budget(self, template, audit_logger, budget_settings, user):
        storage = SlowInMemoryBudgetStorage()
        flow = BudgetProvisioningFlow(
            storage=storage,
            template=template,
            audit_logger=audit_logger,
            settings=budget_settings,
            clock=lambda: TODAY,
        )

        async def scenario():
            return await asyncio.gather(*[flow.ensure_budget(user, 2017) for _ in range(10)])

        results = asyncio.run(scenario())

        assert len({result.annual_budget_id for result in results}) == 1
        assert storage.count_budgets() == 1
        assert storage.count_items() == len(DEFAULT_ITEM_NAMES)

    def test_duplicate_from_storage_resolves_to_existing_budget(
        self, template, audit_logger, audit_storage, budget_settings, user
    ):
        """Test losing the race to another process adopts its budget."""
        storage = CompetingWriterStorage()
        flow = BudgetProvisioningFlow(
            storage=storage,
            template=template,
            audit_logger=audit_logger,
            settings=budget_settings,
            clock=lambda: TODAY,
        )

        result = asyncio.run(flow.ensure_budget(user, 2017))

        assert result.annual_budget_id == storage.competitor_id
        assert storage.count_budgets() == 1
        # The competitor's (empty) item set is kept; ours was rolled back
        assert result.annual_budget_items == []
        assert AuditEventType.PROVISIONING_RACE_RESOLVED in event_types(audit_storage)

    def test_lock_registry_is_emptied(self, storage, template, budget_settings, user):
        locks = KeyedLock()
        flow = BudgetProvisioningFlow(
            storage=storage,
            template=template,
            settings=budget_settings,
            clock=lambda: TODAY,
            locks=locks,
        )
        asyncio.run(flow.ensure_budget(user, 2017))
        assert len(locks) == 0


class TestStorageFailure:
    """Tests for failures during provisioning."""

    def test_item_failure_leaves_no_partial_budget(
        self, template, audit_logger, audit_storage, budget_settings, user
    ):
        storage = FailingItemsStorage()
        flow = BudgetProvisioningFlow(
            storage=storage,
            template=template,
            audit_logger=audit_logger,
            settings=budget_settings,
            clock=lambda: TODAY,
        )

        with pytest.raises(StorageError):
            asyncio.run(flow.ensure_budget(user, 2017))

        assert storage.count_budgets() == 0
        assert storage.count_items() == 0
        failure = audit_storage.events[-1]
        assert failure.event_type == AuditEventType.STORAGE_FAILURE
        assert failure.error_message == "connection lost while writing items"


class TestKeyedLock:
    """Tests for KeyedLock."""

    def test_serializes_same_key(self):
        locks = KeyedLock()
        order = []

        async def worker(name):
            async with locks.hold("key"):
                order.append(f"{name}-start")
                await asyncio.sleep(0)
                order.append(f"{name}-end")

        async def scenario():
            await asyncio.gather(worker("a"), worker("b"))

        asyncio.run(scenario())
        assert order == ["a-start", "a-end", "b-start", "b-end"]

    def test_different_keys_do_not_block(self):
        locks = KeyedLock()
        order = []

        async def worker(key):
            async with locks.hold(key):
                order.append(f"{key}-start")
                await asyncio.sleep(0)
                order.append(f"{key}-end")

        async def scenario():
            await asyncio.gather(worker("a"), worker("b"))

        asyncio.run(scenario())
        assert order == ["a-start", "b-start", "a-end", "b-end"]

    def test_releases_on_error(self):
        locks = KeyedLock()

        async def scenario():
            with pytest.raises(RuntimeError):
                async with locks.hold("key"):
                    raise RuntimeError("boom")
            async with locks.hold("key"):
                return len(locks)

        assert asyncio.run(scenario()) == 1
        assert len(locks) == 0
