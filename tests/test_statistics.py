"""Tests for monthly spending statistics."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from budgetal.models.audit import AuditEventType
from budgetal.queries import MonthlyStatisticsQuery, month_bounds, summarize_by_category
from budgetal.services import InMemoryBudgetStorage, StorageConnectionError
from budgetal.validation import MalformedMonthError, MonthOutOfRangeError


class UnreachableStorage(InMemoryBudgetStorage):
    async def list_transactions(self, user_id, date_from, date_to):
        raise StorageConnectionError("database unavailable")


@pytest.fixture
def seeded_storage(storage, user, other_user):
    storage.add_transaction(user_id=user.id, category="Food", amount=Decimal("10.00"), date=date(2017, 11, 1))
    storage.add_transaction(user_id=user.id, category="Gas", amount=Decimal("20.00"), date=date(2017, 11, 9))
    storage.add_transaction(user_id=user.id, category="Food", amount=Decimal("5.50"), date=date(2017, 11, 30))
    # Outside November
    storage.add_transaction(user_id=user.id, category="Food", amount=Decimal("99.00"), date=date(2017, 10, 31))
    storage.add_transaction(user_id=user.id, category="Rent", amount=Decimal("800.00"), date=date(2017, 12, 1))
    # Someone else's spending
    storage.add_transaction(user_id=other_user.id, category="Food", amount=Decimal("42.00"), date=date(2017, 11, 2))
    return storage


class TestMonthBounds:
    """Tests for month_bounds."""

    def test_thirty_day_month(self):
        assert month_bounds(2017, 11) == (date(2017, 11, 1), date(2017, 11, 30))

    def test_december(self):
        assert month_bounds(2017, 12) == (date(2017, 12, 1), date(2017, 12, 31))

    def test_leap_february(self):
        assert month_bounds(2016, 2)[1] == date(2016, 2, 29)
        assert month_bounds(2017, 2)[1] == date(2017, 2, 28)


class TestSummarizeByCategory:
    """Tests for summarize_by_category."""

    def test_empty(self):
        assert summarize_by_category([]) == []

    def test_keeps_first_appearance_order(self, storage):
        transactions = [
            storage.add_transaction(user_id=1, category=category, amount=Decimal("1.00"), date=date(2017, 11, day))
            for day, category in enumerate(["Gas", "Food", "Gas", "Books"], start=1)
        ]
        statistics = summarize_by_category(transactions)
        assert [s.name for s in statistics] == ["Gas", "Food", "Books"]
        assert statistics[0].amount_spent == Decimal("2.00")


class TestMonthlyStatisticsQuery:
    """Tests for MonthlyStatisticsQuery.monthly_statistics."""

    def test_totals_per_category(self, seeded_storage, statistics_query, user):
        """Test each category is summed over the month only."""
        statistics = asyncio.run(statistics_query.monthly_statistics(user, 2017, 11))

        totals = {s.name: s.amount_spent for s in statistics}
        assert totals == {"Food": Decimal("15.50"), "Gas": Decimal("20.00")}
        assert [s.name for s in statistics] == ["Food", "Gas"]

    def test_accepts_path_strings(self, seeded_storage, statistics_query, user):
        statistics = asyncio.run(statistics_query.monthly_statistics(user, "2017", "11"))
        assert len(statistics) == 2

    def test_no_transactions_is_empty(self, seeded_storage, statistics_query, user):
        assert asyncio.run(statistics_query.monthly_statistics(user, 2017, 6)) == []

    def test_only_the_callers_transactions(self, seeded_storage, statistics_query, other_user):
        statistics = asyncio.run(statistics_query.monthly_statistics(other_user, 2017, 11))
        assert [(s.name, s.amount_spent) for s in statistics] == [("Food", Decimal("42.00"))]

    def test_month_edges_included(self, seeded_storage, statistics_query, user):
        """Test the first and last day of the month both count."""
        december = asyncio.run(statistics_query.monthly_statistics(user, 2017, 12))
        october = asyncio.run(statistics_query.monthly_statistics(user, 2017, 10))
        assert december[0].amount_spent == Decimal("800.00")
        assert october[0].amount_spent == Decimal("99.00")

    def test_does_not_write(self, seeded_storage, statistics_query, user):
        asyncio.run(statistics_query.monthly_statistics(user, 2017, 11))
        assert seeded_storage.count_budgets() == 0
        assert seeded_storage.count_items() == 0

    def test_audits_computation(self, seeded_storage, statistics_query, audit_storage, user):
        asyncio.run(statistics_query.monthly_statistics(user, 2017, 11))

        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.STATISTICS_COMPUTED
        assert event.details["transaction_count"] == 3
        assert event.details["category_count"] == 2

    def test_malformed_month(self, statistics_query, audit_storage, user):
        with pytest.raises(MalformedMonthError):
            asyncio.run(statistics_query.monthly_statistics(user, 2017, "nov"))
        assert audit_storage.events[-1].event_type == AuditEventType.STATISTICS_REJECTED

    def test_month_out_of_range(self, statistics_query, user):
        with pytest.raises(MonthOutOfRangeError):
            asyncio.run(statistics_query.monthly_statistics(user, 2017, 13))

    def test_storage_failure_is_audited(self, audit_logger, audit_storage, user):
        query = MonthlyStatisticsQuery(storage=UnreachableStorage(), audit_logger=audit_logger)

        with pytest.raises(StorageConnectionError):
            asyncio.run(query.monthly_statistics(user, 2017, 11))

        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.STORAGE_FAILURE
        assert event.error_code == "StorageConnectionError"
