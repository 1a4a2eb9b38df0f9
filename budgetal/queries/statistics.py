"""
Monthly Statistics Query

DESIGN DECISION: Statistics are computed, never stored.
Every request reloads the month's transactions and aggregates them,
so the numbers can't drift from the underlying records.

GUARANTEES:
- Sums are exact (Decimal all the way through)
- Only categories with at least one transaction in the month appear
- Categories are listed in order of their first transaction in the month
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from budgetal.audit import AuditLogger, create_correlation_id
from budgetal.models.budget import CategoryStatistic, Transaction, User
from budgetal.services.storage import BudgetStorageInterface, StorageError
from budgetal.validation import (
    ParameterRejectedError,
    validate_calendar_year,
    validate_month,
)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def summarize_by_category(transactions: Iterable[Transaction]) -> list[CategoryStatistic]:
    """
    Total transaction amounts per category.

    Dicts keep insertion order, so categories come out in the order
    they first appear in `transactions`.
    """
    totals: dict[str, Decimal] = {}
    for transaction in transactions:
        totals[transaction.category] = (
            totals.get(transaction.category, Decimal("0")) + transaction.amount
        )

    return [
        CategoryStatistic(name=name, amount_spent=total)
        for name, total in totals.items()
    ]


class MonthlyStatisticsQuery:
    """
    Computes a user's spending per category for one month.

    Read-only: never writes to budget storage.
    """

    def __init__(
        self,
        storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def monthly_statistics(
        self,
        user: User,
        year: object,
        month: object,
        correlation_id: Optional[UUID] = None,
    ) -> list[CategoryStatistic]:
        """
        Spending per category for `year`-`month`.

        Args:
            user: The authenticated caller
            year: Calendar year (int or digit string)
            month: Month number 1-12 (int or digit string)

        Returns:
            One CategoryStatistic per category spent in; empty if none

        Raises:
            ParameterRejectedError: If year or month is malformed or out of range
            StorageError: If transactions can't be loaded
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            year = validate_calendar_year(year)
            month = validate_month(month)
        except ParameterRejectedError as e:
            if self._audit_logger:
                await self._audit_logger.log_statistics_rejected(
                    user_id=user.id,
                    requested=f"{year}/{month}",
                    kind=e.kind,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        date_from, date_to = month_bounds(year, month)

        try:
            transactions = await self._storage.list_transactions(user.id, date_from, date_to)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_failure(
                    operation="list transactions",
                    error=e,
                    user_id=user.id,
                    correlation_id=correlation_id,
                )
            raise

        statistics = summarize_by_category(transactions)

        if self._audit_logger:
            await self._audit_logger.log_statistics_computed(
                user_id=user.id,
                year=year,
                month=month,
                transaction_count=len(transactions),
                category_count=len(statistics),
                correlation_id=correlation_id,
            )

        return statistics
