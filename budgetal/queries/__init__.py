"""Read-only query package."""

from budgetal.queries.statistics import (
    MonthlyStatisticsQuery,
    month_bounds,
    summarize_by_category,
)

__all__ = ["MonthlyStatisticsQuery", "month_bounds", "summarize_by_category"]
