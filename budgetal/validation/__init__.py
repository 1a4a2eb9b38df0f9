"""Period validation package."""

from budgetal.validation.years import (
    MALFORMED,
    OUT_OF_RANGE,
    MalformedMonthError,
    MalformedYearError,
    MonthOutOfRangeError,
    MonthRejectedError,
    ParameterRejectedError,
    YearOutOfRangeError,
    YearRejectedError,
    validate_calendar_year,
    validate_month,
    validate_year,
    year_window,
)

__all__ = [
    "MALFORMED",
    "OUT_OF_RANGE",
    "MalformedMonthError",
    "MalformedYearError",
    "MonthOutOfRangeError",
    "MonthRejectedError",
    "ParameterRejectedError",
    "YearOutOfRangeError",
    "YearRejectedError",
    "validate_calendar_year",
    "validate_month",
    "validate_year",
    "year_window",
]
