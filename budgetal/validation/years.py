"""
Period Validation

Decides whether a requested year (or month) can be used.

DESIGN DECISION: Two failure kinds are kept apart internally:
- MALFORMED: the value is not a number at all ("abcd")
- OUT OF RANGE: a number, but outside the allowed window

The HTTP boundary reports both as "not found", but audit logs
record which one happened.

Everything here is pure: no clock, no storage.
"""

from typing import Any


MALFORMED = "malformed"
OUT_OF_RANGE = "out_of_range"


class ParameterRejectedError(ValueError):
    """A requested period parameter cannot be used."""

    kind = ""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class YearRejectedError(ParameterRejectedError):
    """The requested year cannot be provisioned."""


class MalformedYearError(YearRejectedError):
    """The requested year is not a well-formed number."""
    kind = MALFORMED


class YearOutOfRangeError(YearRejectedError):
    """The requested year is outside the provisioning window."""
    kind = OUT_OF_RANGE


class MonthRejectedError(ParameterRejectedError):
    """The requested month cannot be used."""


class MalformedMonthError(MonthRejectedError):
    kind = MALFORMED


class MonthOutOfRangeError(MonthRejectedError):
    kind = OUT_OF_RANGE


def _parse_number(value: Any) -> int:
    """
    Parse an int or a string of ASCII digits.

    Raises ValueError for anything else, including bools,
    signs, whitespace and non-ASCII digits.
    """
    if isinstance(value, bool):
        raise ValueError("bool is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    raise ValueError(f"not a number: {value!r}")


def year_window(
    current_year: int,
    years_back: int = 2,
    years_ahead: int = 3,
    earliest_year: int = 2015,
) -> tuple[int, int]:
    """Inclusive (first, last) years that can be provisioned."""
    return max(earliest_year, current_year - years_back), current_year + years_ahead


def validate_year(
    requested_year: Any,
    current_year: int,
    *,
    years_back: int = 2,
    years_ahead: int = 3,
    earliest_year: int = 2015,
) -> int:
    """
    Validate a requested budget year against the current year.

    Returns:
        The year as an int

    Raises:
        MalformedYearError: If the year is not a number
        YearOutOfRangeError: If the year is outside the window
    """
    try:
        year = _parse_number(requested_year)
    except ValueError:
        raise MalformedYearError(
            f"Year must be a number, got {requested_year!r}",
            value=requested_year,
        )

    first, last = year_window(current_year, years_back, years_ahead, earliest_year)
    if not first <= year <= last:
        raise YearOutOfRangeError(
            f"Year {year} is outside {first}-{last}",
            value=year,
        )
    return year


def validate_month(requested_month: Any) -> int:
    """
    Validate a calendar month number (1-12).

    Raises:
        MalformedMonthError: If the month is not a number
        MonthOutOfRangeError: If the month is not between 1 and 12
    """
    try:
        month = _parse_number(requested_month)
    except ValueError:
        raise MalformedMonthError(
            f"Month must be a number, got {requested_month!r}",
            value=requested_month,
        )
    if not 1 <= month <= 12:
        raise MonthOutOfRangeError(f"Month {month} is not between 1 and 12", value=month)
    return month


def validate_calendar_year(requested_year: Any) -> int:
    """
    Validate a year for reporting purposes (any year a date can hold).

    Raises:
        MalformedYearError: If the year is not a number
        YearOutOfRangeError: If the year is not between 1 and 9999
    """
    try:
        year = _parse_number(requested_year)
    except ValueError:
        raise MalformedYearError(
            f"Year must be a number, got {requested_year!r}",
            value=requested_year,
        )
    if not 1 <= year <= 9999:
        raise YearOutOfRangeError(f"Year {year} is not a calendar year", value=year)
    return year
