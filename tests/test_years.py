"""Tests for year and month validation."""

import pytest

from budgetal.validation import (
    MALFORMED,
    OUT_OF_RANGE,
    MalformedMonthError,
    MalformedYearError,
    MonthOutOfRangeError,
    YearOutOfRangeError,
    YearRejectedError,
    validate_calendar_year,
    validate_month,
    validate_year,
    year_window,
)


class TestValidateYear:
    """Tests for the provisioning window."""

    @pytest.mark.parametrize("year", [2015, 2016, 2017, 2018, 2019, 2020])
    def test_accepts_years_inside_window(self, year):
        """Test [current - 2, current + 3] is accepted."""
        assert validate_year(year, 2017) == year

    def test_accepts_digit_strings(self):
        """Test path-style input is parsed."""
        assert validate_year("2017", 2017) == 2017

    def test_rejects_year_too_low(self):
        """Test current - 3 is rejected."""
        with pytest.raises(YearOutOfRangeError) as exc_info:
            validate_year("2014", 2017)
        assert exc_info.value.kind == OUT_OF_RANGE
        assert exc_info.value.value == 2014

    def test_rejects_year_too_high(self):
        """Test current + 4 is rejected."""
        with pytest.raises(YearOutOfRangeError):
            validate_year(2021, 2017)

    @pytest.mark.parametrize("year", ["abcd", "", "20 17", "-2017", "+2017", "2017.0", None, True, 2017.0])
    def test_rejects_malformed_years(self, year):
        """Test anything that isn't an int or digit string is malformed."""
        with pytest.raises(MalformedYearError) as exc_info:
            validate_year(year, 2017)
        assert exc_info.value.kind == MALFORMED

    def test_rejects_non_ascii_digits(self):
        """Test unicode digits are not accepted as years."""
        with pytest.raises(MalformedYearError):
            validate_year("２０１７", 2017)

    def test_both_kinds_share_a_base(self):
        """Test callers can catch every rejection at once."""
        assert issubclass(MalformedYearError, YearRejectedError)
        assert issubclass(YearOutOfRangeError, YearRejectedError)
        assert issubclass(YearRejectedError, ValueError)

    def test_earliest_year_floor(self):
        """Test the absolute floor wins over a wide window."""
        with pytest.raises(YearOutOfRangeError):
            validate_year(2014, 2017, years_back=10)
        assert validate_year(2015, 2017, years_back=10) == 2015

    def test_custom_window(self):
        """Test the window follows its configuration."""
        assert year_window(2026, years_back=0, years_ahead=1) == (2026, 2027)
        with pytest.raises(YearOutOfRangeError):
            validate_year(2025, 2026, years_back=0, years_ahead=1)


class TestValidateMonth:
    """Tests for month validation."""

    @pytest.mark.parametrize("month", ["1", "01", "11", 12])
    def test_accepts_months(self, month):
        assert 1 <= validate_month(month) <= 12

    @pytest.mark.parametrize("month", ["0", "13", 0])
    def test_rejects_out_of_range(self, month):
        with pytest.raises(MonthOutOfRangeError):
            validate_month(month)

    @pytest.mark.parametrize("month", ["nov", "", "1.5"])
    def test_rejects_malformed(self, month):
        with pytest.raises(MalformedMonthError):
            validate_month(month)


class TestValidateCalendarYear:
    """Tests for reporting years."""

    def test_accepts_any_calendar_year(self):
        assert validate_calendar_year("1999") == 1999

    def test_rejects_year_zero(self):
        with pytest.raises(YearOutOfRangeError):
            validate_calendar_year("0")

    def test_rejects_malformed(self):
        with pytest.raises(MalformedYearError):
            validate_calendar_year("abcd")
