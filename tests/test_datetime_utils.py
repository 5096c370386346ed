"""
Tests for the shared date helpers.
"""
from datetime import date, datetime, timedelta

import pytest

from shopplan.datetime_utils import (
    add_business_days,
    format_datetime_local,
    is_working_day,
    parse_iso_date,
)


# ==============================================================================
# parse_iso_date
# ==============================================================================

class TestParseIsoDate:
    """Tests for lenient date parsing."""

    def test_plain_date_string(self):
        assert parse_iso_date('2025-03-10') == date(2025, 3, 10)

    def test_timestamp_string(self):
        assert parse_iso_date('2025-03-10T23:59:00.000Z') == date(2025, 3, 10)

    def test_datetime_object(self):
        assert parse_iso_date(datetime(2025, 3, 10, 8, 30)) == date(2025, 3, 10)

    def test_date_object(self):
        assert parse_iso_date(date(2025, 3, 10)) == date(2025, 3, 10)

    @pytest.mark.parametrize("value", [None, '', 'tomorrow', '2025-13-01', '10/03/2025', 42])
    def test_unparseable_returns_default(self, value):
        fallback = date(2000, 1, 1)
        assert parse_iso_date(value, default=fallback) == fallback

    def test_default_is_none(self):
        assert parse_iso_date('nope') is None


# ==============================================================================
# add_business_days
# ==============================================================================

class TestAddBusinessDays:

    def test_within_week(self):
        assert add_business_days(date(2025, 3, 10), 3) == date(2025, 3, 13)

    def test_over_weekend(self):
        assert add_business_days(date(2025, 3, 13), 2) == date(2025, 3, 17)

    def test_from_sunday(self):
        assert add_business_days(date(2025, 3, 16), 1) == date(2025, 3, 17)

    def test_zero_days(self):
        assert add_business_days(date(2025, 3, 15), 0) == date(2025, 3, 15)

    def test_datetime_input(self):
        assert add_business_days(datetime(2025, 3, 14, 17, 0), 1) == date(2025, 3, 17)

    def test_ten_days_is_two_weeks(self):
        assert add_business_days(date(2025, 3, 10), 10) == date(2025, 3, 24)

    def test_five_days_from_saturday_ends_friday(self):
        assert add_business_days(date(2025, 3, 15), 5) == date(2025, 3, 21)

    @pytest.mark.parametrize("start_day", range(10, 17))
    def test_matches_day_by_day_count(self, start_day):
        """Whole weeks are skipped arithmetically; the result equals stepping one day at a time."""
        start = date(2025, 3, start_day)
        for business_days in range(0, 23):
            expected = start
            counted = 0
            while counted < business_days:
                expected += timedelta(days=1)
                if expected.weekday() < 5:
                    counted += 1
            assert add_business_days(start, business_days) == expected, business_days

    def test_large_count_is_fast(self):
        assert add_business_days(date(2025, 3, 10), 1000) == date(2029, 1, 8)

    def test_out_of_range_raises_overflow(self):
        with pytest.raises(OverflowError):
            add_business_days(date(9999, 12, 31), 1)
        with pytest.raises(OverflowError):
            add_business_days(date(2025, 3, 10), 5_000_000)


class TestIsWorkingDay:

    def test_weekdays(self):
        assert all(is_working_day(date(2025, 3, day)) for day in range(10, 15))

    def test_weekend(self):
        assert not is_working_day(date(2025, 3, 15))
        assert not is_working_day(date(2025, 3, 16))


# ==============================================================================
# format_datetime_local
# ==============================================================================

class TestFormatDatetimeLocal:

    def test_naive_is_treated_as_utc(self):
        # Sao Paulo is UTC-3 with no daylight saving in 2025
        assert format_datetime_local(datetime(2025, 3, 10, 15, 0, 0)) == "March 10, 2025 12:00:00 PM"

    def test_explicit_timezone(self):
        assert format_datetime_local(datetime(2025, 3, 10, 15, 0, 0), "UTC") == "March 10, 2025 03:00:00 PM"

    def test_iso_string(self):
        assert format_datetime_local("2025-03-10T15:00:00Z", "UTC") == "March 10, 2025 03:00:00 PM"

    def test_unknown_timezone_falls_back(self):
        assert format_datetime_local(datetime(2025, 3, 10, 15, 0, 0), "Mars/Olympus") == "March 10, 2025 12:00:00 PM"

    def test_none(self):
        assert format_datetime_local(None) is None

    def test_unparseable_string_returned_as_is(self):
        assert format_datetime_local("yesterday") == "yesterday"
