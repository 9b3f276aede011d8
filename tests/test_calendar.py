"""Tests for date keys, window validation and schedule start parsing."""

from datetime import date, datetime, timezone

import pytest

from placement_advisor.errors import AdvisorValidationError
from placement_advisor.services.calendar import (
    enumerate_dates,
    parse_date_key,
    parse_schedule_start,
    to_date_key,
    validate_window,
)


def test_enumerate_dates_inclusive_and_ascending():
    keys = enumerate_dates(date(2024, 6, 1), date(2024, 6, 10))
    assert len(keys) == 10
    assert keys[0] == "2024-06-01"
    assert keys[-1] == "2024-06-10"
    assert keys == sorted(keys)


def test_enumerate_dates_crosses_leap_day():
    assert enumerate_dates(date(2024, 2, 28), date(2024, 3, 1)) == ["2024-02-28", "2024-02-29", "2024-03-01"]


def test_enumerate_dates_empty_when_reversed():
    assert enumerate_dates(date(2024, 6, 10), date(2024, 6, 1)) == []


def test_enumerate_dates_truncates_long_window():
    keys = enumerate_dates(date(2024, 1, 1), date(2025, 12, 31), max_days=366)
    assert len(keys) == 366
    assert keys[0] == "2024-01-01"


def test_date_key_round_trip_uses_calendar_components():
    late_evening = datetime(2024, 6, 3, 23, 30, tzinfo=timezone.utc)
    assert to_date_key(late_evening) == "2024-06-03"
    assert parse_date_key("2024-06-03") == date(2024, 6, 3)


@pytest.mark.parametrize("bad", ["", "2024-6", "2024-13-01", "2024-02-30", "June 3", "2024/06/03"])
def test_parse_date_key_malformed_returns_none(bad):
    assert parse_date_key(bad) is None


def test_validate_window_rejects_malformed_and_reversed():
    with pytest.raises(AdvisorValidationError):
        validate_window("2024-13-01", "2024-12-31")
    with pytest.raises(AdvisorValidationError):
        validate_window("2024-06-10", "2024-06-01")
    with pytest.raises(AdvisorValidationError):
        validate_window("2024-01-01", "2025-12-31", max_days=366)


def test_validate_window_single_day():
    assert validate_window("2024-06-01", "2024-06-01") == (date(2024, 6, 1), date(2024, 6, 1))


def test_parse_legacy_locale_pm():
    parsed = parse_schedule_start("6/3/2024, 2:30:00 PM")
    assert parsed.instant == datetime(2024, 6, 3, 14, 30, tzinfo=timezone.utc)
    assert parsed.service_date == date(2024, 6, 3)


def test_parse_legacy_locale_midnight_and_noon():
    """12 AM is hour 0 and 12 PM is hour 12."""
    assert parse_schedule_start("6/3/2024, 12:15:00 AM").instant.hour == 0
    assert parse_schedule_start("6/3/2024 12:05 PM").instant.hour == 12


def test_parse_legacy_locale_date_only():
    parsed = parse_schedule_start("12/31/2024")
    assert parsed.instant == datetime(2024, 12, 31, tzinfo=timezone.utc)


def test_parse_naive_iso_is_utc():
    parsed = parse_schedule_start("2024-06-03T09:00:00")
    assert parsed.instant == datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)


def test_parse_offset_iso_keeps_written_date():
    # 23:30 at -05:00 is already the next day in UTC
    parsed = parse_schedule_start("2024-06-03T23:30:00-05:00")
    assert parsed.instant == datetime(2024, 6, 4, 4, 30, tzinfo=timezone.utc)
    assert parsed.service_date == date(2024, 6, 3)


def test_parse_datetime_and_date_values():
    naive = parse_schedule_start(datetime(2024, 6, 3, 10, 0))
    assert naive.instant.tzinfo is not None
    assert parse_schedule_start(date(2024, 6, 3)).service_date == date(2024, 6, 3)


@pytest.mark.parametrize("bad", [None, "", "not a date", "13/45/2024, 9:00:00 AM"])
def test_parse_schedule_start_unparseable(bad):
    assert parse_schedule_start(bad) is None
