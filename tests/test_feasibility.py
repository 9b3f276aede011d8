"""Tests for hard feasibility rules."""

from datetime import date, datetime, time, timezone

import pytest

from placement_advisor.config import ALL_DAYS, SchedulingPolicy
from placement_advisor.domain.types import AvailabilityException, ScheduleEntry, Technician
from placement_advisor.services.feasibility import blocked_hours, check_feasibility, is_feasible
from placement_advisor.services.workload import EMPTY_DAY, day_load

MONDAY = date(2024, 6, 3)
SATURDAY = date(2024, 6, 1)


def _jobs(n, hours=1.0):
    return day_load(
        ScheduleEntry(f"s{i}", ("t1",), datetime(2024, 6, 3, 8 + i, tzinfo=timezone.utc), hours)
        for i in range(n)
    )


@pytest.fixture
def policy():
    return SchedulingPolicy()


@pytest.fixture
def tech():
    return Technician("t1", "Alex Reed")


def test_open_weekday_is_feasible(policy, tech):
    assert is_feasible(MONDAY, tech, EMPTY_DAY, 4.0, policy)


def test_disallowed_weekday(policy, tech):
    check = check_feasibility(SATURDAY, tech, EMPTY_DAY, 4.0, policy)
    assert not check
    assert "Saturday" in check.reason
    assert is_feasible(SATURDAY, tech, EMPTY_DAY, 4.0, SchedulingPolicy(allowed_days=ALL_DAYS))


def test_max_jobs_per_day(policy, tech):
    assert is_feasible(MONDAY, tech, _jobs(3), 1.0, policy)
    assert not is_feasible(MONDAY, tech, _jobs(4), 1.0, policy)


def test_recurring_full_day_exception(policy):
    tech = Technician("t1", "Alex Reed", exceptions=(
        AvailabilityException("t1", is_recurring=True, is_full_day=True, day_of_week=0),
    ))
    assert not is_feasible(MONDAY, tech, EMPTY_DAY, 1.0, policy)
    assert is_feasible(date(2024, 6, 4), tech, EMPTY_DAY, 1.0, policy)


def test_one_time_full_day_exception(policy):
    tech = Technician("t1", "Alex Reed", exceptions=(
        AvailabilityException("t1", is_recurring=False, is_full_day=True, specific_date=MONDAY),
    ))
    check = check_feasibility(MONDAY, tech, EMPTY_DAY, 1.0, policy)
    assert check.reason == "unavailable all day"
    assert is_feasible(date(2024, 6, 10), tech, EMPTY_DAY, 1.0, policy)


def test_partial_day_exception_leaves_capacity(policy):
    # 08:00-17:00 minus 12:00-16:00 leaves 5h
    tech = Technician("t1", "Alex Reed", exceptions=(
        AvailabilityException("t1", False, False, specific_date=MONDAY,
                              start_time=time(12, 0), end_time=time(16, 0)),
    ))
    assert is_feasible(MONDAY, tech, EMPTY_DAY, 5.0, policy)
    assert not is_feasible(MONDAY, tech, EMPTY_DAY, 5.5, policy)
    # 2h already booked leaves 3h
    assert not is_feasible(MONDAY, tech, _jobs(1, hours=2.0), 4.0, policy)
    # buffers count against remaining time
    assert not is_feasible(MONDAY, tech, _jobs(1, hours=2.0), 3.0, policy, buffer_minutes=30)


def test_daily_hours_cap(tech):
    policy = SchedulingPolicy(max_hours_per_day=8)
    assert is_feasible(MONDAY, tech, _jobs(1, hours=4.0), 4.0, policy)
    assert not is_feasible(MONDAY, tech, _jobs(1, hours=4.0), 4.5, policy)


def test_blocked_hours_merges_overlaps():
    exceptions = [
        AvailabilityException("t1", False, False, specific_date=MONDAY, start_time=time(9), end_time=time(11)),
        AvailabilityException("t1", False, False, specific_date=MONDAY, start_time=time(10), end_time=time(12)),
        AvailabilityException("t1", False, False, specific_date=MONDAY, start_time=time(16), end_time=time(19)),
    ]
    # 09-12 merged, 16-17 clipped to the work day
    assert blocked_hours(exceptions, time(8), time(17)) == 4.0


def test_blocked_hours_ignores_inverted_ranges():
    exc = AvailabilityException("t1", False, False, specific_date=MONDAY, start_time=time(14), end_time=time(10))
    assert blocked_hours([exc], time(8), time(17)) == 0.0
