"""Hard feasibility checks for a (date, technician) placement."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, List, Optional, Tuple

from placement_advisor.config import SchedulingPolicy
from placement_advisor.domain.types import AvailabilityException, Technician

from .workload import DayLoad


@dataclass(frozen=True)
class FeasibilityCheck:
    feasible: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.feasible


OK = FeasibilityCheck(True)


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def blocked_hours(
    exceptions: Iterable[AvailabilityException],
    day_start: time,
    day_end: time,
) -> float:
    """
    Hours of the work-day window covered by partial-day exceptions.

    Overlapping exception ranges are merged so shared time is counted once.
    Exceptions with a missing or inverted range block nothing.
    """
    lo, hi = _minutes(day_start), _minutes(day_end)
    ranges: List[Tuple[int, int]] = []
    for exc in exceptions:
        if exc.is_full_day or exc.start_time is None or exc.end_time is None:
            continue
        start = max(lo, _minutes(exc.start_time))
        end = min(hi, _minutes(exc.end_time))
        if end > start:
            ranges.append((start, end))

    total = 0
    cur_start, cur_end = None, None
    for start, end in sorted(ranges):
        if cur_end is None or start > cur_end:
            if cur_end is not None:
                total += cur_end - cur_start
            cur_start, cur_end = start, end
        else:
            cur_end = max(cur_end, end)
    if cur_end is not None:
        total += cur_end - cur_start
    return total / 60.0


def check_feasibility(
    day: date,
    technician: Technician,
    load: DayLoad,
    job_hours: float,
    policy: SchedulingPolicy,
    buffer_minutes: Optional[int] = None,
) -> FeasibilityCheck:
    """
    Check whether a job can be placed with a technician on a date.

    Rules, all required:
    1. The weekday is in ``policy.allowed_days``
    2. Committed job count is below ``policy.max_jobs_per_day``
    3. No full-day exception (recurring weekday or one-time date) covers the date
    4. With a partial-day exception, the work-day window minus blocked time,
       committed hours and buffers still holds ``job_hours``
    5. Committed hours plus ``job_hours`` stay within ``policy.max_hours_per_day``

    Args:
        day: Candidate date
        technician: Technician with availability exceptions
        load: Technician's committed work on ``day``
        job_hours: Estimated duration of the job to place
        policy: Scheduling policy
        buffer_minutes: Gap required after each committed job (defaults to policy)

    Returns:
        FeasibilityCheck, with the first failing rule as ``reason``
    """
    if day.weekday() not in policy.allowed_days:
        return FeasibilityCheck(False, f"{day:%A} is not an allowed day")

    if load.job_count >= policy.max_jobs_per_day:
        return FeasibilityCheck(
            False, f"already has {load.job_count} job(s), max {policy.max_jobs_per_day} per day"
        )

    exceptions = technician.exceptions_on(day)
    if any(exc.is_full_day for exc in exceptions):
        return FeasibilityCheck(False, "unavailable all day")

    if load.hours + job_hours > policy.max_hours_per_day:
        return FeasibilityCheck(
            False, f"{load.hours + job_hours:.1f}h would exceed {policy.max_hours_per_day:g}h daily cap"
        )

    if exceptions:
        if buffer_minutes is None:
            buffer_minutes = policy.buffer_minutes
        blocked = blocked_hours(exceptions, policy.day_start, policy.day_end)
        buffers = load.job_count * buffer_minutes / 60.0
        remaining = policy.work_day_hours - blocked - load.hours - buffers
        if remaining < job_hours:
            return FeasibilityCheck(
                False, f"only {max(0.0, remaining):.1f}h left around partial-day unavailability"
            )

    return OK


def is_feasible(
    day: date,
    technician: Technician,
    load: DayLoad,
    job_hours: float,
    policy: SchedulingPolicy,
    buffer_minutes: Optional[int] = None,
) -> bool:
    return check_feasibility(day, technician, load, job_hours, policy, buffer_minutes).feasible
