"""Per-technician, per-day workload aggregation."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from placement_advisor.domain.types import ScheduleEntry

logger = logging.getLogger(__name__)

TechDayKey = Tuple[str, date]


def entry_hours(entry: ScheduleEntry) -> float:
    """Committed hours of an entry; missing, non-finite or negative -> 0."""
    hours = entry.hours
    if hours is None:
        return 0.0
    try:
        hours = float(hours)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(hours) or hours < 0:
        return 0.0
    return hours


def entry_end(entry: ScheduleEntry) -> datetime:
    return entry.start_utc + timedelta(hours=entry_hours(entry))


@dataclass(frozen=True)
class DayLoad:
    """Committed work for one technician on one date."""

    hours: float = 0.0
    job_count: int = 0
    entries: Tuple[ScheduleEntry, ...] = ()

    @property
    def last_entry(self) -> Optional[ScheduleEntry]:
        return self.entries[-1] if self.entries else None


EMPTY_DAY = DayLoad()


def group_by_technician_day(
    entries: Iterable[ScheduleEntry],
    roster_ids: Optional[Set[str]] = None,
    exclude_ids: Optional[Set[str]] = None,
) -> Dict[TechDayKey, List[ScheduleEntry]]:
    """
    Index entries by (technician id, service date), each list sorted by start.

    Args:
        entries: Schedule entries in the snapshot
        roster_ids: If given, technician ids absent from the roster are skipped
        exclude_ids: Schedule ids to leave out (e.g. the job being moved)

    Returns:
        Dict of (technician_id, date) -> entries ordered by start time
    """
    exclude_ids = exclude_ids or set()
    grouped: Dict[TechDayKey, List[ScheduleEntry]] = defaultdict(list)

    for entry in entries:
        if entry.schedule_id in exclude_ids:
            continue
        for tech_id in entry.technician_ids:
            if roster_ids is not None and tech_id not in roster_ids:
                logger.debug(
                    "Schedule %s references technician %s not in roster, skipping",
                    entry.schedule_id, tech_id,
                )
                continue
            grouped[(tech_id, entry.day)].append(entry)

    for jobs in grouped.values():
        jobs.sort(key=lambda e: (e.start_utc, e.schedule_id))
    return dict(grouped)


def day_load(jobs: Iterable[ScheduleEntry]) -> DayLoad:
    jobs = tuple(jobs)
    return DayLoad(
        hours=sum(entry_hours(job) for job in jobs),
        job_count=len(jobs),
        entries=jobs,
    )


def aggregate_workload(
    technician_id: str,
    dates: Iterable[date],
    entries: Iterable[ScheduleEntry],
) -> Dict[date, DayLoad]:
    """
    Committed hours and job count per date for one technician.

    Only entries with ``technician_id`` among their assigned technicians
    count. An entry with invalid hours counts as zero hours but still counts
    as a job. Dates with no work map to an empty ``DayLoad``.
    """
    wanted = list(dates)
    wanted_set = set(wanted)
    per_day: Dict[date, List[ScheduleEntry]] = defaultdict(list)
    for entry in entries:
        if technician_id not in entry.technician_ids:
            continue
        if entry.day in wanted_set:
            per_day[entry.day].append(entry)

    result: Dict[date, DayLoad] = {}
    for day in wanted:
        jobs = sorted(per_day.get(day, []), key=lambda e: (e.start_utc, e.schedule_id))
        result[day] = day_load(jobs) if jobs else EMPTY_DAY
    return result


class WorkloadIndex:
    """Lookup of ``DayLoad`` by (technician, date) over one snapshot."""

    def __init__(
        self,
        entries: Iterable[ScheduleEntry],
        roster_ids: Optional[Set[str]] = None,
        exclude_ids: Optional[Set[str]] = None,
    ):
        grouped = group_by_technician_day(entries, roster_ids, exclude_ids)
        self._loads: Dict[TechDayKey, DayLoad] = {key: day_load(jobs) for key, jobs in grouped.items()}

    def get(self, technician_id: str, day: date) -> DayLoad:
        return self._loads.get((technician_id, day), EMPTY_DAY)

    def __len__(self) -> int:
        return len(self._loads)
