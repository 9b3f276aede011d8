"""Travel/disruption approximation for inserting a job into a technician's day."""

from __future__ import annotations

from typing import Iterable

from placement_advisor.config import ScoringWeights
from placement_advisor.domain.types import ScheduleEntry


def normalize_location(location: str | None) -> str:
    return " ".join(str(location or "").lower().split())


def travel_points(
    job_location: str,
    day_jobs: Iterable[ScheduleEntry],
    weights: ScoringWeights | None = None,
) -> float:
    """
    Fixed points per other job already on the technician's day.

    No drive-time data is used. Jobs at the same address as the new job add
    nothing since no extra leg is driven for them.
    """
    weights = weights or ScoringWeights()
    target = normalize_location(job_location)
    others = [job for job in day_jobs if not target or normalize_location(job.location) != target]
    return len(others) * weights.travel_points_per_job
