"""Candidate ranking: enumerate, filter, score and order (date, crew) placements."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from itertools import combinations
from typing import Dict, List, Sequence, Tuple

from placement_advisor.config import AdvisorConfig, parse_hhmm
from placement_advisor.domain.types import CandidateSlot, ScoreBreakdown, Technician
from placement_advisor.services.calendar import at_time, enumerate_dates, parse_date_key
from placement_advisor.services.due_penalty import due_penalty
from placement_advisor.services.feasibility import check_feasibility
from placement_advisor.services.travel import travel_points
from placement_advisor.services.workload import DayLoad, WorkloadIndex, entry_end

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementTarget:
    """What the ranking engine needs to know about the job being placed."""

    job_id: str
    location: str
    estimated_hours: float
    due_date: date


@dataclass(frozen=True)
class RankingOptions:
    date_from: date
    date_to: date
    crew_size: int
    due_policy: str
    max_candidates: int
    include_travel: bool = False
    buffer_minutes: int = 0


def load_points(load_hours: float, points_per_hour: float) -> float:
    return float(round(load_hours * points_per_hour))


def crew_combinations(technicians: Sequence[Technician], crew_size: int) -> List[Tuple[Technician, ...]]:
    """All crews of ``crew_size`` drawn from the pool, members ordered by id."""
    pool = sorted(technicians, key=lambda t: t.technician_id)
    if crew_size < 1 or crew_size > len(pool):
        return []
    return list(combinations(pool, crew_size))


def proposed_start(day: date, load: DayLoad, buffer_minutes: int, default_start: time) -> datetime:
    last = load.last_entry
    if last is None:
        return at_time(day, default_start)
    return entry_end(last) + timedelta(minutes=buffer_minutes)


def describe(
    breakdown: ScoreBreakdown,
    days_until_due: int,
    crew_size: int,
    due_policy: str,
    include_travel: bool,
    other_jobs: int,
) -> str:
    parts = []
    if breakdown.load_hours == 0 and other_jobs == 0:
        parts.append("No conflicts")
    if crew_size > 1:
        parts.append(f"crew averages {breakdown.load_hours:.1f}h booked")
    else:
        parts.append(f"technician has {breakdown.load_hours:.1f}h booked")

    if days_until_due > 0:
        parts.append(f"{days_until_due} day(s) before due date")
    elif days_until_due == 0:
        parts.append("on due date")
    else:
        parts.append(f"{-days_until_due} day(s) past due ({due_policy} due mode)")

    if include_travel:
        if breakdown.travel_points > 0:
            parts.append(f"+{breakdown.travel_points:g} travel pts ({other_jobs} other job(s) that day)")
        else:
            parts.append("low travel impact")

    text = ", ".join(parts)
    return text[0].upper() + text[1:]


def rank_candidates(
    target: PlacementTarget,
    technicians: Sequence[Technician],
    workload: WorkloadIndex,
    options: RankingOptions,
    config: AdvisorConfig,
) -> List[CandidateSlot]:
    """
    Score every feasible (date, crew) pair in the window and return the best.

    Infeasible pairs are dropped before scoring; a crew is feasible only when
    every member is. Load is the crew's average committed hours on the date,
    travel (when enabled) the sum over members. Lower scores rank first; ties
    break on date then technician ids.

    Args:
        target: Job being placed
        technicians: Technician pool
        workload: Committed work over the snapshot
        options: Window, crew size, due policy, result cap, travel switch
        config: Policy and scoring weights

    Returns:
        Up to ``options.max_candidates`` candidates, best first
    """
    crews = crew_combinations(technicians, options.crew_size)
    if not crews:
        return []

    policy = config.policy
    weights = config.weights
    default_start = parse_hhmm(config.default_start)
    candidates: List[CandidateSlot] = []
    rejected = 0

    for date_key in enumerate_dates(options.date_from, options.date_to, config.max_window_days):
        day = parse_date_key(date_key)
        penalty = due_penalty(target.due_date, day, options.due_policy, weights)
        loads: Dict[str, DayLoad] = {}
        feasible_ids = set()
        for tech in {t.technician_id: t for crew in crews for t in crew}.values():
            load = workload.get(tech.technician_id, day)
            loads[tech.technician_id] = load
            check = check_feasibility(
                day, tech, load, target.estimated_hours, policy, options.buffer_minutes,
            )
            if check.feasible:
                feasible_ids.add(tech.technician_id)
            else:
                rejected += 1
                logger.debug("Skip %s on %s for job %s: %s", tech.technician_id, date_key, target.job_id, check.reason)

        for crew in crews:
            ids = tuple(t.technician_id for t in crew)
            if not all(tid in feasible_ids for tid in ids):
                continue

            crew_loads = [loads[tid] for tid in ids]
            load_hours = sum(l.hours for l in crew_loads) / len(crew_loads)
            other_jobs = sum(l.job_count for l in crew_loads)
            travel = 0.0
            if options.include_travel:
                travel = sum(travel_points(target.location, l.entries, weights) for l in crew_loads)
            breakdown = ScoreBreakdown(
                due_penalty_points=penalty.points,
                due_penalty_days=penalty.days,
                load_points=load_points(load_hours, weights.load_points_per_hour),
                load_hours=load_hours,
                travel_points=travel,
            )
            start = max(
                proposed_start(day, l, options.buffer_minutes, default_start) for l in crew_loads
            )
            candidates.append(
                CandidateSlot(
                    date=day,
                    technician_ids=ids,
                    score=breakdown.total,
                    breakdown=breakdown,
                    reason=describe(
                        breakdown, penalty.days_until_due, len(ids), options.due_policy,
                        options.include_travel, other_jobs,
                    ),
                    start=start,
                    due_policy=options.due_policy,
                    include_travel=options.include_travel,
                )
            )

    candidates.sort(key=lambda c: c.sort_key)
    logger.debug(
        "Job %s: %d feasible candidates, %d technician-days rejected",
        target.job_id, len(candidates), rejected,
    )
    return candidates[: options.max_candidates]
