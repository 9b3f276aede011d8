"""Advisor entrypoints: due-soon placement, move-job, and apply."""

from __future__ import annotations

import logging
import time as _time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence, Tuple

from placement_advisor.config import AdvisorConfig, parse_hhmm
from placement_advisor.domain.snapshot import PlacementWriter, SnapshotSource
from placement_advisor.domain.types import (
    CandidateSlot,
    DueSoonPlacementRequest,
    DueSoonPlacementResult,
    JobToPlace,
    MoveJobRequest,
    MoveJobResult,
    Suggestion,
    Technician,
)
from placement_advisor.errors import AdvisorError, AdvisorValidationError, RecordNotFoundError, StaleSuggestionError
from placement_advisor.services.calendar import validate_window
from placement_advisor.services.estimates import estimate_job_hours
from placement_advisor.services.feasibility import check_feasibility
from placement_advisor.services.names import TechnicianNameCache
from placement_advisor.services.workload import WorkloadIndex

from .assembly import build_suggestion, name_candidates
from .ranking import PlacementTarget, RankingOptions, proposed_start, rank_candidates

logger = logging.getLogger(__name__)

# (job title, due date, candidates) -> one rewritten reason per candidate
ReasonEnhancer = Callable[[str, date, Sequence[CandidateSlot]], Sequence[str]]


class PlacementAdvisor:
    """
    Scores and ranks candidate (date, technician) placements for jobs.

    Each analysis reads one snapshot from ``source`` up front and is otherwise
    a pure function of that snapshot, the request and the configuration.
    """

    def __init__(
        self,
        source: SnapshotSource,
        config: AdvisorConfig | None = None,
        writer: PlacementWriter | None = None,
        reason_enhancer: ReasonEnhancer | None = None,
        workers: int = 1,
    ):
        """
        Args:
            source: Snapshot collaborator (technicians, schedules, due-soon jobs)
            config: Policy, weights and limits (defaults if omitted)
            writer: Collaborator used by ``apply_placement``; falls back to
                ``source`` when it has an ``update_job`` method
            reason_enhancer: Optional rewriter of move-job reason strings
            workers: Thread count for evaluating due-soon jobs in a batch
        """
        self.source = source
        self.config = config or AdvisorConfig()
        self.writer = writer
        self.reason_enhancer = reason_enhancer
        self.workers = max(1, int(workers))
        self.names = TechnicianNameCache()

    def _technician_pool(
        self, roster: List[Technician], technician_ids: Optional[Tuple[str, ...]]
    ) -> List[Technician]:
        if not technician_ids:
            return list(roster)
        wanted = set(technician_ids)
        pool = [t for t in roster if t.technician_id in wanted]
        unknown = wanted - {t.technician_id for t in pool}
        if unknown:
            logger.warning("Ignoring unknown technician ids: %s", ", ".join(sorted(unknown)))
        return pool

    def _load_roster(self) -> List[Technician]:
        roster = self.source.get_technicians(None)
        self.names.clear()
        self.names.update(roster)
        return roster

    def analyze_due_soon_placement(self, request: DueSoonPlacementRequest) -> DueSoonPlacementResult:
        """
        Rank placements for unscheduled due-soon jobs.

        Suggestions come back in request order. A job with no feasible slot in
        the window gets an empty candidate list (``no_viable_slot``); unknown
        job ids are skipped. The crew size is clamped to the technician pool,
        so an empty pool yields empty candidate lists rather than an error.

        Raises:
            AdvisorValidationError: Malformed window
        """
        started = _time.monotonic()
        date_from, date_to = validate_window(request.date_from, request.date_to, self.config.max_window_days)
        self.names.clear()

        job_ids = list(dict.fromkeys(request.job_ids))
        if not job_ids:
            return DueSoonPlacementResult()

        roster = self._load_roster()
        pool = self._technician_pool(roster, request.technician_ids)
        crew_size = min(request.crew_size, len(pool))
        if crew_size < request.crew_size:
            logger.info("Crew size clamped from %d to %d technician(s)", request.crew_size, crew_size)

        found = {job.job_id: job for job in self.source.get_due_soon_jobs(job_ids)}
        missing = [jid for jid in job_ids if jid not in found]
        if missing:
            logger.warning("Skipping unknown or already scheduled jobs: %s", ", ".join(missing))
        jobs = [found[jid] for jid in job_ids if jid in found]
        if not jobs:
            return DueSoonPlacementResult()

        schedules = self.source.get_schedules(date_from, date_to)
        workload = WorkloadIndex(schedules, roster_ids={t.technician_id for t in roster})
        options = RankingOptions(
            date_from=date_from,
            date_to=date_to,
            crew_size=max(crew_size, 1),
            due_policy=request.due_policy,
            max_candidates=request.max_candidates or self.config.max_candidates,
            include_travel=False,
            buffer_minutes=self.config.policy.buffer_minutes,
        )

        def evaluate(job: JobToPlace) -> Suggestion:
            target = PlacementTarget(job.job_id, job.location, job.estimated_hours, job.due_date)
            candidates = rank_candidates(target, pool, workload, options, self.config)
            if not candidates:
                logger.info("No viable slot for job %s in %s..%s", job.job_id, date_from, date_to)
            return build_suggestion(job, candidates, self.names)

        if self.workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                suggestions = list(executor.map(evaluate, jobs))
        else:
            suggestions = [evaluate(job) for job in jobs]

        logger.info(
            "Due-soon placement: %d job(s), %d technician(s), %d schedule(s) in %.0f ms",
            len(jobs), len(pool), len(schedules), (_time.monotonic() - started) * 1000,
        )
        return DueSoonPlacementResult(suggestions=tuple(suggestions))

    def analyze_move_job(self, request: MoveJobRequest) -> MoveJobResult:
        """
        Rank new (date, crew) placements for an existing schedule entry.

        The entry's current date acts as its due date. Its own record is left
        out of the workload, and travel points are included in the score.

        Raises:
            AdvisorValidationError: Malformed window or too few technicians
            RecordNotFoundError: The schedule does not exist
        """
        started = _time.monotonic()
        date_from, date_to = validate_window(request.date_from, request.date_to, self.config.max_window_days)

        schedule = self.source.get_schedule(request.schedule_id)
        if schedule is None:
            raise RecordNotFoundError(f"Schedule not found: {request.schedule_id}")

        roster = self._load_roster()
        pool = self._technician_pool(roster, request.technician_ids)
        if len(pool) < request.crew_size:
            raise AdvisorValidationError(
                f"Select at least {request.crew_size} technicians to build crew suggestions."
            )
        schedules = self.source.get_schedules(date_from, date_to)
        workload = WorkloadIndex(
            schedules,
            roster_ids={t.technician_id for t in roster},
            exclude_ids={schedule.schedule_id},
        )

        target = PlacementTarget(
            job_id=schedule.schedule_id,
            location=schedule.location,
            estimated_hours=estimate_job_hours(schedule.hours),
            due_date=schedule.day,
        )
        options = RankingOptions(
            date_from=date_from,
            date_to=date_to,
            crew_size=request.crew_size,
            due_policy=request.due_policy,
            max_candidates=request.max_candidates or self.config.max_candidates,
            include_travel=True,
            buffer_minutes=request.buffer_minutes,
        )
        candidates = name_candidates(rank_candidates(target, pool, workload, options, self.config), self.names)

        ai_used = False
        ai_skip_reason = None
        if request.include_ai and candidates:
            candidates, ai_used, ai_skip_reason = self._enhance_reasons(
                schedule.job_title or "Scheduled Job", target.due_date, candidates
            )

        logger.info(
            "Move-job %s: %d candidate(s) from %d technician(s) in %.0f ms",
            schedule.schedule_id, len(candidates), len(pool), (_time.monotonic() - started) * 1000,
        )
        return MoveJobResult(
            candidates=candidates,
            due_policy=request.due_policy,
            crew_size=request.crew_size,
            ai_used=ai_used,
            ai_skip_reason=ai_skip_reason,
        )

    def _enhance_reasons(
        self, job_title: str, due_date: date, candidates: Tuple[CandidateSlot, ...]
    ) -> Tuple[Tuple[CandidateSlot, ...], bool, Optional[str]]:
        if self.reason_enhancer is None:
            return candidates, False, "No reason enhancer configured"
        try:
            reasons = list(self.reason_enhancer(job_title, due_date, candidates))
            if len(reasons) != len(candidates):
                raise ValueError(f"expected {len(candidates)} reasons, got {len(reasons)}")
        except Exception as e:  # enhancer failures must never break an analysis
            logger.warning("Reason enhancer failed, keeping rule-based reasons: %s", e)
            return candidates, False, f"Reason enhancer failed: {e}"
        enhanced = tuple(
            replace(c, reason=str(r).strip() or c.reason) for c, r in zip(candidates, reasons)
        )
        return enhanced, True, None

    def apply_placement(
        self,
        job_id: str,
        candidate: CandidateSlot,
        estimated_hours: float,
        buffer_minutes: Optional[int] = None,
    ) -> datetime:
        """
        Re-validate a suggestion against current data and write it.

        Feasibility is re-run for every crew member on the candidate date,
        leaving ``job_id``'s own record out of the load. The start time is
        recomputed from current data and must still fall on the candidate
        date; the write is filed under that date.

        Returns:
            The start time written

        Raises:
            StaleSuggestionError: The slot is no longer feasible
            AdvisorError: No writer is available
        """
        writer = self.writer or self.source
        if not hasattr(writer, "update_job"):
            raise AdvisorError("No placement writer configured")

        day = candidate.date
        if buffer_minutes is None:
            buffer_minutes = self.config.policy.buffer_minutes
        technicians = {t.technician_id: t for t in self.source.get_technicians(list(candidate.technician_ids))}
        workload = WorkloadIndex(self.source.get_schedules(day, day), exclude_ids={job_id})

        reasons: List[str] = []
        loads = []
        for tech_id in candidate.technician_ids:
            tech = technicians.get(tech_id)
            if tech is None:
                reasons.append(f"{tech_id}: no longer on the roster")
                continue
            load = workload.get(tech_id, day)
            loads.append(load)
            check = check_feasibility(day, tech, load, estimated_hours, self.config.policy, buffer_minutes)
            if not check.feasible:
                reasons.append(f"{tech_id}: {check.reason}")

        if reasons:
            raise StaleSuggestionError(
                f"Suggested slot {day} for job {job_id} is no longer feasible", reasons
            )

        default_start = parse_hhmm(self.config.default_start)
        start = max(proposed_start(day, load, buffer_minutes, default_start) for load in loads)
        if start.date() != day:
            raise StaleSuggestionError(
                f"Suggested slot {day} for job {job_id} is no longer feasible",
                [f"crew is booked until {start.isoformat()}, past the end of {day}"],
            )
        writer.update_job(job_id, start, list(candidate.technician_ids), service_date=day)
        logger.info("Applied job %s on %s with %s", job_id, day, ", ".join(candidate.technician_ids))
        return start
