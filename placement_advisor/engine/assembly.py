"""Suggestion assembly: package ranked candidates for display and audit."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional, Tuple

from placement_advisor.domain.types import CandidateSlot, JobToPlace, PreviousScheduleReference, Suggestion
from placement_advisor.services.names import TechnicianNameCache


def name_candidates(candidates: Iterable[CandidateSlot], names: TechnicianNameCache) -> Tuple[CandidateSlot, ...]:
    return tuple(replace(c, technician_names=names.names(c.technician_ids)) for c in candidates)


def name_previous(
    previous: Optional[PreviousScheduleReference], names: TechnicianNameCache
) -> Optional[PreviousScheduleReference]:
    if previous is None or previous.technician_names:
        return previous
    return replace(previous, technician_names=names.names(previous.technician_ids))


def build_suggestion(
    job: JobToPlace,
    candidates: Iterable[CandidateSlot],
    names: TechnicianNameCache,
) -> Suggestion:
    """Attach job context and technician names to an already-ranked list."""
    return Suggestion(
        job_id=job.job_id,
        title=job.title,
        location=job.location,
        due_date=job.due_date,
        estimated_hours=job.estimated_hours,
        candidates=name_candidates(candidates, names),
        previous_schedule=name_previous(job.previous_schedule, names),
        invoice_ref=job.invoice_ref,
    )
