"""Snapshot and result types consumed and produced by the advisor.

These are plain frozen dataclasses. The advisor never mutates them; the ORM
records in ``models`` are converted into these by the repositories.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Tuple

from placement_advisor.config import normalize_due_policy
from placement_advisor.errors import AdvisorValidationError


@dataclass(frozen=True)
class AvailabilityException:
    """A block of time a technician is unavailable.

    Recurring exceptions match on ``day_of_week`` (Monday=0); one-time
    exceptions match on ``specific_date``. Partial-day exceptions carry a
    ``start_time``/``end_time`` range.
    """

    technician_id: str
    is_recurring: bool
    is_full_day: bool
    day_of_week: Optional[int] = None
    specific_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    def applies_to(self, day: date) -> bool:
        if self.is_recurring:
            return self.day_of_week is not None and day.weekday() == self.day_of_week
        return self.specific_date is not None and self.specific_date == day


@dataclass(frozen=True)
class Technician:
    technician_id: str
    name: str
    depot_address: Optional[str] = None
    exceptions: Tuple[AvailabilityException, ...] = ()

    def exceptions_on(self, day: date) -> List[AvailabilityException]:
        return [exc for exc in self.exceptions if exc.applies_to(day)]


@dataclass(frozen=True)
class ScheduleEntry:
    """Already-committed work. ``start`` is a UTC instant.

    ``service_date`` pins the calendar date the entry belongs to when it was
    parsed from a string carrying its own date (see ``services.calendar``);
    otherwise the UTC date of ``start`` is used.
    """

    schedule_id: str
    technician_ids: Tuple[str, ...]
    start: datetime
    hours: Optional[float]
    location: str = ""
    job_title: str = ""
    invoice_ref: Optional[str] = None
    service_date: Optional[date] = None

    @property
    def start_utc(self) -> datetime:
        if self.start.tzinfo is None:
            return self.start.replace(tzinfo=timezone.utc)
        return self.start.astimezone(timezone.utc)

    @property
    def day(self) -> date:
        if self.service_date is not None:
            return self.service_date
        return self.start_utc.date()


@dataclass(frozen=True)
class PreviousScheduleReference:
    start: datetime
    technician_ids: Tuple[str, ...]
    hours: float
    technician_names: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "startDateTime": self.start.isoformat(),
            "assignedTechnicians": list(self.technician_ids),
            "technicianNames": list(self.technician_names),
            "hours": self.hours,
        }


@dataclass(frozen=True)
class JobToPlace:
    job_id: str
    title: str
    location: str
    estimated_hours: float
    due_date: date
    invoice_ref: Optional[str] = None
    previous_schedule: Optional[PreviousScheduleReference] = None


@dataclass(frozen=True)
class ScoreBreakdown:
    due_penalty_points: float
    due_penalty_days: int
    load_points: float
    load_hours: float
    travel_points: float = 0.0

    @property
    def total(self) -> float:
        return self.due_penalty_points + self.load_points + self.travel_points

    def as_dict(self, include_travel: bool = True) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "duePenaltyPoints": self.due_penalty_points,
            "duePenaltyDays": self.due_penalty_days,
            "loadPoints": self.load_points,
            "loadHours": round(self.load_hours, 2),
        }
        if include_travel:
            out["travelPoints"] = self.travel_points
        out["totalScore"] = self.total
        return out


@dataclass(frozen=True)
class CandidateSlot:
    date: date
    technician_ids: Tuple[str, ...]
    score: float
    breakdown: ScoreBreakdown
    reason: str
    start: Optional[datetime] = None
    technician_names: Tuple[str, ...] = ()
    due_policy: str = "soft"
    include_travel: bool = False

    @property
    def sort_key(self) -> Tuple[float, date, Tuple[str, ...]]:
        return (self.score, self.date, self.technician_ids)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "startDateTime": self.start.isoformat() if self.start else None,
            "technicianIds": list(self.technician_ids),
            "technicianNames": list(self.technician_names),
            "score": self.score,
            "scoreBreakdown": {
                **self.breakdown.as_dict(include_travel=self.include_travel),
                "duePolicy": self.due_policy,
            },
            "reason": self.reason,
        }


@dataclass(frozen=True)
class Suggestion:
    job_id: str
    title: str
    location: str
    due_date: date
    estimated_hours: float
    candidates: Tuple[CandidateSlot, ...]
    previous_schedule: Optional[PreviousScheduleReference] = None
    invoice_ref: Optional[str] = None

    @property
    def no_viable_slot(self) -> bool:
        return not self.candidates

    def as_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "jobTitle": self.title,
            "location": self.location,
            "dateDue": self.due_date.isoformat(),
            "estimatedHours": self.estimated_hours,
            "invoiceRef": self.invoice_ref,
            "previousSchedule": self.previous_schedule.as_dict() if self.previous_schedule else None,
            "noViableSlot": self.no_viable_slot,
            "candidates": [c.as_dict() for c in self.candidates],
        }


def _check_common(date_from: str, date_to: str, crew_size: int, due_policy: str, max_candidates: Optional[int]) -> str:
    if not date_from or not date_to:
        raise AdvisorValidationError("date_from and date_to are required")
    if crew_size < 1:
        raise AdvisorValidationError(f"crew_size must be >= 1, got {crew_size}")
    if max_candidates is not None and max_candidates < 1:
        raise AdvisorValidationError(f"max_candidates must be >= 1, got {max_candidates}")
    try:
        return normalize_due_policy(due_policy)
    except ValueError as e:
        raise AdvisorValidationError(str(e)) from e


@dataclass(frozen=True)
class DueSoonPlacementRequest:
    job_ids: Tuple[str, ...]
    date_from: str
    date_to: str
    technician_ids: Optional[Tuple[str, ...]] = None
    crew_size: int = 1
    due_policy: str = "soft"
    max_candidates: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "job_ids", tuple(self.job_ids))
        if self.technician_ids is not None:
            object.__setattr__(self, "technician_ids", tuple(t for t in self.technician_ids if t))
        object.__setattr__(
            self,
            "due_policy",
            _check_common(self.date_from, self.date_to, self.crew_size, self.due_policy, self.max_candidates),
        )


@dataclass(frozen=True)
class MoveJobRequest:
    schedule_id: str
    date_from: str
    date_to: str
    technician_ids: Optional[Tuple[str, ...]] = None
    crew_size: int = 2
    due_policy: str = "soft"
    buffer_minutes: int = 30
    max_candidates: Optional[int] = 3
    include_ai: bool = True

    def __post_init__(self) -> None:
        if not self.schedule_id:
            raise AdvisorValidationError("schedule_id is required")
        if self.technician_ids is not None:
            object.__setattr__(self, "technician_ids", tuple(t for t in self.technician_ids if t))
        if self.buffer_minutes < 0:
            raise AdvisorValidationError(f"buffer_minutes must be >= 0, got {self.buffer_minutes}")
        object.__setattr__(
            self,
            "due_policy",
            _check_common(self.date_from, self.date_to, self.crew_size, self.due_policy, self.max_candidates),
        )


@dataclass(frozen=True)
class DueSoonPlacementResult:
    suggestions: Tuple[Suggestion, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {"suggestions": [s.as_dict() for s in self.suggestions]}


@dataclass(frozen=True)
class MoveJobResult:
    candidates: Tuple[CandidateSlot, ...]
    due_policy: str
    crew_size: int
    ai_used: bool = False
    ai_skip_reason: Optional[str] = None

    @property
    def no_viable_slot(self) -> bool:
        return not self.candidates

    def as_dict(self) -> Dict[str, Any]:
        out = {
            "candidates": [c.as_dict() for c in self.candidates],
            "duePolicy": self.due_policy,
            "crewSize": self.crew_size,
            "aiUsed": self.ai_used,
            "noViableSlot": self.no_viable_slot,
        }
        if self.ai_skip_reason:
            out["aiSkipReason"] = self.ai_skip_reason
        return out
