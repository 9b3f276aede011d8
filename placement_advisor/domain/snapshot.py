"""Collaborator interfaces the advisor reads from and writes through.

The advisor never talks to storage directly. A ``SnapshotSource`` hands it
validated collections for one analysis; a ``PlacementWriter`` applies a chosen
placement. ``InMemorySnapshot`` implements both over plain lists.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from placement_advisor.errors import RecordNotFoundError

from .types import JobToPlace, ScheduleEntry, Technician


class SnapshotSource(Protocol):
    def get_technicians(self, technician_ids: Optional[Sequence[str]] = None) -> List[Technician]:
        """Technicians by id, or the whole roster when ``technician_ids`` is None."""

    def get_schedules(self, date_from: date, date_to: date) -> List[ScheduleEntry]:
        """Schedule entries whose service date falls in the inclusive window."""

    def get_schedule(self, schedule_id: str) -> Optional[ScheduleEntry]:
        """A single schedule entry, or None."""

    def get_due_soon_jobs(self, job_ids: Sequence[str]) -> List[JobToPlace]:
        """Unscheduled due-soon jobs by id; unknown ids are left out."""


class PlacementWriter(Protocol):
    def update_job(
        self,
        job_id: str,
        start: datetime,
        technician_ids: Sequence[str],
        service_date: Optional[date] = None,
    ) -> None:
        """Write the new date/time and technician assignment for a job.

        ``service_date`` defaults to the UTC date of ``start``.
        """


class InMemorySnapshot:
    """List-backed snapshot source and writer."""

    def __init__(
        self,
        technicians: Iterable[Technician] = (),
        schedules: Iterable[ScheduleEntry] = (),
        jobs: Iterable[JobToPlace] = (),
    ):
        self.technicians: Dict[str, Technician] = {t.technician_id: t for t in technicians}
        self.schedules: Dict[str, ScheduleEntry] = {s.schedule_id: s for s in schedules}
        self.jobs: Dict[str, JobToPlace] = {j.job_id: j for j in jobs}

    def get_technicians(self, technician_ids: Optional[Sequence[str]] = None) -> List[Technician]:
        if technician_ids is None:
            return list(self.technicians.values())
        return [self.technicians[tid] for tid in technician_ids if tid in self.technicians]

    def get_schedules(self, date_from: date, date_to: date) -> List[ScheduleEntry]:
        return [s for s in self.schedules.values() if date_from <= s.day <= date_to]

    def get_schedule(self, schedule_id: str) -> Optional[ScheduleEntry]:
        return self.schedules.get(schedule_id)

    def get_due_soon_jobs(self, job_ids: Sequence[str]) -> List[JobToPlace]:
        return [self.jobs[jid] for jid in job_ids if jid in self.jobs]

    def update_job(
        self,
        job_id: str,
        start: datetime,
        technician_ids: Sequence[str],
        service_date: Optional[date] = None,
    ) -> None:
        existing = self.schedules.get(job_id)
        if existing is not None:
            self.schedules[job_id] = replace(
                existing, start=start, technician_ids=tuple(technician_ids), service_date=service_date
            )
            return

        job = self.jobs.pop(job_id, None)
        if job is None:
            raise RecordNotFoundError(f"No schedule or due-soon job {job_id}")
        self.schedules[job_id] = ScheduleEntry(
            schedule_id=job_id,
            technician_ids=tuple(technician_ids),
            start=start,
            hours=job.estimated_hours,
            location=job.location,
            job_title=job.title,
            invoice_ref=job.invoice_ref,
            service_date=service_date,
        )
