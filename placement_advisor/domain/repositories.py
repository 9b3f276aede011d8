"""Repository classes for data access, and the SQL-backed snapshot source."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from placement_advisor.errors import RecordNotFoundError
from placement_advisor.services.estimates import estimate_job_hours

from .models import AvailabilityRecord, DueSoonJobRecord, ScheduleRecord, TechnicianRecord
from .types import AvailabilityException, JobToPlace, PreviousScheduleReference, ScheduleEntry, Technician

logger = logging.getLogger(__name__)


class TechnicianRepository:
    """Repository for technician and availability data access."""

    @staticmethod
    def get_all(session: Session) -> List[TechnicianRecord]:
        """Get all technicians."""
        return session.query(TechnicianRecord).order_by(TechnicianRecord.technician_id).all()

    @staticmethod
    def get_by_ids(session: Session, technician_ids: Sequence[str]) -> List[TechnicianRecord]:
        """Get technicians by id."""
        if not technician_ids:
            return []
        return (
            session.query(TechnicianRecord)
            .filter(TechnicianRecord.technician_id.in_(list(technician_ids)))
            .order_by(TechnicianRecord.technician_id)
            .all()
        )

    @staticmethod
    def bulk_create(session: Session, technicians: List[TechnicianRecord]) -> None:
        """Create multiple technicians."""
        session.add_all(technicians)
        session.commit()

    @staticmethod
    def bulk_create_availability(session: Session, blocks: List[AvailabilityRecord]) -> None:
        """Create multiple availability blocks."""
        session.add_all(blocks)
        session.commit()


class ScheduleRepository:
    """Repository for schedule data access."""

    @staticmethod
    def get_by_id(session: Session, schedule_id: str) -> Optional[ScheduleRecord]:
        """Get schedule by ID."""
        return session.query(ScheduleRecord).filter(ScheduleRecord.schedule_id == schedule_id).first()

    @staticmethod
    def get_in_range(session: Session, date_from: date, date_to: date) -> List[ScheduleRecord]:
        """Get schedules whose service date falls within the inclusive range."""
        return (
            session.query(ScheduleRecord)
            .filter(ScheduleRecord.service_date >= date_from, ScheduleRecord.service_date <= date_to)
            .order_by(ScheduleRecord.start_datetime, ScheduleRecord.schedule_id)
            .all()
        )

    @staticmethod
    def get_latest_by_invoice(session: Session, invoice_ref: str) -> Optional[ScheduleRecord]:
        """Most recent schedule for an invoice."""
        return (
            session.query(ScheduleRecord)
            .filter(ScheduleRecord.invoice_ref == invoice_ref)
            .order_by(ScheduleRecord.start_datetime.desc())
            .first()
        )

    @staticmethod
    def bulk_create(session: Session, schedules: List[ScheduleRecord]) -> None:
        """Create multiple schedules."""
        session.add_all(schedules)
        session.commit()


class DueSoonJobRepository:
    """Repository for due-soon job data access."""

    @staticmethod
    def get_unscheduled(session: Session, job_ids: Sequence[str]) -> List[DueSoonJobRecord]:
        """Get unscheduled due-soon jobs by id."""
        if not job_ids:
            return []
        return (
            session.query(DueSoonJobRecord)
            .filter(DueSoonJobRecord.job_id.in_(list(job_ids)), DueSoonJobRecord.is_scheduled.is_(False))
            .all()
        )

    @staticmethod
    def get_unscheduled_due_by(session: Session, due_by: date) -> List[DueSoonJobRecord]:
        """Unscheduled jobs due on or before ``due_by`` (overdue included), earliest due first."""
        return (
            session.query(DueSoonJobRecord)
            .filter(DueSoonJobRecord.is_scheduled.is_(False), DueSoonJobRecord.date_due <= due_by)
            .order_by(DueSoonJobRecord.date_due, DueSoonJobRecord.job_id)
            .all()
        )

    @staticmethod
    def get_by_id(session: Session, job_id: str) -> Optional[DueSoonJobRecord]:
        return session.query(DueSoonJobRecord).filter(DueSoonJobRecord.job_id == job_id).first()

    @staticmethod
    def bulk_create(session: Session, jobs: List[DueSoonJobRecord]) -> None:
        """Create multiple due-soon jobs."""
        session.add_all(jobs)
        session.commit()


def _parse_time(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    try:
        hour, minute = str(value).strip().split(":")[:2]
        return time(int(hour), int(minute))
    except ValueError:
        logger.debug("Ignoring malformed availability time %r", value)
        return None


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_availability(record: AvailabilityRecord) -> AvailabilityException:
    return AvailabilityException(
        technician_id=record.technician_id,
        is_recurring=bool(record.is_recurring),
        is_full_day=bool(record.is_full_day),
        day_of_week=record.day_of_week if record.is_recurring else None,
        specific_date=None if record.is_recurring else record.specific_date,
        start_time=_parse_time(record.start_time),
        end_time=_parse_time(record.end_time),
    )


def to_technician(record: TechnicianRecord) -> Technician:
    return Technician(
        technician_id=record.technician_id,
        name=record.name,
        depot_address=record.depot_address,
        exceptions=tuple(to_availability(block) for block in record.availability),
    )


def to_schedule_entry(record: ScheduleRecord) -> ScheduleEntry:
    return ScheduleEntry(
        schedule_id=record.schedule_id,
        technician_ids=record.technician_ids,
        start=_utc(record.start_datetime),
        hours=record.hours,
        location=record.location or "",
        job_title=record.job_title or "",
        invoice_ref=record.invoice_ref,
        service_date=record.service_date,
    )


class SqlSnapshotSource:
    """Snapshot source and placement writer over a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def get_technicians(self, technician_ids: Optional[Sequence[str]] = None) -> List[Technician]:
        if technician_ids is None:
            records = TechnicianRepository.get_all(self.session)
        else:
            records = TechnicianRepository.get_by_ids(self.session, technician_ids)
        return [to_technician(r) for r in records]

    def get_schedules(self, date_from: date, date_to: date) -> List[ScheduleEntry]:
        return [to_schedule_entry(r) for r in ScheduleRepository.get_in_range(self.session, date_from, date_to)]

    def get_schedule(self, schedule_id: str) -> Optional[ScheduleEntry]:
        record = ScheduleRepository.get_by_id(self.session, schedule_id)
        return to_schedule_entry(record) if record else None

    def previous_schedule(self, invoice_ref: Optional[str]) -> Optional[PreviousScheduleReference]:
        if not invoice_ref:
            return None
        record = ScheduleRepository.get_latest_by_invoice(self.session, invoice_ref)
        if record is None:
            return None
        return PreviousScheduleReference(
            start=_utc(record.start_datetime),
            technician_ids=record.technician_ids,
            hours=record.hours if record.hours is not None else estimate_job_hours(None),
        )

    def get_due_soon_jobs(self, job_ids: Sequence[str]) -> List[JobToPlace]:
        records: Dict[str, DueSoonJobRecord] = {
            r.job_id: r for r in DueSoonJobRepository.get_unscheduled(self.session, job_ids)
        }
        jobs = []
        for job_id in job_ids:
            record = records.get(job_id)
            if record is None:
                continue
            jobs.append(
                JobToPlace(
                    job_id=record.job_id,
                    title=record.job_title or "Due Soon Job",
                    location=record.location or "",
                    estimated_hours=estimate_job_hours(record.estimated_hours, record.invoice_total),
                    due_date=record.date_due,
                    invoice_ref=record.invoice_ref,
                    previous_schedule=self.previous_schedule(record.invoice_ref),
                )
            )
        return jobs

    def update_job(
        self,
        job_id: str,
        start: datetime,
        technician_ids: Sequence[str],
        service_date: Optional[date] = None,
    ) -> None:
        """Move an existing schedule, or create one for a due-soon job."""
        start = _utc(start)
        service_date = service_date or start.date()
        assigned = ";".join(technician_ids)
        schedule = ScheduleRepository.get_by_id(self.session, job_id)
        if schedule is not None:
            schedule.start_datetime = start.replace(tzinfo=None)
            schedule.service_date = service_date
            schedule.assigned_technicians = assigned
            self.session.commit()
            return

        job = DueSoonJobRepository.get_by_id(self.session, job_id)
        if job is None:
            raise RecordNotFoundError(f"No schedule or due-soon job {job_id}")
        self.session.add(
            ScheduleRecord(
                schedule_id=job.job_id,
                job_title=job.job_title,
                location=job.location,
                start_datetime=start.replace(tzinfo=None),
                service_date=service_date,
                hours=estimate_job_hours(job.estimated_hours, job.invoice_total),
                invoice_ref=job.invoice_ref,
                assigned_technicians=assigned,
            )
        )
        job.is_scheduled = True
        self.session.commit()
