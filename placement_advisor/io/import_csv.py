"""CSV import utilities to load snapshot data into the database."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from sqlalchemy.orm import Session

from placement_advisor.config import parse_weekdays
from placement_advisor.domain.models import AvailabilityRecord, DueSoonJobRecord, ScheduleRecord, TechnicianRecord
from placement_advisor.errors import ConfigError
from placement_advisor.services.calendar import parse_date_key, parse_schedule_start

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "y", "t"}


def _read(csv_path: str | Path, required: tuple) -> pd.DataFrame:
    # Everything as text so ids like "007" survive; blanks become NaN
    df = pd.read_csv(csv_path, dtype=str)
    df.columns = df.columns.str.lower().str.strip()
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ConfigError(f"{csv_path}: missing column(s) {', '.join(missing)}")
    return df


def _text(row: pd.Series, column: str) -> Optional[str]:
    value: Any = row.get(column)
    if value is None or pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def _float(row: pd.Series, column: str) -> Optional[float]:
    value = _text(row, column)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", column, value)
        return None


def _bool(row: pd.Series, column: str, default: bool) -> bool:
    value = _text(row, column)
    if value is None:
        return default
    return value.lower() in _TRUE


def import_technicians_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import technicians from CSV into database.

    Args:
        session: Database session
        csv_path: Path to technicians CSV (technician_id, name, depot_address)

    Returns:
        Number of technicians imported
    """
    df = _read(csv_path, ("technician_id", "name"))

    technicians = []
    for _, row in df.iterrows():
        tech_id = _text(row, "technician_id")
        if tech_id is None:
            continue
        technicians.append(
            TechnicianRecord(
                technician_id=tech_id,
                name=_text(row, "name") or tech_id,
                depot_address=_text(row, "depot_address"),
            )
        )

    session.add_all(technicians)
    session.commit()

    logger.info("Imported %d technicians from %s", len(technicians), csv_path)
    return len(technicians)


def import_availability_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import availability exceptions from CSV into database.

    Recurring rows name a weekday (``day_of_week`` as 0-6 with Monday=0, or a
    day name); one-time rows carry ``specific_date``. Partial-day rows set
    ``is_full_day`` false and give ``start_time``/``end_time`` as HH:MM.

    Returns:
        Number of availability blocks imported
    """
    df = _read(csv_path, ("technician_id",))

    blocks = []
    for idx, row in df.iterrows():
        tech_id = _text(row, "technician_id")
        if tech_id is None:
            continue
        is_recurring = _bool(row, "is_recurring", False)
        day_of_week = None
        specific_date = None
        if is_recurring:
            raw_day = _text(row, "day_of_week")
            try:
                (day_of_week,) = parse_weekdays([int(raw_day) if raw_day and raw_day.isdigit() else raw_day])
            except ConfigError as e:
                logger.warning("Skipping availability row %s: %s", idx, e)
                continue
        else:
            specific_date = parse_date_key(_text(row, "specific_date") or "")
            if specific_date is None:
                logger.warning("Skipping availability row %s: bad specific_date", idx)
                continue

        blocks.append(
            AvailabilityRecord(
                technician_id=tech_id,
                is_recurring=is_recurring,
                is_full_day=_bool(row, "is_full_day", True),
                day_of_week=day_of_week,
                specific_date=specific_date,
                start_time=_text(row, "start_time"),
                end_time=_text(row, "end_time"),
            )
        )

    session.add_all(blocks)
    session.commit()

    logger.info("Imported %d availability blocks from %s", len(blocks), csv_path)
    return len(blocks)


def import_schedules_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import committed schedules from CSV into database.

    ``start_datetime`` may be ISO or the legacy ``M/D/YYYY, h:mm:ss AM/PM``
    form; either way it is stored as a UTC instant. ``assigned_technicians``
    is a semicolon-separated id list. Rows whose start cannot be parsed are
    skipped.

    Returns:
        Number of schedules imported
    """
    df = _read(csv_path, ("schedule_id", "start_datetime", "assigned_technicians"))

    schedules = []
    for idx, row in df.iterrows():
        schedule_id = _text(row, "schedule_id")
        parsed = parse_schedule_start(_text(row, "start_datetime"))
        if schedule_id is None or parsed is None:
            logger.warning("Skipping schedule row %s: unparseable id or start", idx)
            continue
        techs = [t.strip() for t in (_text(row, "assigned_technicians") or "").split(";") if t.strip()]
        schedules.append(
            ScheduleRecord(
                schedule_id=schedule_id,
                job_title=_text(row, "job_title") or "",
                location=_text(row, "location") or "",
                start_datetime=parsed.instant.replace(tzinfo=None),
                service_date=parsed.service_date,
                hours=_float(row, "hours"),
                invoice_ref=_text(row, "invoice_ref"),
                assigned_technicians=";".join(techs),
            )
        )

    session.add_all(schedules)
    session.commit()

    logger.info("Imported %d schedules from %s", len(schedules), csv_path)
    return len(schedules)


def import_due_soon_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import unscheduled due-soon jobs from CSV into database.

    Returns:
        Number of jobs imported
    """
    df = _read(csv_path, ("job_id", "date_due"))

    jobs = []
    for idx, row in df.iterrows():
        job_id = _text(row, "job_id")
        due = parse_date_key(_text(row, "date_due") or "")
        if job_id is None or due is None:
            logger.warning("Skipping due-soon row %s: missing id or bad date_due", idx)
            continue
        jobs.append(
            DueSoonJobRecord(
                job_id=job_id,
                invoice_ref=_text(row, "invoice_ref"),
                job_title=_text(row, "job_title") or "",
                location=_text(row, "location") or "",
                date_due=due,
                estimated_hours=_float(row, "estimated_hours"),
                invoice_total=_float(row, "invoice_total"),
                is_scheduled=_bool(row, "is_scheduled", False),
            )
        )

    session.add_all(jobs)
    session.commit()

    logger.info("Imported %d due-soon jobs from %s", len(jobs), csv_path)
    return len(jobs)
