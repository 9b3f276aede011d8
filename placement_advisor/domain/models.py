"""SQLAlchemy models for the reference snapshot store."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class TechnicianRecord(Base):
    """Technician on the roster."""

    __tablename__ = "technicians"

    technician_id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    depot_address = Column(String(500), nullable=True)

    availability = relationship(
        "AvailabilityRecord", back_populates="technician", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<TechnicianRecord(id={self.technician_id}, name='{self.name}')>"


class AvailabilityRecord(Base):
    """Unavailability block: recurring by weekday or one-time by date."""

    __tablename__ = "availability"

    id = Column(Integer, primary_key=True, autoincrement=True)
    technician_id = Column(String(64), ForeignKey("technicians.technician_id"), nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    is_full_day = Column(Boolean, nullable=False, default=True)
    day_of_week = Column(Integer, nullable=True)  # Monday=0, recurring only
    specific_date = Column(Date, nullable=True)  # one-time only
    start_time = Column(String(5), nullable=True)  # HH:MM, partial-day only
    end_time = Column(String(5), nullable=True)

    technician = relationship("TechnicianRecord", back_populates="availability")

    def __repr__(self) -> str:
        when = f"dow={self.day_of_week}" if self.is_recurring else f"date={self.specific_date}"
        return f"<AvailabilityRecord(id={self.id}, tech={self.technician_id}, {when}, full_day={self.is_full_day})>"


class ScheduleRecord(Base):
    """Committed job on the schedule."""

    __tablename__ = "schedules"

    schedule_id = Column(String(64), primary_key=True)
    job_title = Column(String(200), nullable=False, default="")
    location = Column(String(500), nullable=False, default="")
    start_datetime = Column(DateTime, nullable=False)  # UTC
    service_date = Column(Date, nullable=False)
    hours = Column(Float, nullable=True)
    invoice_ref = Column(String(64), nullable=True, index=True)
    assigned_technicians = Column(String(500), nullable=False, default="")  # Semicolon-separated ids

    @property
    def technician_ids(self) -> tuple:
        return tuple(t for t in (self.assigned_technicians or "").split(";") if t)

    def __repr__(self) -> str:
        return f"<ScheduleRecord(id={self.schedule_id}, date={self.service_date}, techs='{self.assigned_technicians}')>"


class DueSoonJobRecord(Base):
    """Job coming due that has not been given a slot yet."""

    __tablename__ = "due_soon_jobs"

    job_id = Column(String(64), primary_key=True)
    invoice_ref = Column(String(64), nullable=True)
    job_title = Column(String(200), nullable=False, default="")
    location = Column(String(500), nullable=False, default="")
    date_due = Column(Date, nullable=False)
    estimated_hours = Column(Float, nullable=True)
    invoice_total = Column(Float, nullable=True)
    is_scheduled = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<DueSoonJobRecord(id={self.job_id}, due={self.date_due}, scheduled={self.is_scheduled})>"
