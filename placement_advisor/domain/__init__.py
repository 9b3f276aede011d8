"""Domain types, collaborator interfaces and the SQL data access layer."""

from .types import (
    AvailabilityException,
    CandidateSlot,
    DueSoonPlacementRequest,
    DueSoonPlacementResult,
    JobToPlace,
    MoveJobRequest,
    MoveJobResult,
    PreviousScheduleReference,
    ScheduleEntry,
    ScoreBreakdown,
    Suggestion,
    Technician,
)
from .snapshot import InMemorySnapshot, PlacementWriter, SnapshotSource
from .models import AvailabilityRecord, Base, DueSoonJobRecord, ScheduleRecord, TechnicianRecord
from .repositories import DueSoonJobRepository, ScheduleRepository, SqlSnapshotSource, TechnicianRepository

__all__ = [
    "AvailabilityException",
    "CandidateSlot",
    "DueSoonPlacementRequest",
    "DueSoonPlacementResult",
    "JobToPlace",
    "MoveJobRequest",
    "MoveJobResult",
    "PreviousScheduleReference",
    "ScheduleEntry",
    "ScoreBreakdown",
    "Suggestion",
    "Technician",
    "InMemorySnapshot",
    "PlacementWriter",
    "SnapshotSource",
    "Base",
    "TechnicianRecord",
    "AvailabilityRecord",
    "ScheduleRecord",
    "DueSoonJobRecord",
    "TechnicianRepository",
    "ScheduleRepository",
    "DueSoonJobRepository",
    "SqlSnapshotSource",
]
