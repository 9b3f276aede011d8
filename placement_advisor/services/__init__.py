"""Pure scoring services: calendar, workload, due penalty, feasibility, travel."""

from .calendar import enumerate_dates, parse_date_key, parse_schedule_start, to_date_key, validate_window
from .due_penalty import DuePenalty, due_penalty
from .feasibility import FeasibilityCheck, check_feasibility, is_feasible
from .travel import travel_points
from .workload import DayLoad, WorkloadIndex, aggregate_workload

__all__ = [
    "to_date_key",
    "parse_date_key",
    "enumerate_dates",
    "validate_window",
    "parse_schedule_start",
    "DuePenalty",
    "due_penalty",
    "FeasibilityCheck",
    "check_feasibility",
    "is_feasible",
    "travel_points",
    "DayLoad",
    "WorkloadIndex",
    "aggregate_workload",
]
