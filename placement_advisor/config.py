"""Configuration loading and validation.

A config file (YAML or JSON) has up to five top-level sections::

    policy:
      allowed_days: [MON, TUE, WED, THU, FRI]
      max_jobs_per_day: 4
      work_day_start: "08:00"
      work_day_end: "17:00"
      crew_size: 1
      buffer_minutes: 0
      due_policy: soft
      max_hours_per_day: 12
    weights:
      hard_points_per_day: 120
      soft_points_per_day: 20
      soft_cap_days: 14
      load_points_per_hour: 10
      travel_points_per_job: 15
    advisor:
      max_candidates: 5
      max_window_days: 366
      default_start: "09:00"
    move_job:
      crew_size: 2
      due_policy: soft
      buffer_minutes: 30
      max_candidates: 3
    logging:
      level: INFO

Every section and key is optional; missing values fall back to the defaults
below.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from datetime import time
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Mapping

import yaml

from .errors import ConfigError

DUE_POLICIES = ("hard", "soft")

WEEKDAY_NAMES = {
    "MON": 0, "MONDAY": 0,
    "TUE": 1, "TUESDAY": 1,
    "WED": 2, "WEDNESDAY": 2,
    "THU": 3, "THURSDAY": 3,
    "FRI": 4, "FRIDAY": 4,
    "SAT": 5, "SATURDAY": 5,
    "SUN": 6, "SUNDAY": 6,
}

ALL_DAYS: FrozenSet[int] = frozenset(range(7))
WEEKDAYS: FrozenSet[int] = frozenset(range(5))


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a ``time``."""
    try:
        hour_s, minute_s = str(value).strip().split(":")
        return time(int(hour_s), int(minute_s))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid time of day {value!r}, expected HH:MM") from e


def parse_weekdays(values: Iterable[Any]) -> FrozenSet[int]:
    """Normalise weekday names or ints (Monday=0) into a frozenset."""
    days = set()
    for value in values:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid weekday {value!r}")
        if isinstance(value, int):
            day = value
        else:
            day = WEEKDAY_NAMES.get(str(value).strip().upper())
            if day is None:
                raise ConfigError(f"Invalid weekday {value!r}")
        if day not in ALL_DAYS:
            raise ConfigError(f"Weekday out of range (0-6): {value!r}")
        days.add(day)
    return frozenset(days)


def normalize_due_policy(value: str) -> str:
    policy = str(value).strip().lower()
    if policy not in DUE_POLICIES:
        raise ConfigError(f"due_policy must be one of {DUE_POLICIES}, got {value!r}")
    return policy


@dataclass(frozen=True)
class SchedulingPolicy:
    allowed_days: FrozenSet[int] = WEEKDAYS
    max_jobs_per_day: int = 4
    work_day_start: str = "08:00"
    work_day_end: str = "17:00"
    crew_size: int = 1
    buffer_minutes: int = 0
    due_policy: str = "soft"
    max_hours_per_day: float = 12.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_days", parse_weekdays(self.allowed_days))
        object.__setattr__(self, "due_policy", normalize_due_policy(self.due_policy))
        if not self.allowed_days:
            raise ConfigError("allowed_days must name at least one weekday")
        if self.max_jobs_per_day < 1:
            raise ConfigError("max_jobs_per_day must be >= 1")
        if self.crew_size < 1:
            raise ConfigError("crew_size must be >= 1")
        if self.buffer_minutes < 0:
            raise ConfigError("buffer_minutes must be >= 0")
        if self.max_hours_per_day <= 0:
            raise ConfigError("max_hours_per_day must be > 0")
        if self.day_start >= self.day_end:
            raise ConfigError(
                f"work_day_start {self.work_day_start} must be before work_day_end {self.work_day_end}"
            )

    @property
    def day_start(self) -> time:
        return parse_hhmm(self.work_day_start)

    @property
    def day_end(self) -> time:
        return parse_hhmm(self.work_day_end)

    @property
    def work_day_hours(self) -> float:
        start, end = self.day_start, self.day_end
        return (end.hour * 60 + end.minute - start.hour * 60 - start.minute) / 60.0


@dataclass(frozen=True)
class ScoringWeights:
    hard_points_per_day: float = 120.0
    soft_points_per_day: float = 20.0
    soft_cap_days: int = 14
    load_points_per_hour: float = 10.0
    travel_points_per_job: float = 15.0

    def __post_init__(self) -> None:
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ConfigError(f"{f.name} must be >= 0")
        if self.hard_points_per_day <= 0:
            raise ConfigError("hard_points_per_day must be > 0")
        if self.soft_cap_days < 1:
            raise ConfigError("soft_cap_days must be >= 1")

    @property
    def soft_ceiling(self) -> float:
        return self.soft_cap_days * self.soft_points_per_day


@dataclass(frozen=True)
class MoveJobDefaults:
    """Request defaults for moving an already-scheduled job."""

    crew_size: int = 2
    due_policy: str = "soft"
    buffer_minutes: int = 30
    max_candidates: int = 3

    def __post_init__(self) -> None:
        object.__setattr__(self, "due_policy", normalize_due_policy(self.due_policy))
        if self.crew_size < 1:
            raise ConfigError("crew_size must be >= 1")
        if self.buffer_minutes < 0:
            raise ConfigError("buffer_minutes must be >= 0")
        if self.max_candidates < 1:
            raise ConfigError("max_candidates must be >= 1")


@dataclass(frozen=True)
class AdvisorConfig:
    policy: SchedulingPolicy = field(default_factory=SchedulingPolicy)
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    move_job: MoveJobDefaults = field(default_factory=MoveJobDefaults)
    max_candidates: int = 5
    max_window_days: int = 366
    default_start: str = "09:00"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_candidates < 1:
            raise ConfigError("max_candidates must be >= 1")
        if self.max_window_days < 1:
            raise ConfigError("max_window_days must be >= 1")
        parse_hhmm(self.default_start)
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"Unknown log level {self.log_level!r}")


def _section(raw: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return dict(value)


def _build(cls, values: Dict[str, Any], section: str):
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(unknown)}")
    try:
        return cls(**values)
    except TypeError as e:
        raise ConfigError(f"Invalid '{section}' section: {e}") from e


def config_from_dict(raw: Mapping[str, Any] | None) -> AdvisorConfig:
    """Build an AdvisorConfig from an already-parsed mapping."""
    raw = dict(raw or {})
    unknown = sorted(set(raw) - {"policy", "weights", "advisor", "move_job", "logging"})
    if unknown:
        raise ConfigError(f"Unknown config sections: {', '.join(unknown)}")

    policy = _build(SchedulingPolicy, _section(raw, "policy"), "policy")
    weights = _build(ScoringWeights, _section(raw, "weights"), "weights")
    move_job = _build(MoveJobDefaults, _section(raw, "move_job"), "move_job")
    advisor = _section(raw, "advisor")
    log_section = _section(raw, "logging")
    if set(log_section) - {"level"}:
        raise ConfigError("Only 'level' is supported in the 'logging' section")
    advisor_keys = {"max_candidates", "max_window_days", "default_start"}
    if set(advisor) - advisor_keys:
        raise ConfigError(f"Unknown keys in 'advisor': {', '.join(sorted(set(advisor) - advisor_keys))}")
    return AdvisorConfig(
        policy=policy,
        weights=weights,
        move_job=move_job,
        log_level=str(log_section.get("level", "INFO")),
        **advisor,
    )


def load_config(path: str | Path | None = None) -> AdvisorConfig:
    """Load configuration from a YAML or JSON file; ``None`` gives defaults."""
    if path is None:
        return AdvisorConfig()
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse config file {path}: {e}") from e

    if raw is not None and not isinstance(raw, Mapping):
        raise ConfigError(f"Config file {path} must contain a mapping at top level")
    return config_from_dict(raw)
