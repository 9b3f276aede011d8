"""Date-key helpers and schedule start-time parsing.

Date keys are ``YYYY-MM-DD`` strings built from calendar components, never
shifted through a wall-clock timezone. Schedule start times are normalised to
UTC instants by ``parse_schedule_start``; everything downstream works with
``datetime`` values and never inspects raw strings again.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple, Union

import pandas as pd

from placement_advisor.errors import AdvisorValidationError

logger = logging.getLogger(__name__)

MAX_WINDOW_DAYS = 366

# Legacy locale rendering of a UTC instant, e.g. "6/3/2024, 2:30:00 PM"
_US_LOCALE_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:,?\s+(\d{1,2}):(\d{2})(?::(\d{2}))?\s*(AM|PM))?$",
    re.IGNORECASE,
)
_ISO_NAIVE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T\s](\d{2}):(\d{2})(?::(\d{2}))?)?$")
_ISO_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:$|T|\s)")


def to_date_key(value: Union[date, datetime]) -> str:
    """Render the calendar components of ``value`` as ``YYYY-MM-DD``."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(key: str) -> Optional[date]:
    """Inverse of ``to_date_key``; ``None`` for malformed input."""
    if not isinstance(key, str):
        return None
    parts = key.strip().split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    try:
        return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError:
        return None


def enumerate_dates(date_from: date, date_to: date, max_days: int = MAX_WINDOW_DAYS) -> List[str]:
    """Inclusive ascending date keys from ``date_from`` to ``date_to``.

    Returns an empty list when ``date_from > date_to``. Windows longer than
    ``max_days`` are truncated to their first ``max_days`` dates.
    """
    if date_from > date_to:
        return []
    span = (date_to - date_from).days + 1
    if span > max_days:
        logger.warning("Date window %s..%s truncated to %d days", date_from, date_to, max_days)
        date_to = date_from + timedelta(days=max_days - 1)
    return [d.strftime("%Y-%m-%d") for d in pd.date_range(date_from, date_to, freq="D")]


def validate_window(date_from: str, date_to: str, max_days: int = MAX_WINDOW_DAYS) -> Tuple[date, date]:
    """Parse and check a requested window; raise before any scoring happens."""
    start = parse_date_key(date_from)
    end = parse_date_key(date_to)
    if start is None:
        raise AdvisorValidationError(f"Invalid dateFrom {date_from!r}, expected YYYY-MM-DD")
    if end is None:
        raise AdvisorValidationError(f"Invalid dateTo {date_to!r}, expected YYYY-MM-DD")
    if start > end:
        raise AdvisorValidationError(f"dateFrom {date_from} is after dateTo {date_to}")
    span = (end - start).days + 1
    if span > max_days:
        raise AdvisorValidationError(f"Date window of {span} days exceeds the {max_days}-day limit")
    return start, end


@dataclass(frozen=True)
class ParsedStart:
    """Canonical start instant plus the calendar date it is filed under."""

    instant: datetime
    service_date: date


def _locale_parts(raw: str) -> Optional[Tuple[int, int, int, int, int, int]]:
    match = _US_LOCALE_RE.match(raw)
    if not match:
        return None
    month, day, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
    hour = int(match.group(4) or 0)
    minute = int(match.group(5) or 0)
    second = int(match.group(6) or 0)
    period = (match.group(7) or "").upper()
    if period:
        hour = hour % 12
        if period == "PM":
            hour += 12
    return year, month, day, hour, minute, second


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_schedule_start(value: Union[datetime, date, str, None]) -> Optional[ParsedStart]:
    """Normalise a stored schedule start into a UTC instant.

    Accepted inputs, tried in order:

    1. ``datetime`` (naive values are taken as UTC) or ``date`` (midnight UTC)
    2. legacy ``M/D/YYYY, h:mm:ss AM/PM`` strings, whose components are UTC
       fields
    3. ISO strings without an offset, read as UTC
    4. anything else ``pandas.Timestamp`` understands (ISO with offset, ...)

    The service date is the date written in the string when one is present,
    otherwise the UTC date of the instant. Returns ``None`` when unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        instant = _as_utc(value)
        return ParsedStart(instant, instant.date())
    if isinstance(value, date):
        instant = datetime.combine(value, time(0, 0), tzinfo=timezone.utc)
        return ParsedStart(instant, value)

    raw = str(value).strip()
    if not raw:
        return None

    parts = _locale_parts(raw)
    if parts is not None:
        year, month, day, hour, minute, second = parts
        try:
            instant = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
        except ValueError:
            return None
        return ParsedStart(instant, instant.date())

    match = _ISO_NAIVE_RE.match(raw)
    if match:
        try:
            instant = datetime(
                int(match.group(1)), int(match.group(2)), int(match.group(3)),
                int(match.group(4) or 0), int(match.group(5) or 0), int(match.group(6) or 0),
                tzinfo=timezone.utc,
            )
        except ValueError:
            return None
        return ParsedStart(instant, instant.date())

    try:
        ts = pd.Timestamp(raw)
    except (ValueError, TypeError):
        return None
    if pd.isna(ts):
        return None
    instant = _as_utc(ts.to_pydatetime())
    prefix = _ISO_PREFIX_RE.match(raw)
    service_date = parse_date_key("-".join(prefix.groups())) if prefix else None
    return ParsedStart(instant, service_date or instant.date())


def at_time(day: date, hhmm: time) -> datetime:
    """UTC instant for ``hhmm`` on ``day`` (stored schedule convention)."""
    return datetime.combine(day, hhmm, tzinfo=timezone.utc)
