"""Job duration estimates from invoice totals."""

from __future__ import annotations

import math
from typing import Optional

DEFAULT_JOB_HOURS = 4.0


def duration_minutes_from_price(total_price: float) -> int:
    """Service duration (minutes) for an invoice total, capped at 8 hours."""
    if total_price <= 350:
        return 90
    if total_price < 600:
        return 150
    if total_price <= 800:
        return 180
    if total_price <= 1000:
        return 210
    if total_price <= 1500:
        return 240
    extra_hours = math.ceil((total_price - 1500) / 300)
    return min(4 + extra_hours, 8) * 60


def minutes_to_hours(minutes: float) -> float:
    """Minutes to hours, rounded up to the next half hour."""
    return math.ceil(minutes / 60 * 2) / 2


def estimate_job_hours(explicit_hours: Optional[float] = None, invoice_total: Optional[float] = None) -> float:
    if explicit_hours is not None and math.isfinite(explicit_hours) and explicit_hours > 0:
        return float(explicit_hours)
    if invoice_total is not None and math.isfinite(invoice_total) and invoice_total > 0:
        return minutes_to_hours(duration_minutes_from_price(invoice_total))
    return DEFAULT_JOB_HOURS
