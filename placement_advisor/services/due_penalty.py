"""Due-date penalty curves.

Placing a job on or before its due date costs nothing. Each day past due
costs ``hard_points_per_day`` under the hard policy, without bound. Under the
soft policy each day costs ``soft_points_per_day`` until ``soft_cap_days``,
after which the penalty stays at the ceiling.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from placement_advisor.config import ScoringWeights, normalize_due_policy


@dataclass(frozen=True)
class DuePenalty:
    points: float
    days: int  # days past due, 0 when on/before due date
    days_until_due: int


def due_penalty_points(days_past_due: int, due_policy: str, weights: ScoringWeights) -> float:
    if days_past_due <= 0:
        return 0.0
    if due_policy == "hard":
        return days_past_due * weights.hard_points_per_day
    return min(days_past_due, weights.soft_cap_days) * weights.soft_points_per_day


def due_penalty(due_date: date, candidate_date: date, due_policy: str, weights: ScoringWeights | None = None) -> DuePenalty:
    """Penalty for placing a job due on ``due_date`` at ``candidate_date``."""
    weights = weights or ScoringWeights()
    policy = normalize_due_policy(due_policy)
    days_until_due = (due_date - candidate_date).days
    days_past_due = max(0, -days_until_due)
    return DuePenalty(
        points=due_penalty_points(days_past_due, policy, weights),
        days=days_past_due,
        days_until_due=days_until_due,
    )
