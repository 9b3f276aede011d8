"""CSV export of ranked candidates."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pandas as pd

from placement_advisor.domain.types import CandidateSlot, DueSoonPlacementResult, MoveJobResult, Suggestion

logger = logging.getLogger(__name__)

COLUMNS = [
    "job_id",
    "rank",
    "date",
    "start_datetime",
    "technician_ids",
    "technician_names",
    "score",
    "due_penalty_points",
    "due_penalty_days",
    "load_points",
    "load_hours",
    "travel_points",
    "due_policy",
    "reason",
]


def _rows(job_id: Optional[str], candidates: Iterable[CandidateSlot]) -> List[dict]:
    rows = []
    for rank, c in enumerate(candidates, start=1):
        rows.append({
            "job_id": job_id,
            "rank": rank,
            "date": c.date.isoformat(),
            "start_datetime": c.start.isoformat() if c.start else None,
            "technician_ids": ";".join(c.technician_ids),
            "technician_names": ";".join(c.technician_names),
            "score": c.score,
            "due_penalty_points": c.breakdown.due_penalty_points,
            "due_penalty_days": c.breakdown.due_penalty_days,
            "load_points": c.breakdown.load_points,
            "load_hours": round(c.breakdown.load_hours, 2),
            "travel_points": c.breakdown.travel_points if c.include_travel else None,
            "due_policy": c.due_policy,
            "reason": c.reason,
        })
    return rows


def candidates_frame(
    result: Union[DueSoonPlacementResult, MoveJobResult, Iterable[Suggestion]],
    job_id: Optional[str] = None,
) -> pd.DataFrame:
    """One row per candidate, ranked within each job."""
    rows: List[dict] = []
    if isinstance(result, MoveJobResult):
        rows.extend(_rows(job_id, result.candidates))
    else:
        suggestions = result.suggestions if isinstance(result, DueSoonPlacementResult) else result
        for suggestion in suggestions:
            rows.extend(_rows(suggestion.job_id, suggestion.candidates))
    return pd.DataFrame(rows, columns=COLUMNS)


def export_candidates_csv(
    result: Union[DueSoonPlacementResult, MoveJobResult, Iterable[Suggestion]],
    out_path: str | Path,
    job_id: Optional[str] = None,
) -> int:
    """
    Write ranked candidates to CSV.

    Args:
        result: Due-soon result, move-job result or a list of suggestions
        out_path: Destination CSV path
        job_id: Job id to stamp on move-job rows

    Returns:
        Number of rows written
    """
    df = candidates_frame(result, job_id)
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_path, index=False)
    logger.info("Exported %d candidate rows to %s", len(df), out_path)
    return len(df)
