"""Technician name lookup owned by a single advisor instance."""

from __future__ import annotations

from typing import Dict, Iterable, Tuple

from placement_advisor.domain.types import Technician

UNKNOWN_NAME = "Unknown"


class TechnicianNameCache:
    """
    Id -> display name cache.

    Filled from each snapshot's roster and cleared at the start of every
    analysis, so names never outlive the snapshot they came from.
    """

    def __init__(self) -> None:
        self._names: Dict[str, str] = {}

    def clear(self) -> None:
        self._names.clear()

    def update(self, technicians: Iterable[Technician]) -> None:
        for tech in technicians:
            self._names[tech.technician_id] = tech.name

    def name(self, technician_id: str) -> str:
        return self._names.get(technician_id, UNKNOWN_NAME)

    def names(self, technician_ids: Iterable[str]) -> Tuple[str, ...]:
        return tuple(self.name(tid) for tid in technician_ids)

    def __contains__(self, technician_id: object) -> bool:
        return technician_id in self._names

    def __len__(self) -> int:
        return len(self._names)
