"""Ranking engine, suggestion assembly and advisor entrypoints."""

from .advisor import PlacementAdvisor, ReasonEnhancer
from .assembly import build_suggestion
from .ranking import PlacementTarget, RankingOptions, crew_combinations, rank_candidates

__all__ = [
    "PlacementAdvisor",
    "ReasonEnhancer",
    "PlacementTarget",
    "RankingOptions",
    "crew_combinations",
    "rank_candidates",
    "build_suggestion",
]
