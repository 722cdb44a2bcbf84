"""
Motor de matching de roommates.

Score de compatibilidad, ranking de recomendaciones y
búsqueda por filtros explícitos.
"""

from convivir.matching.engine import RecommendationEngine, ScoredProfile
from convivir.matching.scorer import (
    CompatibilityBreakdown,
    compatibility_score,
    score_breakdown,
)
from convivir.matching.search import SearchFilter

__all__ = [
    "RecommendationEngine",
    "ScoredProfile",
    "CompatibilityBreakdown",
    "compatibility_score",
    "score_breakdown",
    "SearchFilter",
]
