"""
Score de compatibilidad entre dos perfiles de roommate.

Combina tres dimensiones ponderadas:
- Presupuesto (30): solapamiento de rangos, con crédito parcial si están cerca
- Ubicación (30): proporción de zonas en común
- Estilo de vida (40): hábitos, alimentación y limpieza

El score es simétrico, determinístico y siempre queda en [0, 100].
"""

import math
from dataclasses import dataclass

import structlog

from convivir.config import (
    BUDGET_GAP_TOLERANCE,
    BUDGET_WEIGHT,
    CLEANLINESS_MATCH_POINTS,
    CLEANLINESS_ORDER,
    FOOD_MATCH_POINTS,
    HABIT_MATCH_POINTS,
    LOCATION_WEIGHT,
)
from convivir.models import (
    Budget,
    Cleanliness,
    FoodPreference,
    Lifestyle,
    RoommateProfile,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class CompatibilityBreakdown:
    """Aporte de cada dimensión al score final."""

    budget: float
    location: float
    lifestyle: float

    @property
    def raw_total(self) -> float:
        return self.budget + self.location + self.lifestyle

    @property
    def total(self) -> int:
        # Redondeo half-up, acotado a [0, 100]
        return max(0, min(100, math.floor(self.raw_total + 0.5)))


def budget_score(a: Budget, b: Budget) -> float:
    """
    Compatibilidad de presupuesto.

    Si los rangos se solapan suma el peso completo. Si no, el crédito
    decae linealmente con la distancia entre rangos hasta llegar a 0
    cuando la distancia supera la mitad del máximo de ambos.
    """
    overlap = min(a.max, b.max) - max(a.min, b.min)
    if overlap >= 0:
        return float(BUDGET_WEIGHT)

    gap = -overlap
    max_gap = BUDGET_GAP_TOLERANCE * max(a.max, b.max)
    if max_gap <= 0 or gap > max_gap:
        return 0.0
    return BUDGET_WEIGHT * (1 - gap / max_gap)


def location_score(a: set[str], b: set[str]) -> float:
    """Proporción de zonas en común sobre el conjunto más grande."""
    common = len(a & b)
    if common == 0:
        return 0.0
    return LOCATION_WEIGHT * common / max(len(a), len(b))


def _cleanliness_rank(value) -> int:
    level = value or Cleanliness.MODERATE
    return CLEANLINESS_ORDER.index(Cleanliness(level).value)


def lifestyle_score(a: Lifestyle, b: Lifestyle) -> float:
    """Suma de coincidencias de hábitos (máximo 40)."""
    points = 0

    if a.smoking == b.smoking:
        points += HABIT_MATCH_POINTS
    if a.pets == b.pets:
        points += HABIT_MATCH_POINTS
    if a.drinking == b.drinking:
        points += HABIT_MATCH_POINTS

    food_a = a.food_preference or FoodPreference.NO_PREFERENCE
    food_b = b.food_preference or FoodPreference.NO_PREFERENCE
    if (
        food_a == food_b
        or food_a == FoodPreference.NO_PREFERENCE
        or food_b == FoodPreference.NO_PREFERENCE
    ):
        points += FOOD_MATCH_POINTS

    if abs(_cleanliness_rank(a.cleanliness) - _cleanliness_rank(b.cleanliness)) <= 1:
        points += CLEANLINESS_MATCH_POINTS

    return float(points)


def score_breakdown(a: RoommateProfile, b: RoommateProfile) -> CompatibilityBreakdown:
    """Calcula el aporte de cada dimensión para el par (a, b)."""
    return CompatibilityBreakdown(
        budget=budget_score(a.budget, b.budget),
        location=location_score(a.preferred_locations, b.preferred_locations),
        lifestyle=lifestyle_score(a.lifestyle, b.lifestyle),
    )


def compatibility_score(a: RoommateProfile, b: RoommateProfile) -> int:
    """
    Score de compatibilidad entre dos perfiles.

    Args:
        a: Perfil de referencia
        b: Perfil candidato

    Returns:
        Entero en [0, 100]; score(a, b) == score(b, a)
    """
    breakdown = score_breakdown(a, b)
    logger.debug(
        "Score calculado",
        profile_a=a.id,
        profile_b=b.id,
        budget=breakdown.budget,
        location=breakdown.location,
        lifestyle=breakdown.lifestyle,
        total=breakdown.total,
    )
    return breakdown.total
