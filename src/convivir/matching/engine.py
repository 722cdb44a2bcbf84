"""
Motor de recomendaciones de roommates.

Ordena el pool de candidatos por compatibilidad con el perfil
del usuario y devuelve los mejores K.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import structlog

from convivir.config import get_settings
from convivir.matching.scorer import compatibility_score
from convivir.models import RoommateProfile

logger = structlog.get_logger()


@dataclass
class ScoredProfile:
    """Candidato con su score de compatibilidad."""

    profile: RoommateProfile
    score: int  # 0 a 100


class RecommendationEngine:
    """
    Ranking de candidatos por score de compatibilidad.

    Flujo:
    1. Excluir el propio perfil del pool
    2. Calcular score(self, candidato) para cada candidato
    3. Ordenar descendente (estable: ante empate se respeta el orden original)
    4. Truncar a K
    """

    def __init__(
        self,
        scorer: Callable[[RoommateProfile, RoommateProfile], int] = compatibility_score,
        default_limit: Optional[int] = None,
    ):
        self.scorer = scorer
        if default_limit is None:
            default_limit = get_settings().recommendation_limit
        self.default_limit = default_limit

    def rank(
        self,
        own_profile: RoommateProfile,
        candidates: Iterable[RoommateProfile],
    ) -> list[ScoredProfile]:
        """
        Calcula el score de cada candidato y los ordena.

        Returns:
            Todos los candidatos (sin el propio perfil) ordenados por score
        """
        scored = [
            ScoredProfile(profile=candidate, score=self.scorer(own_profile, candidate))
            for candidate in candidates
            if candidate.id != own_profile.id
        ]
        # sort() es estable: los empates mantienen el orden de entrada
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored

    def recommend(
        self,
        own_profile: RoommateProfile,
        candidates: Iterable[RoommateProfile],
        k: Optional[int] = None,
    ) -> list[RoommateProfile]:
        """
        Top-K de candidatos más compatibles.

        Args:
            own_profile: Perfil del usuario que pide recomendaciones
            candidates: Pool de perfiles (puede incluir el propio)
            k: Máximo de resultados (default: settings.recommendation_limit)

        Returns:
            Perfiles ordenados por score descendente
        """
        limit = self.default_limit if k is None else k
        if limit <= 0:
            return []

        ranked = self.rank(own_profile, candidates)
        top = ranked[:limit]

        logger.debug(
            "Recomendaciones calculadas",
            user_id=own_profile.id,
            candidates=len(ranked),
            returned=len(top),
            top_score=top[0].score if top else None,
        )
        return [s.profile for s in top]
