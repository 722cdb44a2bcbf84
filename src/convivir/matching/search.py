"""
Búsqueda de roommates por filtros explícitos.

Los filtros son independientes del score: cada criterio presente
achica el resultado (AND). El propio perfil siempre se excluye.

Nota: el presupuesto se filtra por contención de los extremos
(min >= filtro.min, max <= filtro.max), no por solapamiento de rangos.
"""

from typing import Iterable, Optional

import structlog

from convivir.models import RoommateProfile, SearchFilters

logger = structlog.get_logger()


class SearchFilter:
    """Aplica SearchFilters sobre un pool de candidatos."""

    def matches(self, profile: RoommateProfile, filters: SearchFilters) -> bool:
        """Indica si un perfil cumple todos los criterios presentes."""
        budget = filters.budget
        if budget.min is not None and profile.budget.min < budget.min:
            return False
        if budget.max is not None and profile.budget.max > budget.max:
            return False

        if filters.locations and not profile.preferred_locations.intersection(
            filters.locations
        ):
            return False

        lifestyle = filters.lifestyle
        if lifestyle.smoking is not None and profile.lifestyle.smoking != lifestyle.smoking:
            return False
        if lifestyle.pets is not None and profile.lifestyle.pets != lifestyle.pets:
            return False
        if lifestyle.drinking is not None and profile.lifestyle.drinking != lifestyle.drinking:
            return False

        return True

    def search(
        self,
        candidates: Iterable[RoommateProfile],
        filters: Optional[SearchFilters],
        exclude_user_id: str,
    ) -> list[RoommateProfile]:
        """
        Filtra candidatos.

        Args:
            candidates: Pool de perfiles
            filters: Criterios (None = sin filtros)
            exclude_user_id: ID del usuario que busca (nunca se devuelve)

        Returns:
            Perfiles que cumplen los filtros, en el orden de entrada
        """
        filters = filters or SearchFilters()
        pool = list(candidates)
        results = [
            profile
            for profile in pool
            if profile.id != exclude_user_id and self.matches(profile, filters)
        ]
        logger.debug(
            "Búsqueda aplicada",
            user_id=exclude_user_id,
            pool=len(pool),
            results=len(results),
        )
        return results
