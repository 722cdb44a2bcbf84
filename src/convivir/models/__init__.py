"""
Modelos de datos del sistema.

- RoommateProfile: perfil de búsqueda de compañero (uno por usuario)
- SearchFilters: criterios de búsqueda explícitos
- ProfileChange / ProfileState: eventos del ciclo de vida del perfil
"""

from convivir.models.profile import (
    Budget,
    BudgetFilter,
    Cleanliness,
    FoodPreference,
    Lifestyle,
    LifestyleFilter,
    RoommateProfile,
    SearchFilters,
    SeedIdentity,
    WorkSchedule,
)
from convivir.models.state import ProfileChange, ProfileState, state_of

__all__ = [
    # Perfil
    "RoommateProfile",
    "Budget",
    "Lifestyle",
    "FoodPreference",
    "WorkSchedule",
    "Cleanliness",
    "SeedIdentity",
    # Búsqueda
    "SearchFilters",
    "BudgetFilter",
    "LifestyleFilter",
    # Ciclo de vida
    "ProfileChange",
    "ProfileState",
    "state_of",
]
