"""
Modelo de Perfil de Roommate

Define el perfil de búsqueda de compañero de cuarto de un usuario:
presupuesto, zonas preferidas y estilo de vida. Existe un único
perfil por usuario y su ID es el mismo que el del usuario.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator


def utcnow() -> datetime:
    """Timestamp actual en UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


class FoodPreference(str, Enum):
    VEGETARIAN = "vegetarian"
    NON_VEGETARIAN = "non-vegetarian"
    VEGAN = "vegan"
    NO_PREFERENCE = "no-preference"


class WorkSchedule(str, Enum):
    DAY = "day"
    NIGHT = "night"
    FLEXIBLE = "flexible"


class Cleanliness(str, Enum):
    VERY_CLEAN = "very-clean"
    CLEAN = "clean"
    MODERATE = "moderate"
    RELAXED = "relaxed"


class Budget(BaseModel):
    """Rango de alquiler mensual que el usuario está dispuesto a pagar."""

    min: float = Field(..., ge=0, description="Alquiler mínimo mensual")
    max: float = Field(..., ge=0, description="Alquiler máximo mensual")

    @model_validator(mode="after")
    def _check_range(self) -> "Budget":
        if self.min > self.max:
            raise ValueError(
                f"budget.min ({self.min}) no puede ser mayor que budget.max ({self.max})"
            )
        return self


class Lifestyle(BaseModel):
    """
    Hábitos del usuario.

    Los campos opcionales se completan con valores neutros
    (moderate / no-preference) al calcular compatibilidad.
    """

    smoking: bool = False
    pets: bool = False
    drinking: bool = False
    food_preference: Optional[FoodPreference] = None
    work_schedule: Optional[WorkSchedule] = None
    cleanliness: Optional[Cleanliness] = None


class SeedIdentity(BaseModel):
    """Identidad del usuario autenticado, usada para pre-poblar el perfil."""

    id: str = Field(..., min_length=1, description="ID del usuario")
    first_name: str = Field(default="")
    last_name: str = Field(default="")
    email: str = Field(default="")
    phone: str = Field(default="")
    avatar_url: str = Field(default="")


class RoommateProfile(BaseModel):
    """
    Perfil de roommate. Uno por usuario (id = ID del usuario).
    """

    model_config = ConfigDict(from_attributes=True)

    # Identificador (= usuario dueño)
    id: str = Field(..., min_length=1, description="ID del usuario dueño del perfil")

    # Datos copiados de la identidad al crear
    first_name: str = Field(default="")
    last_name: str = Field(default="")
    email: str = Field(default="")
    phone: str = Field(default="")
    avatar_url: str = Field(default="")

    # Preferencias
    budget: Budget
    preferred_locations: set[str] = Field(
        default_factory=set, description="Zonas / ciudades aceptables"
    )
    lifestyle: Lifestyle = Field(default_factory=Lifestyle)

    # Texto libre
    bio: str = Field(default="")
    looking_for: str = Field(default="")

    # Metadatos
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_serializer("preferred_locations")
    def _serialize_locations(self, locations: set[str]) -> list[str]:
        # Orden estable para que los dumps sean comparables
        return sorted(locations)

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para upsert en Supabase."""
        data = self.model_dump(mode="json")
        # budget y lifestyle se guardan como JSONB
        data["budget"] = self.budget.model_dump(mode="json")
        data["lifestyle"] = self.lifestyle.model_dump(mode="json")
        return data

    @classmethod
    def from_db_dict(cls, row: dict) -> "RoommateProfile":
        """Reconstruye un perfil desde una fila de la base."""
        data = dict(row)
        # Filas viejas pueden no tener timestamps
        if not data.get("created_at"):
            data["created_at"] = utcnow()
        if not data.get("updated_at"):
            data["updated_at"] = utcnow()
        data["preferred_locations"] = data.get("preferred_locations") or []
        data["lifestyle"] = data.get("lifestyle") or {}
        return cls.model_validate(data)

    def merged_with(self, changes: dict[str, Any]) -> "RoommateProfile":
        """
        Devuelve una copia con los cambios aplicados (merge parcial).

        budget y lifestyle se combinan campo a campo; el resto se reemplaza.
        El ID y created_at nunca cambian.
        """
        data = self.model_dump()
        for key, value in changes.items():
            if key in ("id", "created_at"):
                continue
            if key in ("budget", "lifestyle") and isinstance(value, dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return RoommateProfile.model_validate(data)


class BudgetFilter(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class LifestyleFilter(BaseModel):
    smoking: Optional[bool] = None
    pets: Optional[bool] = None
    drinking: Optional[bool] = None


class SearchFilters(BaseModel):
    """
    Criterios de búsqueda explícitos. Todos opcionales; se combinan con AND.
    """

    budget: BudgetFilter = Field(default_factory=BudgetFilter)
    locations: list[str] = Field(
        default_factory=list, description="Zonas aceptables (cualquiera)"
    )
    lifestyle: LifestyleFilter = Field(default_factory=LifestyleFilter)
