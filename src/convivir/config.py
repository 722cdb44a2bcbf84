"""
Configuración centralizada del sistema.
Carga variables de entorno y define settings globales.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Encontrar la raíz del proyecto (donde está el .env)
# config.py -> convivir/ -> src/ -> project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Configuración principal de la aplicación."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase (solo requerido al construir el repositorio de Supabase)
    supabase_url: Optional[str] = Field(None, description="URL del proyecto Supabase")
    supabase_key: Optional[str] = Field(None, description="Anon key de Supabase")
    supabase_service_key: Optional[str] = Field(
        None, description="Service role key para operaciones admin"
    )
    profiles_table: str = Field(
        "roommate_profiles", description="Tabla de perfiles de roommates"
    )

    # Matching
    recommendation_limit: int = Field(
        5, ge=1, description="Cantidad de recomendaciones por usuario"
    )

    # Suscripciones
    subscription_poll_interval: float = Field(
        5.0, gt=0, description="Intervalo de polling de cambios (segundos)"
    )

    # Repositorio
    repository_retry_attempts: int = Field(
        3, ge=1, description="Reintentos ante errores transitorios del repositorio"
    )

    # Logging
    log_level: str = Field("INFO", description="Nivel de logging")


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuración cacheada."""
    return Settings()


# Constantes del sistema

# Orden total de limpieza: de más exigente a más relajado
CLEANLINESS_ORDER = ["very-clean", "clean", "moderate", "relaxed"]

# Pesos de cada dimensión del score de compatibilidad (suman 100)
BUDGET_WEIGHT = 30
LOCATION_WEIGHT = 30
LIFESTYLE_WEIGHT = 40

# Puntos por sub-dimensión de estilo de vida (suman LIFESTYLE_WEIGHT)
HABIT_MATCH_POINTS = 10  # smoking, pets, drinking
FOOD_MATCH_POINTS = 5
CLEANLINESS_MATCH_POINTS = 5

# Fracción del presupuesto máximo tolerada como distancia entre rangos
BUDGET_GAP_TOLERANCE = 0.5
