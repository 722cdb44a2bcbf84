"""
Módulo de base de datos.

Provee el contrato de repositorio de perfiles y sus implementaciones.
"""

from convivir.database.supabase_client import get_supabase_client
from convivir.database.repositories import (
    ProfileRepository,
    InMemoryProfileRepository,
    SupabaseProfileRepository,
)

__all__ = [
    "get_supabase_client",
    "ProfileRepository",
    "InMemoryProfileRepository",
    "SupabaseProfileRepository",
]
