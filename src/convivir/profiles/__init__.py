"""
Perfiles de roommate del usuario autenticado.

ProfileStore mantiene el perfil propio sincronizado con el repositorio;
RoommateService expone las operaciones y los valores reactivos.
"""

from convivir.profiles.store import ProfileStore, ProfileSubscription
from convivir.profiles.service import RoommateService

__all__ = [
    "ProfileStore",
    "ProfileSubscription",
    "RoommateService",
]
