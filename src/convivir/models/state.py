"""
Estados del ciclo de vida de un perfil.

    NON_EXISTENT --create--> ACTIVE --update--> ACTIVE --delete--> NON_EXISTENT
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from convivir.models.profile import RoommateProfile


class ProfileState(str, Enum):
    NON_EXISTENT = "non_existent"
    ACTIVE = "active"


def state_of(profile: Optional[RoommateProfile]) -> ProfileState:
    return ProfileState.ACTIVE if profile is not None else ProfileState.NON_EXISTENT


@dataclass(frozen=True)
class ProfileChange:
    """Evento emitido por una suscripción ante cada cambio del perfil."""

    user_id: str
    previous: ProfileState
    state: ProfileState
    profile: Optional[RoommateProfile]

    @property
    def is_active(self) -> bool:
        return self.state is ProfileState.ACTIVE
