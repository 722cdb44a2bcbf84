from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from convivir.config import get_settings
from convivir.database import InMemoryProfileRepository
from convivir.models import RoommateProfile, SeedIdentity


def pytest_configure() -> None:
    # Settings se cachea: limpiar para que cada corrida lea el entorno actual.
    get_settings.cache_clear()


@pytest.fixture()
def make_profile() -> Callable[..., RoommateProfile]:
    def factory(
        profile_id: str,
        budget: tuple[float, float] = (10000, 20000),
        locations: tuple[str, ...] = ("Palermo",),
        **lifestyle: Any,
    ) -> RoommateProfile:
        return RoommateProfile.model_validate(
            {
                "id": profile_id,
                "first_name": profile_id.capitalize(),
                "budget": {"min": budget[0], "max": budget[1]},
                "preferred_locations": list(locations),
                "lifestyle": {
                    "smoking": False,
                    "pets": False,
                    "drinking": False,
                    **lifestyle,
                },
                "bio": f"Hola, soy {profile_id}",
                "looking_for": "Alguien tranquilo",
            }
        )

    return factory


@pytest.fixture()
def repo() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture()
def seed() -> SeedIdentity:
    return SeedIdentity(
        id="ana",
        first_name="Ana",
        last_name="García",
        email="ana@example.com",
        phone="+54 11 5555-0000",
    )


@pytest.fixture()
def profile_data() -> dict[str, Any]:
    return {
        "budget": {"min": 10000, "max": 20000},
        "preferred_locations": ["Palermo", "Belgrano"],
        "lifestyle": {
            "smoking": False,
            "pets": True,
            "drinking": False,
            "food_preference": "vegetarian",
            "cleanliness": "clean",
        },
        "bio": "Trabajo de día, me gusta cocinar",
        "looking_for": "Alguien ordenado",
    }


async def _settle(rounds: int = 20) -> None:
    # Cede el loop para que las tareas de fondo procesen los eventos pendientes
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture()
def settle() -> Callable:
    return _settle
