"""
Store del perfil propio del usuario.

Mantiene el perfil sincronizado con el repositorio (suscripciones)
y expone las operaciones de escritura: crear, actualizar y borrar.
"""

import asyncio
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from convivir.database import ProfileRepository
from convivir.errors import NotAuthenticated, ProfileNotFound, ProfileValidationError
from convivir.models import (
    Budget,
    ProfileChange,
    ProfileState,
    RoommateProfile,
    SeedIdentity,
    state_of,
)
from convivir.models.profile import utcnow

logger = structlog.get_logger()

# Campos de texto libre que no pueden quedar vacíos
REQUIRED_TEXT_FIELDS = ("bio", "looking_for")

# Campos que nunca se toman de los datos del llamador
PROTECTED_FIELDS = ("id", "created_at", "updated_at")

_END = object()


class ProfileSubscription:
    """
    Stream de cambios del perfil de un usuario.

    Usar siempre como context manager para liberar el handler del
    repositorio en cualquier camino de salida:

        async with store.subscribe(user_id) as changes:
            async for change in changes:
                ...

    El primer evento es el valor actual. Si la fuente falla, la
    iteración termina y el error queda en `error`.
    """

    def __init__(self, repository: ProfileRepository, user_id: str):
        self.user_id = user_id
        self.error: Optional[Exception] = None
        self._repository = repository
        self._queue: asyncio.Queue = asyncio.Queue()
        self._state = ProfileState.NON_EXISTENT
        self._unsubscribe = None
        self._closed = False
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> "ProfileSubscription":
        if self._unsubscribe is None and not self._closed and not self._finished:
            self._unsubscribe = self._repository.subscribe(
                self.user_id, self._on_change, self._on_error
            )
            if self.error is not None:
                # La fuente falló durante el subscribe
                self._release()
            logger.debug("Suscripción abierta", user_id=self.user_id)
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()
        self._queue.put_nowait(_END)
        logger.debug("Suscripción cerrada", user_id=self.user_id)

    def _on_change(self, profile: Optional[RoommateProfile]) -> None:
        if self._closed:
            return
        state = state_of(profile)
        change = ProfileChange(
            user_id=self.user_id,
            previous=self._state,
            state=state,
            profile=profile,
        )
        self._state = state
        self._queue.put_nowait(change)

    def _on_error(self, error: Exception) -> None:
        if self._closed:
            return
        self.error = error
        logger.error("Error en suscripción de perfil", user_id=self.user_id, error=str(error))
        self._release()
        self._queue.put_nowait(_END)

    def _release(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def __aenter__(self) -> "ProfileSubscription":
        return self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __aiter__(self):
        return self

    async def __anext__(self) -> ProfileChange:
        if self._closed or self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END or self._closed:
            self._finished = True
            raise StopAsyncIteration
        return item


class ProfileStore:
    """Operaciones sobre el perfil de roommate de un usuario."""

    def __init__(self, repository: ProfileRepository):
        self.repository = repository

    def subscribe(self, user_id: str) -> ProfileSubscription:
        """Crea un stream de cambios del perfil (abrir con `async with`)."""
        _require_user(user_id, "observar un perfil")
        return ProfileSubscription(self.repository, user_id)

    async def get_profile(self, user_id: str) -> Optional[RoommateProfile]:
        """Obtiene el perfil de cualquier usuario (lectura sin restricciones)."""
        return await self.repository.get(user_id)

    async def create_profile(
        self,
        user_id: str,
        seed: SeedIdentity,
        data: dict[str, Any],
    ) -> RoommateProfile:
        """
        Crea (o reemplaza) el perfil del usuario.

        El perfil se pre-pobla con la identidad del usuario y luego se
        aplican los datos del llamador. Si ya existía, se conserva su
        created_at: crear dos veces actualiza el mismo registro.

        Raises:
            NotAuthenticated: sin usuario
            ProfileValidationError: datos inválidos (antes de tocar el repositorio)
            RepositoryUnavailable: fallo del repositorio
        """
        _require_user(user_id, "crear un perfil")
        if seed.id != user_id:
            raise ProfileValidationError(
                [f"La identidad ({seed.id}) no corresponde al usuario {user_id}"]
            )
        _check_fields(data)
        _check_text_fields(data, partial=False)

        now = utcnow()
        fields = {
            **seed.model_dump(exclude={"id"}),
            **_strip_protected(data),
            "id": user_id,
            "created_at": now,
            "updated_at": now,
        }
        profile = _build_profile(fields)

        existing = await self.repository.get(user_id)
        if existing is not None:
            profile = profile.model_copy(update={"created_at": existing.created_at})

        await self.repository.upsert(user_id, profile)
        logger.info(
            "Perfil creado",
            user_id=user_id,
            replaced=existing is not None,
            locations=len(profile.preferred_locations),
        )
        return profile

    async def update_profile(
        self, user_id: str, partial_data: dict[str, Any]
    ) -> RoommateProfile:
        """
        Actualiza parcialmente el perfil (los campos omitidos se conservan).

        Raises:
            NotAuthenticated: sin usuario
            ProfileValidationError: datos inválidos
            ProfileNotFound: el usuario no tiene perfil
            RepositoryUnavailable: fallo del repositorio
        """
        _require_user(user_id, "actualizar un perfil")
        _check_fields(partial_data)
        _check_text_fields(partial_data, partial=True)
        _check_partial_budget(partial_data)

        existing = await self.repository.get(user_id)
        if existing is None:
            raise ProfileNotFound(user_id)

        changes = {**_strip_protected(partial_data), "updated_at": utcnow()}
        try:
            profile = existing.merged_with(changes)
        except ValidationError as e:
            raise ProfileValidationError(_format_errors(e)) from e

        await self.repository.upsert(user_id, profile)
        logger.info("Perfil actualizado", user_id=user_id, fields=sorted(partial_data))
        return profile

    async def delete_profile(self, user_id: str) -> None:
        """
        Elimina el perfil del usuario.

        Raises:
            NotAuthenticated: sin usuario
            ProfileNotFound: el usuario no tiene perfil
            RepositoryUnavailable: fallo del repositorio
        """
        _require_user(user_id, "eliminar un perfil")

        existing = await self.repository.get(user_id)
        if existing is None:
            raise ProfileNotFound(user_id)

        await self.repository.delete(user_id)
        logger.info("Perfil eliminado", user_id=user_id)


def _require_user(user_id: Optional[str], operation: str) -> None:
    if not user_id:
        raise NotAuthenticated(operation)


def _strip_protected(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}


def _check_fields(data: dict[str, Any]) -> None:
    unknown = sorted(set(data) - set(RoommateProfile.model_fields))
    if unknown:
        raise ProfileValidationError([f"Campos desconocidos: {', '.join(unknown)}"])


def _check_text_fields(data: dict[str, Any], partial: bool) -> None:
    errors = []
    for field in REQUIRED_TEXT_FIELDS:
        if partial and field not in data:
            continue
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{field} es requerido")

    locations = data.get("preferred_locations")
    if locations is not None:
        if any(not isinstance(loc, str) or not loc.strip() for loc in locations):
            errors.append("preferred_locations no puede tener zonas vacías")

    if errors:
        raise ProfileValidationError(errors)


def _check_partial_budget(data: dict[str, Any]) -> None:
    budget = data.get("budget")
    if isinstance(budget, dict) and "min" in budget and "max" in budget:
        try:
            Budget.model_validate(budget)
        except ValidationError as e:
            raise ProfileValidationError(_format_errors(e)) from e


def _build_profile(fields: dict[str, Any]) -> RoommateProfile:
    try:
        return RoommateProfile.model_validate(fields)
    except ValidationError as e:
        raise ProfileValidationError(_format_errors(e)) from e


def _format_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or 'profile'}: {err['msg']}"
        for err in error.errors()
    ]
