"""
Repositorios de perfiles de roommate.

Define el contrato que consume el core (ProfileRepository) y dos
implementaciones:
- SupabaseProfileRepository: tabla en Supabase, cambios por polling
- InMemoryProfileRepository: dict en memoria, cambios por push
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import structlog
from pydantic import ValidationError
from supabase import Client, PostgrestAPIError
from tenacity import (
    AsyncRetrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from convivir.config import get_settings
from convivir.database.supabase_client import get_supabase_client
from convivir.errors import RepositoryUnavailable
from convivir.models import RoommateProfile, SearchFilters

logger = structlog.get_logger()

ChangeHandler = Callable[[Optional[RoommateProfile]], None]
ErrorHandler = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class ProfileRepository(ABC):
    """
    Almacenamiento durable de un perfil por usuario.

    Las implementaciones deben levantar RepositoryUnavailable ante
    fallos de red o permisos, con la causa original encadenada.
    """

    @abstractmethod
    async def get(self, user_id: str) -> Optional[RoommateProfile]:
        """Obtiene el perfil de un usuario (None si no existe)."""

    @abstractmethod
    async def upsert(self, user_id: str, profile: RoommateProfile) -> None:
        """Inserta o reemplaza el perfil del usuario."""

    @abstractmethod
    async def delete(self, user_id: str) -> None:
        """Elimina el perfil del usuario."""

    @abstractmethod
    async def query_all(
        self, filters: Optional[SearchFilters] = None
    ) -> list[RoommateProfile]:
        """
        Obtiene todos los perfiles.

        Las implementaciones pueden usar los filtros para pre-filtrar;
        el llamador los vuelve a aplicar, así que ignorarlos es válido.
        """

    @abstractmethod
    def subscribe(
        self,
        user_id: str,
        on_change: ChangeHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        """
        Observa el perfil de un usuario.

        on_change recibe el valor actual apenas se suscribe y luego cada
        cambio. Ante un error de la fuente se llama a on_error y la
        suscripción deja de emitir.

        Returns:
            Función que cancela la suscripción
        """


class InMemoryProfileRepository(ProfileRepository):
    """Repositorio en memoria. Notifica a los suscriptores en cada escritura."""

    def __init__(self, profiles: Optional[list[RoommateProfile]] = None):
        self._profiles: dict[str, RoommateProfile] = {}
        self._handlers: dict[str, list[ChangeHandler]] = {}
        for profile in profiles or []:
            self._profiles[profile.id] = profile

    async def get(self, user_id: str) -> Optional[RoommateProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def upsert(self, user_id: str, profile: RoommateProfile) -> None:
        self._profiles[user_id] = profile.model_copy(deep=True)
        self._notify(user_id)

    async def delete(self, user_id: str) -> None:
        if self._profiles.pop(user_id, None) is not None:
            self._notify(user_id)

    async def query_all(
        self, filters: Optional[SearchFilters] = None
    ) -> list[RoommateProfile]:
        return [p.model_copy(deep=True) for p in self._profiles.values()]

    def subscribe(
        self,
        user_id: str,
        on_change: ChangeHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        handlers = self._handlers.setdefault(user_id, [])
        handlers.append(on_change)
        on_change(self._snapshot(user_id))

        def unsubscribe() -> None:
            if on_change in handlers:
                handlers.remove(on_change)

        return unsubscribe

    def subscriber_count(self, user_id: str) -> int:
        """Cantidad de suscripciones activas para un usuario."""
        return len(self._handlers.get(user_id, []))

    def _snapshot(self, user_id: str) -> Optional[RoommateProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    def _notify(self, user_id: str) -> None:
        snapshot = self._snapshot(user_id)
        for handler in list(self._handlers.get(user_id, [])):
            try:
                handler(snapshot)
            except Exception as e:
                logger.error(
                    "Error en handler de cambios",
                    user_id=user_id,
                    error=str(e),
                )


class SupabaseProfileRepository(ProfileRepository):
    """
    Repositorio de perfiles sobre Supabase.

    El cliente de Supabase es sincrónico: cada request corre en un thread
    para no bloquear el event loop. Los errores de transporte se reintentan
    con backoff exponencial; los errores HTTP (permisos, constraints) no.
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        table: Optional[str] = None,
        poll_interval: Optional[float] = None,
        retry_attempts: Optional[int] = None,
    ):
        settings = get_settings()
        self._client = client or get_supabase_client()
        self.table = table or settings.profiles_table
        self.poll_interval = poll_interval or settings.subscription_poll_interval
        self.retry_attempts = retry_attempts or settings.repository_retry_attempts

    @property
    def client(self) -> Client:
        return self._client

    async def _execute(self, operation: str, build_query: Callable[[], Any]) -> list:
        """
        Ejecuta una query de PostgREST en un thread, con reintentos.

        Raises:
            RepositoryUnavailable: si la query falla (tras reintentar)
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=1, min=2, max=10),
                retry=retry_if_not_exception_type(PostgrestAPIError),
                reraise=True,
            ):
                with attempt:
                    response = await asyncio.to_thread(lambda: build_query().execute())
                    return response.data or []
        except Exception as e:
            logger.error(
                "Error en repositorio de perfiles",
                operation=operation,
                table=self.table,
                error=str(e),
            )
            raise RepositoryUnavailable(f"Falló {operation} en {self.table}: {e}") from e

    async def get(self, user_id: str) -> Optional[RoommateProfile]:
        rows = await self._execute(
            "get",
            lambda: self.client.table(self.table)
            .select("*")
            .eq("id", user_id)
            .limit(1),
        )
        if not rows:
            return None
        try:
            return RoommateProfile.from_db_dict(rows[0])
        except ValidationError as e:
            logger.error("Perfil almacenado inválido", user_id=user_id, error=str(e))
            raise RepositoryUnavailable(f"Perfil inválido para {user_id} en {self.table}") from e

    async def upsert(self, user_id: str, profile: RoommateProfile) -> None:
        data = profile.to_db_dict()
        data["id"] = user_id
        await self._execute(
            "upsert",
            lambda: self.client.table(self.table).upsert(data, on_conflict="id"),
        )
        logger.info("Perfil upserted", user_id=user_id)

    async def delete(self, user_id: str) -> None:
        await self._execute(
            "delete",
            lambda: self.client.table(self.table).delete().eq("id", user_id),
        )
        logger.info("Perfil eliminado", user_id=user_id)

    async def query_all(
        self, filters: Optional[SearchFilters] = None
    ) -> list[RoommateProfile]:
        def build_query():
            query = self.client.table(self.table).select("*")
            if filters is None:
                return query

            if filters.budget.min is not None:
                query = query.gte("budget->min", filters.budget.min)
            if filters.budget.max is not None:
                query = query.lte("budget->max", filters.budget.max)
            if filters.locations:
                query = query.ov("preferred_locations", filters.locations)

            lifestyle = filters.lifestyle.model_dump(exclude_none=True)
            for flag, value in lifestyle.items():
                query = query.eq(f"lifestyle->>{flag}", str(value).lower())
            return query

        rows = await self._execute("query_all", build_query)
        profiles = []
        for row in rows:
            try:
                profiles.append(RoommateProfile.from_db_dict(row))
            except ValidationError as e:
                # Una fila rota no invalida el resto del pool
                logger.warning("Fila de perfil ignorada", profile_id=row.get("id"), error=str(e))
        return profiles

    def subscribe(
        self,
        user_id: str,
        on_change: ChangeHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        task = asyncio.get_running_loop().create_task(
            self._poll(user_id, on_change, on_error)
        )
        logger.debug("Suscripción por polling iniciada", user_id=user_id)

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def _poll(
        self,
        user_id: str,
        on_change: ChangeHandler,
        on_error: Optional[ErrorHandler],
    ) -> None:
        """Consulta el perfil periódicamente y emite solo cuando cambia."""
        last_seen: Any = object()

        while True:
            try:
                profile = await self.get(user_id)
            except Exception as e:
                logger.warning("Suscripción detenida", user_id=user_id, error=str(e))
                if on_error:
                    on_error(e)
                return

            fingerprint = profile.to_db_dict() if profile else None
            if fingerprint != last_seen:
                last_seen = fingerprint
                on_change(profile)

            await asyncio.sleep(self.poll_interval)
