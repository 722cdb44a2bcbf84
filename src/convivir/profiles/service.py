"""
Servicio de roommates para el usuario autenticado.

Punto de entrada para UI y otros colaboradores. Mantiene dos valores
reactivos que se actualizan solos:
- current_user_profile: el perfil propio, según la suscripción
- recommended_matches: top-K de candidatos para ese perfil

Las recomendaciones se recalculan ante cada cambio del perfil propio
y cada vez que se recarga el pool de candidatos.
"""

import asyncio
from typing import Any, Callable, Optional

import structlog

from convivir.database import ProfileRepository
from convivir.errors import NotAuthenticated, RepositoryUnavailable
from convivir.matching import RecommendationEngine, SearchFilter
from convivir.models import (
    ProfileChange,
    ProfileState,
    RoommateProfile,
    SearchFilters,
    SeedIdentity,
)
from convivir.profiles.store import ProfileStore, ProfileSubscription

logger = structlog.get_logger()

UpdateListener = Callable[["RoommateService"], None]


class RoommateService:
    """
    Fachada del motor de roommates ligada a un usuario.

    Uso:
        async with RoommateService(repo, user_id) as service:
            await service.create_profile(seed, {...})
            service.recommended_matches
    """

    def __init__(
        self,
        repository: ProfileRepository,
        user_id: Optional[str],
        engine: Optional[RecommendationEngine] = None,
        search_filter: Optional[SearchFilter] = None,
    ):
        self.user_id = user_id
        self.repository = repository
        self.store = ProfileStore(repository)
        self.engine = engine or RecommendationEngine()
        self.search_filter = search_filter or SearchFilter()

        self.current_user_profile: Optional[RoommateProfile] = None
        self.recommended_matches: list[RoommateProfile] = []
        self.candidates: list[RoommateProfile] = []
        self.subscription_error: Optional[Exception] = None

        self._subscription: Optional[ProfileSubscription] = None
        self._consumer: Optional[asyncio.Task] = None
        self._listeners: list[UpdateListener] = []

    @property
    def state(self) -> ProfileState:
        if self.current_user_profile is None:
            return ProfileState.NON_EXISTENT
        return ProfileState.ACTIVE

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    # Ciclo de vida

    async def start(self) -> None:
        """
        Abre la suscripción al perfil propio.

        Sin usuario no hay nada que observar: el servicio queda con
        valores vacíos. Devuelve después de procesar el valor inicial.
        """
        if self._subscription is not None or not self.user_id:
            return

        self.subscription_error = None
        subscription = self.store.subscribe(self.user_id).open()
        self._subscription = subscription

        try:
            try:
                first = await subscription.__anext__()
            except StopAsyncIteration:
                first = None

            if first is None:
                if subscription.error is not None:
                    # Falló la lectura inicial: no hay stream que consumir
                    self.subscription_error = subscription.error
                    self._subscription = None
                    logger.error(
                        "No se pudo leer el perfil inicial",
                        user_id=self.user_id,
                        error=str(subscription.error),
                    )
                    return
            else:
                await self._apply_change(first)
        except BaseException:
            subscription.close()
            self._subscription = None
            raise

        self._consumer = asyncio.create_task(self._consume(subscription))
        logger.info("Servicio de roommates iniciado", user_id=self.user_id)

    async def stop(self) -> None:
        """Libera la suscripción. Las escrituras en curso no se cancelan."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._consumer is not None:
            consumer, self._consumer = self._consumer, None
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
        logger.info("Servicio de roommates detenido", user_id=self.user_id)

    async def __aenter__(self) -> "RoommateService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    def add_listener(self, listener: UpdateListener) -> Callable[[], None]:
        """Registra un callback que se llama tras cada actualización reactiva."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # Escrituras del perfil propio

    async def create_profile(
        self, seed: SeedIdentity, data: dict[str, Any]
    ) -> RoommateProfile:
        return await self.store.create_profile(self._require_user("crear un perfil"), seed, data)

    async def update_profile(self, data: dict[str, Any]) -> RoommateProfile:
        return await self.store.update_profile(self._require_user("actualizar un perfil"), data)

    async def delete_profile(self) -> None:
        await self.store.delete_profile(self._require_user("eliminar un perfil"))

    # Lecturas

    async def get_profile_by_id(self, profile_id: str) -> Optional[RoommateProfile]:
        return await self.store.get_profile(profile_id)

    async def search_profiles(
        self, filters: Optional[SearchFilters] = None
    ) -> list[RoommateProfile]:
        """
        Busca perfiles por filtros explícitos. Nunca devuelve el propio.

        Raises:
            NotAuthenticated: sin usuario
            RepositoryUnavailable: fallo del repositorio
        """
        user_id = self._require_user("buscar perfiles")
        filters = filters or SearchFilters()
        pool = await self.repository.query_all(filters)
        results = self.search_filter.search(pool, filters, exclude_user_id=user_id)
        logger.info("Búsqueda de roommates", user_id=user_id, results=len(results))
        return results

    async def refresh_candidates(self) -> list[RoommateProfile]:
        """
        Recarga el pool de candidatos y recalcula las recomendaciones.

        Raises:
            RepositoryUnavailable: fallo del repositorio
        """
        pool = await self.repository.query_all()
        self.candidates = [p for p in pool if p.id != self.user_id]
        self._recompute()
        return self.recommended_matches

    # Internos

    def _require_user(self, operation: str) -> str:
        if not self.user_id:
            raise NotAuthenticated(operation)
        return self.user_id

    async def _consume(self, subscription: ProfileSubscription) -> None:
        async for change in subscription:
            await self._apply_change(change)

        if subscription.error is not None:
            # La suscripción murió: se conservan los últimos valores
            self.subscription_error = subscription.error
            if self._subscription is subscription:
                self._subscription = None
            logger.warning(
                "Sin actualizaciones de perfil hasta volver a suscribirse",
                user_id=self.user_id,
                error=str(subscription.error),
            )

    async def _apply_change(self, change: ProfileChange) -> None:
        self.current_user_profile = change.profile

        if not change.is_active:
            self.recommended_matches = []
            logger.debug("Perfil inexistente, sin recomendaciones", user_id=self.user_id)
            self._notify_listeners()
            return

        try:
            await self.refresh_candidates()
        except RepositoryUnavailable as e:
            # Se recalcula con el pool anterior
            logger.error(
                "No se pudo recargar el pool de candidatos",
                user_id=self.user_id,
                error=str(e),
            )
            self._recompute()

    def _recompute(self) -> None:
        if self.current_user_profile is None:
            self.recommended_matches = []
        else:
            self.recommended_matches = self.engine.recommend(
                self.current_user_profile, self.candidates
            )
        logger.debug(
            "Recomendaciones actualizadas",
            user_id=self.user_id,
            matches=len(self.recommended_matches),
        )
        self._notify_listeners()

    def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error("Error en listener", user_id=self.user_id, error=str(e))
