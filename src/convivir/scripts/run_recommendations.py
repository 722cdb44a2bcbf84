"""
Script para consultar recomendaciones de roommates de un usuario.

Muestra el top-K de candidatos con el detalle del score, o el
resultado de una búsqueda por filtros. Con --watch queda escuchando
cambios del perfil y reimprime las recomendaciones.

Uso:
    python -m convivir.scripts.run_recommendations --user-id <uuid>
    python -m convivir.scripts.run_recommendations --user-id <uuid> --limit 10 --watch
    python -m convivir.scripts.run_recommendations --user-id <uuid> --search --location Palermo --budget-max 400000
"""

import argparse
import asyncio
import logging
import sys

import structlog

from convivir.config import get_settings
from convivir.database import SupabaseProfileRepository
from convivir.matching import RecommendationEngine, score_breakdown
from convivir.models import RoommateProfile, SearchFilters
from convivir.profiles import RoommateService

# Configurar logging
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(message)s",
    force=True,
)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def _format_profile(own: RoommateProfile, candidate: RoommateProfile) -> str:
    breakdown = score_breakdown(own, candidate)
    name = f"{candidate.first_name} {candidate.last_name}".strip() or candidate.id
    locations = ", ".join(sorted(candidate.preferred_locations)) or "-"
    return (
        f"{breakdown.total:>3}  {name} "
        f"[presupuesto={breakdown.budget:.1f} ubicación={breakdown.location:.1f} "
        f"estilo={breakdown.lifestyle:.0f}] "
        f"${candidate.budget.min:,.0f}-${candidate.budget.max:,.0f} | {locations}"
    )


def _print_matches(service: RoommateService) -> None:
    own = service.current_user_profile
    print(f"\n=== RECOMENDACIONES ({service.user_id}) ===")
    if own is None:
        print("El usuario no tiene perfil de roommate.")
        return
    if not service.recommended_matches:
        print("Sin candidatos.")
        return
    for candidate in service.recommended_matches:
        print(_format_profile(own, candidate))


def _build_filters(args: argparse.Namespace) -> SearchFilters:
    return SearchFilters.model_validate(
        {
            "budget": {"min": args.budget_min, "max": args.budget_max},
            "locations": args.location or [],
            "lifestyle": {
                "smoking": args.smoking,
                "pets": args.pets,
                "drinking": args.drinking,
            },
        }
    )


async def run(args: argparse.Namespace) -> int:
    repository = SupabaseProfileRepository()
    engine = RecommendationEngine(default_limit=args.limit)

    async with RoommateService(repository, args.user_id, engine=engine) as service:
        if args.search:
            results = await service.search_profiles(_build_filters(args))
            print(f"\n=== BÚSQUEDA ({len(results)} resultados) ===")
            own = service.current_user_profile
            for candidate in results:
                if own is not None:
                    print(_format_profile(own, candidate))
                else:
                    print(f"  -  {candidate.id}")
            return 0

        if service.subscription_error is not None:
            logger.error("No se pudo leer el perfil", error=str(service.subscription_error))
            return 1

        _print_matches(service)

        if args.watch:
            remove = service.add_listener(_print_matches)
            try:
                while service.is_running:
                    await asyncio.sleep(1)
            finally:
                remove()
            if service.subscription_error is not None:
                logger.error("Suscripción interrumpida", error=str(service.subscription_error))
                return 1

    return 0


def _optional_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "si", "sí", "yes")


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(
        description="Recomendaciones y búsqueda de roommates para un usuario"
    )
    parser.add_argument("--user-id", required=True, help="ID del usuario")
    parser.add_argument(
        "--limit",
        type=int,
        default=settings.recommendation_limit,
        help="Cantidad de recomendaciones",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Queda escuchando cambios del perfil",
    )
    parser.add_argument(
        "--search",
        action="store_true",
        help="Busca por filtros en lugar de recomendar",
    )
    parser.add_argument("--location", action="append", help="Zona aceptable (repetible)")
    parser.add_argument("--budget-min", type=float, default=None)
    parser.add_argument("--budget-max", type=float, default=None)
    parser.add_argument("--smoking", type=_optional_bool, default=None)
    parser.add_argument("--pets", type=_optional_bool, default=None)
    parser.add_argument("--drinking", type=_optional_bool, default=None)

    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        logger.info("Consulta interrumpida por usuario")
        sys.exit(130)
    except Exception as e:
        logger.error("Error fatal consultando recomendaciones", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
