"""
Conexión a Supabase para los repositorios de perfiles.
"""

from functools import lru_cache

import structlog
from supabase import create_client, Client

from convivir.config import Settings, get_settings

logger = structlog.get_logger()


def _credentials(settings: Settings) -> tuple[str, str]:
    """URL y key a usar; la service key tiene prioridad sobre la anon key."""
    key = settings.supabase_service_key or settings.supabase_key
    if not settings.supabase_url or not key:
        raise ValueError(
            "Faltan credenciales de Supabase: definir SUPABASE_URL y "
            "SUPABASE_KEY (o SUPABASE_SERVICE_KEY)."
        )
    return settings.supabase_url, key


@lru_cache
def get_supabase_client() -> Client:
    """
    Cliente compartido por todos los repositorios del proceso.

    Raises:
        ValueError: sin credenciales configuradas
    """
    url, key = _credentials(get_settings())
    client = create_client(url, key)
    logger.info("Conectado a Supabase", url=url, table=get_settings().profiles_table)
    return client
