"""
movie_catalog/config.py

Superficie única de configuración: re-exporta config_base (modos/logging)
y config_tmdb (proveedor + agregación).

"Config as data": aquí solo se parsean, validan y exponen constantes.
"""

from __future__ import annotations

from movie_catalog.config_base import (  # noqa: F401
    DEBUG_MODE,
    HTTP_DEBUG,
    LOG_LEVEL,
    LOGGER_FILE_ENABLED,
    LOGGER_FILE_PATH,
    SILENT_MODE,
)
from movie_catalog.config_tmdb import (  # noqa: F401
    CATALOG_LIST_DRIVERS,
    CATALOG_MAX_ENRICHED_PEOPLE,
    CATALOG_WORKER_POOL_SIZE,
    TMDB_API_KEY,
    TMDB_BASE_URL,
    TMDB_HTTP_TIMEOUT_SECONDS,
    TMDB_HTTP_USER_AGENT,
    TMDB_LANGUAGE,
    TMDB_METRICS_ENABLED,
    TMDB_METRICS_TOP_N,
    TMDB_TRAILER_SITE,
    TMDB_TRAILER_URL_TEMPLATE,
)


def log_config_debug() -> None:
    """Dump de la config efectiva (solo DEBUG y no SILENT). Nunca imprime la API key."""
    if not DEBUG_MODE or SILENT_MODE:
        return

    from movie_catalog import logger as _logger

    _logger.info(f"TMDB_BASE_URL: {TMDB_BASE_URL}")
    _logger.info(f"TMDB_API_KEY: {'set' if TMDB_API_KEY else 'missing'}")
    _logger.info(f"TMDB_HTTP_TIMEOUT_SECONDS: {TMDB_HTTP_TIMEOUT_SECONDS}")
    _logger.info(f"CATALOG_WORKER_POOL_SIZE: {CATALOG_WORKER_POOL_SIZE}")
    _logger.info(f"CATALOG_MAX_ENRICHED_PEOPLE: {CATALOG_MAX_ENRICHED_PEOPLE}")
