from __future__ import annotations

from movie_catalog.config_base import (
    _cap_float_min,
    _cap_int,
    _get_env_bool,
    _get_env_float,
    _get_env_int,
    _get_env_str,
)

# ============================================================
# TMDB (API + HTTP)
# ============================================================

TMDB_API_KEY: str | None = _get_env_str("TMDB_API_KEY", None)

TMDB_BASE_URL: str = (
    _get_env_str("TMDB_BASE_URL", "https://api.themoviedb.org/3") or "https://api.themoviedb.org/3"
).rstrip("/")

# Límite superior de espera por llamada; al vencer se trata como "unreachable" (sin retry).
TMDB_HTTP_TIMEOUT_SECONDS: float = _cap_float_min(
    "TMDB_HTTP_TIMEOUT_SECONDS",
    _get_env_float("TMDB_HTTP_TIMEOUT_SECONDS", 10.0),
    min_v=0.5,
)

TMDB_HTTP_USER_AGENT: str = (
    _get_env_str("TMDB_HTTP_USER_AGENT", "movie-catalog/1.0 (local)") or "movie-catalog/1.0 (local)"
)

# Idioma opcional para los endpoints que lo aceptan (p.ej. "es-ES").
TMDB_LANGUAGE: str | None = _get_env_str("TMDB_LANGUAGE", None)

# ============================================================
# TRAILERS
# ============================================================

TMDB_TRAILER_SITE: str = _get_env_str("TMDB_TRAILER_SITE", "YouTube") or "YouTube"
TMDB_TRAILER_URL_TEMPLATE: str = (
    _get_env_str("TMDB_TRAILER_URL_TEMPLATE", "https://www.youtube.com/watch?v={key}")
    or "https://www.youtube.com/watch?v={key}"
)

# ============================================================
# AGREGACIÓN (pool compartido + política de fan-out)
# ============================================================

CATALOG_WORKER_POOL_SIZE: int = _cap_int(
    "CATALOG_WORKER_POOL_SIZE",
    _get_env_int("CATALOG_WORKER_POOL_SIZE", 10),
    min_v=1,
    max_v=64,
)

# 0 => sin límite. N>0 => solo los N primeros miembros (cast y luego crew) reciben lookup de IMDb.
CATALOG_MAX_ENRICHED_PEOPLE: int = _cap_int(
    "CATALOG_MAX_ENRICHED_PEOPLE",
    _get_env_int("CATALOG_MAX_ENRICHED_PEOPLE", 0),
    min_v=0,
    max_v=10_000,
)

# Hilos "driver" de aggregate_list: solo orquestan (esperan), no hacen I/O.
CATALOG_LIST_DRIVERS: int = _cap_int(
    "CATALOG_LIST_DRIVERS",
    _get_env_int("CATALOG_LIST_DRIVERS", 8),
    min_v=1,
    max_v=64,
)

# ============================================================
# MÉTRICAS (resumen al final del run)
# ============================================================

TMDB_METRICS_ENABLED: bool = _get_env_bool("TMDB_METRICS_ENABLED", True)

TMDB_METRICS_TOP_N: int = _cap_int(
    "TMDB_METRICS_TOP_N",
    _get_env_int("TMDB_METRICS_TOP_N", 12),
    min_v=1,
    max_v=100,
)
