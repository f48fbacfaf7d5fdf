from __future__ import annotations

"""
movie_catalog/tmdb_client.py

Cliente TMDB: UNA petición/respuesta por llamada, resultado tipado.

🧠 Principios
-------------
1) Fail-safe:
   - Red caída, timeout, 4xx/5xx o JSON raro NUNCA se propagan como excepción:
     `fetch()` siempre devuelve TaskResult (ok | UpstreamError).
2) Sin reintentos:
   - Retry(total=0) en el adapter; "un intento, se registra el fallo".
3) ThreadPool safe:
   - requests.Session compartida, con pool de conexiones dimensionado al
     WorkerPool (si el pool HTTP es menor, el tráfico se serializa).
4) API key inyectada:
   - Siempre se añade como `api_key` y gana sobre lo que pase el caller.
   - Nunca se loguea (solo se loguea el path).

Taxonomía de errores
--------------------
- unreachable: timeout / conexión / 5xx
- not_found:   4xx (incluye 401 de API key inválida)
- malformed:   2xx con body no-JSON o no-objeto, o payload con forma inesperada
"""

import threading
import time
from collections.abc import Callable, Mapping
from json import JSONDecodeError
from typing import Final, Protocol, TypeVar, cast

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout
from urllib3.util.retry import Retry

from movie_catalog import logger as logger
from movie_catalog.config_tmdb import (
    CATALOG_WORKER_POOL_SIZE,
    TMDB_API_KEY,
    TMDB_BASE_URL,
    TMDB_HTTP_TIMEOUT_SECONDS,
    TMDB_HTTP_USER_AGENT,
    TMDB_LANGUAGE,
    TMDB_METRICS_ENABLED,
    TMDB_METRICS_TOP_N,
)
from movie_catalog.errors import ConfigError, PayloadError
from movie_catalog.results import ErrorKind, TaskResult, UpstreamError
from movie_catalog.run_metrics import METRICS, RunMetrics

T = TypeVar("T")

Payload = dict[str, object]

_MAX_POOL_CONNECTIONS: Final[int] = 64

_INVALID_KEY_NOTICE_SHOWN: bool = False
_NOTICE_LOCK = threading.Lock()


# ============================================================
# Paths TMDB
# ============================================================


def movie_path(movie_id: int) -> str:
    return f"/movie/{movie_id}"


def credits_path(movie_id: int) -> str:
    return f"/movie/{movie_id}/credits"


def videos_path(movie_id: int) -> str:
    return f"/movie/{movie_id}/videos"


def similar_path(movie_id: int) -> str:
    return f"/movie/{movie_id}/similar"


def external_ids_path(person_id: int) -> str:
    return f"/person/{person_id}/external_ids"


def popular_path() -> str:
    return "/movie/popular"


def search_path() -> str:
    return "/search/movie"


# ============================================================
# Logging
# ============================================================


def _dbg(msg: object) -> None:
    logger.debug_ctx("TMDB", msg)


def _notice_invalid_key(status: int) -> None:
    global _INVALID_KEY_NOTICE_SHOWN
    with _NOTICE_LOCK:
        if _INVALID_KEY_NOTICE_SHOWN:
            return
        _INVALID_KEY_NOTICE_SHOWN = True
    logger.warning(f"[TMDB] HTTP {status}: API key rechazada; revisa TMDB_API_KEY.", always=True)


# ============================================================
# Session
# ============================================================


def build_session(*, pool_size: int = CATALOG_WORKER_POOL_SIZE) -> requests.Session:
    """
    requests.Session con:
    - Retry(total=0): ningún reintento a nivel urllib3
    - pool de conexiones == capacidad del WorkerPool (cap defensivo)
    - pool_block=True: backpressure en vez de abrir conexiones extra
    """
    size = max(1, min(_MAX_POOL_CONNECTIONS, int(pool_size)))

    session = requests.Session()
    adapter = HTTPAdapter(
        max_retries=Retry(total=0, raise_on_status=False),
        pool_connections=size,
        pool_maxsize=size,
        pool_block=True,
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    ua = str(TMDB_HTTP_USER_AGENT).strip() or "movie-catalog/1.0 (local)"
    session.headers.update({"User-Agent": ua, "Accept": "application/json"})
    return session


# ============================================================
# Cliente
# ============================================================


class UpstreamClient(Protocol):
    """Lo único que el core necesita del transporte."""

    def fetch(self, path: str, params: Mapping[str, object] | None = None) -> TaskResult[Payload]: ...


class TmdbClient:
    """
    `fetch(path, params) -> TaskResult[dict]`: exactamente un intercambio HTTP.

    La sesión se puede inyectar (tests / pool HTTP compartido); si no, se crea
    una propia y `close()` la libera.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        language: str | None = None,
        session: requests.Session | None = None,
        pool_size: int | None = None,
        metrics: RunMetrics | None = None,
    ) -> None:
        key = (api_key if api_key is not None else TMDB_API_KEY) or ""
        if not key.strip():
            raise ConfigError("TMDB_API_KEY is not set")

        self._api_key = key.strip()
        self._base_url = (base_url or TMDB_BASE_URL).rstrip("/")
        self._timeout = float(timeout_seconds if timeout_seconds is not None else TMDB_HTTP_TIMEOUT_SECONDS)
        self._language = language if language is not None else TMDB_LANGUAGE
        self._owns_session = session is None
        self._session = session if session is not None else build_session(pool_size=pool_size or CATALOG_WORKER_POOL_SIZE)
        self._metrics = metrics if metrics is not None else METRICS

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> TmdbClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    # --------------------------------------------------------

    def _build_params(self, params: Mapping[str, object] | None) -> dict[str, str]:
        out: dict[str, str] = {}
        if self._language:
            out["language"] = self._language
        for k, v in (params or {}).items():
            if v is None:
                continue
            out[str(k)] = str(v)
        out["api_key"] = self._api_key
        return out

    def _fail(self, kind: ErrorKind, path: str, detail: str, status: int | None = None) -> TaskResult[Payload]:
        err = UpstreamError(kind=kind, path=path, detail=logger.truncate_line(detail, 300), status=status)
        self._metrics.incr(f"tmdb.errors.{kind}")
        self._metrics.add_error("tmdb", "fetch", endpoint=path, detail=str(err))
        _dbg(f"fetch FAIL {err}")
        return TaskResult.failure(err)

    def fetch(self, path: str, params: Mapping[str, object] | None = None) -> TaskResult[Payload]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        query = self._build_params(params)

        self._metrics.incr("tmdb.http.requests")
        t0 = time.monotonic()
        try:
            resp = self._session.get(url, params=query, timeout=self._timeout)
        except Timeout as exc:
            return self._fail("unreachable", path, f"timeout after {self._timeout:.1f}s: {type(exc).__name__}")
        except RequestsConnectionError as exc:
            return self._fail("unreachable", path, f"connection error: {type(exc).__name__}")
        except RequestException as exc:
            return self._fail("unreachable", path, f"request error: {type(exc).__name__}")
        finally:
            self._metrics.observe_ms("tmdb.http.latency_ms", (time.monotonic() - t0) * 1000.0)

        status = int(resp.status_code)
        if status >= 500:
            return self._fail("unreachable", path, "server error", status=status)
        if status >= 400:
            if status == 401:
                _notice_invalid_key(status)
            return self._fail("not_found", path, resp.reason or "client error", status=status)
        if not 200 <= status < 300:
            return self._fail("malformed", path, "unexpected status", status=status)

        try:
            data = resp.json()
        except (ValueError, JSONDecodeError) as exc:
            return self._fail("malformed", path, f"invalid JSON: {exc!r}", status=status)

        if not isinstance(data, dict):
            return self._fail("malformed", path, f"expected JSON object, got {type(data).__name__}", status=status)

        self._metrics.incr("tmdb.http.ok")
        _dbg(f"fetch OK {path}")
        return TaskResult.success(data)


def fetch_parsed(
    client: UpstreamClient,
    path: str,
    parser: Callable[[Payload], T],
    params: Mapping[str, object] | None = None,
    *,
    metrics: RunMetrics | None = None,
) -> TaskResult[T]:
    """fetch + parse; un PayloadError del parser se convierte en 'malformed'."""
    raw = client.fetch(path, params)
    if raw.error is not None:
        return TaskResult.failure(raw.error)
    try:
        return TaskResult.success(parser(cast(Payload, raw.value)))
    except PayloadError as exc:
        err = UpstreamError(kind="malformed", path=path, detail=logger.truncate_line(str(exc), 300))
        m = metrics if metrics is not None else METRICS
        m.incr("tmdb.errors.malformed")
        m.add_error("tmdb", "parse", endpoint=path, detail=str(err))
        _dbg(f"parse FAIL {err}")
        return TaskResult.failure(err)


# ============================================================
# MÉTRICAS: resumen al final del run
# ============================================================


def log_tmdb_metrics_summary(*, metrics: RunMetrics | None = None, force: bool = False) -> None:
    """Top-N contadores TMDB; respeta SILENT/DEBUG vía el facade de logging."""
    if not TMDB_METRICS_ENABLED and not force:
        return

    m = metrics if metrics is not None else METRICS
    top = m.top_counters(TMDB_METRICS_TOP_N)
    if not top and not force:
        return

    silent = logger.is_silent_mode()
    if silent and not logger.is_debug_mode() and not force:
        return

    lines = ["[TMDB][METRICS] summary"]
    if not top:
        lines.append("  (all zeros)")
    else:
        width = max(len(k) for k, _ in top)
        lines.extend(f"  {k.ljust(width)} : {v}" for k, v in top)

    # stderr (vía logging): stdout queda reservado a la salida JSON del CLI
    for ln in lines:
        logger.info(ln, always=silent)
