from __future__ import annotations

"""
movie_catalog/aggregator.py

Orquestador de agregación: película base + enriquecimientos opcionales.

Flujo de `aggregate(movie_id)`
------------------------------
1) Película base (obligatoria). Si falla -> None y NINGUNA llamada de enriquecimiento.
2) similar y trailer: se lanzan al WorkerPool (tareas hoja).
3) créditos: el hilo del caller hace credits -> fan-out de personas -> join.
4) join de similar/trailer, se adjuntan los que hayan salido bien y se
   rellena el EnrichmentReport con lo que no.

Estados: UNSTARTED -> BASE_FETCHED -> ENRICHING -> COMPLETE
                                   \\-> FAILED (base ausente)

Concurrencia
------------
- Todas las llamadas a TMDB pasan por el WorkerPool compartido (capacidad K).
- Las esperas se hacen fuera del pool: en el hilo del caller o, para listas,
  en hilos "driver" propios de esa llamada (CATALOG_LIST_DRIVERS). Así varias
  agregaciones concurrentes comparten K sin riesgo de agotarlo esperando.
- `aggregate_list` devuelve las películas en el orden de los ids de entrada.
"""

import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from movie_catalog import logger as logger
from movie_catalog.config_tmdb import CATALOG_LIST_DRIVERS
from movie_catalog.enrichers import (
    CreditsEnricher,
    CreditsOutcome,
    PersonEnricher,
    SimilarResolver,
    TrailerResolver,
)
from movie_catalog.errors import MovieNotFoundError
from movie_catalog.models import (
    AggregationState,
    Movie,
    MoviePage,
    MovieSummaryPage,
    SimilarList,
    VideoReference,
)
from movie_catalog.results import TaskResult, UpstreamError
from movie_catalog.run_metrics import METRICS, RunMetrics
from movie_catalog.tmdb_client import (
    UpstreamClient,
    fetch_parsed,
    movie_path,
    popular_path,
    search_path,
)
from movie_catalog.worker_pool import WorkerPool


@dataclass(slots=True)
class AggregationTrace:
    """Estado de UNA agregación (por llamada; el coordinador no guarda estado)."""

    movie_id: int
    state: AggregationState = AggregationState.UNSTARTED
    transitions: list[AggregationState] = field(default_factory=lambda: [AggregationState.UNSTARTED])
    movie: Movie | None = None
    base_error: UpstreamError | None = None

    def advance(self, state: AggregationState) -> None:
        self.state = state
        self.transitions.append(state)
        if self.movie is not None:
            self.movie.enrichment.state = state


def _check_page(page: int) -> None:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValueError(f"page must be a positive integer, got {page!r}")


class AggregationCoordinator:
    def __init__(
        self,
        upstream: UpstreamClient,
        pool: WorkerPool,
        *,
        credits_enricher: CreditsEnricher | None = None,
        trailer_resolver: TrailerResolver | None = None,
        similar_resolver: SimilarResolver | None = None,
        max_people: int | None = None,
        list_drivers: int | None = None,
        metrics: RunMetrics | None = None,
    ) -> None:
        self._upstream = upstream
        self._pool = pool
        self._credits = (
            credits_enricher
            if credits_enricher is not None
            else CreditsEnricher(upstream, pool, person_enricher=PersonEnricher(upstream), max_people=max_people)
        )
        self._trailer = trailer_resolver if trailer_resolver is not None else TrailerResolver(upstream)
        self._similar = similar_resolver if similar_resolver is not None else SimilarResolver(upstream)
        self._list_drivers = max(1, int(list_drivers if list_drivers is not None else CATALOG_LIST_DRIVERS))
        self._metrics = metrics if metrics is not None else METRICS

    @property
    def pool(self) -> WorkerPool:
        return self._pool

    # --------------------------------------------------------
    # Una película
    # --------------------------------------------------------

    def aggregate_traced(self, movie_id: int) -> AggregationTrace:
        trace = AggregationTrace(movie_id=movie_id)
        t0 = time.monotonic()
        try:
            if isinstance(movie_id, bool) or not isinstance(movie_id, int) or movie_id <= 0:
                trace.base_error = UpstreamError(kind="not_found", path=movie_path(movie_id), detail="invalid movie id")
                trace.advance(AggregationState.FAILED)
                return trace

            base: TaskResult[Movie] = self._pool.run(fetch_parsed, self._upstream, movie_path(movie_id), Movie.from_payload)
            trace.advance(AggregationState.BASE_FETCHED)

            if not base.ok or base.value is None:
                trace.base_error = base.error
                trace.advance(AggregationState.FAILED)
                self._metrics.incr("aggregate.failed")
                logger.info(f"[AGGREGATE] movie={movie_id} unavailable: {base.error}")
                return trace

            trace.movie = base.value
            trace.advance(AggregationState.ENRICHING)
            self._enrich(trace.movie)
            trace.advance(AggregationState.COMPLETE)
            self._metrics.incr("aggregate.complete")
            return trace
        finally:
            self._metrics.observe_ms("aggregate.latency_ms", (time.monotonic() - t0) * 1000.0)

    def _enrich(self, movie: Movie) -> None:
        similar_f = self._pool.submit(self._similar.resolve_similar_result, movie.id)
        trailer_f = self._pool.submit(self._trailer.resolve_trailer_result, movie.id)

        # Créditos (y su fan-out de personas) se conducen desde este hilo.
        outcome: CreditsOutcome = self._credits.fetch_credits_result(movie.id)

        similar_r, trailer_r = self._pool.join([similar_f, trailer_f])
        self._attach(movie, outcome, similar_r, trailer_r)

    def _attach(
        self,
        movie: Movie,
        outcome: CreditsOutcome,
        similar: TaskResult[SimilarList],
        trailer: TaskResult[VideoReference],
    ) -> None:
        report = movie.enrichment

        if outcome.result.ok:
            movie.credits = outcome.credits
        elif outcome.result.error is not None:
            report.errors["credits"] = outcome.result.error
        report.person_errors.update(outcome.person_errors)
        report.people_skipped = outcome.people_skipped

        if similar.ok:
            movie.similar = similar.value
        elif similar.error is not None:
            report.errors["similar"] = similar.error

        # ok con None = no hay trailer que cumpla el filtro (no es un error)
        if trailer.ok:
            movie.trailer = trailer.value
        elif trailer.error is not None:
            report.errors["trailer"] = trailer.error

        if report.errors or report.person_errors:
            self._metrics.incr("aggregate.degraded")
            for section in report.errors:
                self._metrics.incr(f"aggregate.degraded.{section}")
            if report.person_errors:
                self._metrics.incr("aggregate.degraded.person", len(report.person_errors))

        logger.debug_ctx(
            "AGGREGATE",
            f"movie={movie.id} credits={'ok' if movie.credits is not None else 'missing'} "
            f"similar={'ok' if movie.similar is not None else 'missing'} "
            f"trailer={movie.trailer_url or '-'} person_errors={len(report.person_errors)} "
            f"skipped={report.people_skipped}",
        )

    def aggregate(self, movie_id: int) -> Movie | None:
        return self.aggregate_traced(movie_id).movie

    def aggregate_or_raise(self, movie_id: int) -> Movie:
        trace = self.aggregate_traced(movie_id)
        if trace.movie is None:
            raise MovieNotFoundError(movie_id, reason=str(trace.base_error) if trace.base_error else "")
        return trace.movie

    # --------------------------------------------------------
    # Listas
    # --------------------------------------------------------

    def aggregate_list(self, movie_ids: Sequence[int], page: int = 1) -> MoviePage:
        """
        Agrega varias películas en paralelo y devuelve una MoviePage en el orden
        de `movie_ids`; las que fallan van a missing_ids.

        Cada llamada abre su propio ThreadPoolExecutor de hilos driver
        (CATALOG_LIST_DRIVERS). Es una excepción deliberada al pool único: los
        drivers solo esperan (join de cada agregación) y nunca hacen I/O, que
        sigue pasando entero por el WorkerPool compartido. Si esos joins se
        hicieran dentro del WorkerPool, un pool pequeño se agotaría esperándose
        a sí mismo.
        """
        _check_page(page)
        ids = list(movie_ids)
        if not ids:
            return MoviePage(page=page)

        if WorkerPool.in_worker():
            raise RuntimeError("aggregate_list() called from a pool worker")

        drivers = min(self._list_drivers, len(ids))
        with ThreadPoolExecutor(max_workers=drivers, thread_name_prefix="catalog-driver") as executor:
            traces = list(executor.map(self.aggregate_traced, ids))

        movies = tuple(t.movie for t in traces if t.movie is not None)
        missing = tuple(t.movie_id for t in traces if t.movie is None)
        if missing:
            logger.info(f"[AGGREGATE] page={page}: {len(missing)}/{len(ids)} movies unavailable {list(missing)}")
        return MoviePage(page=page, results=movies, missing_ids=missing)

    def _list_page(self, path: str, params: dict[str, object], page: int) -> MoviePage:
        listing: TaskResult[MovieSummaryPage] = self._pool.run(
            fetch_parsed, self._upstream, path, MovieSummaryPage.from_payload, params
        )
        if not listing.ok or listing.value is None:
            logger.warning(f"[AGGREGATE] listing unavailable {path} page={page}: {listing.error}")
            self._metrics.add_error("aggregate", "listing", endpoint=path, detail=str(listing.error))
            return MoviePage(page=page)
        return self.aggregate_list(listing.value.ids(), page=listing.value.page)

    def popular(self, page: int = 1) -> MoviePage:
        _check_page(page)
        return self._list_page(popular_path(), {"page": page}, page)

    def search(self, query: str, page: int = 1) -> MoviePage:
        _check_page(page)
        q = (query or "").strip()
        if not q:
            return MoviePage(page=page)
        return self._list_page(search_path(), {"query": q, "page": page}, page)
