from __future__ import annotations

"""
movie_catalog/enrichers.py

Enriquecimientos opcionales ("best-effort") de una película:

- PersonEnricher:  person_id -> imdb_id (vía /person/{id}/external_ids)
- CreditsEnricher: /movie/{id}/credits + fan-out de PersonEnricher por cada miembro
- TrailerResolver: /movie/{id}/videos -> primer Trailer/Teaser del site configurado
- SimilarResolver: /movie/{id}/similar tal cual

Política de errores
-------------------
Cualquier fallo se captura en la frontera del componente, se loguea con
contexto (id + path) y se devuelve como TaskResult fallido; la API "simple"
(resolve_* / fetch_credits) lo convierte en None. Nada de esto aborta una
agregación ni a las tareas hermanas.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Final

from movie_catalog import logger as logger
from movie_catalog.config_tmdb import (
    CATALOG_MAX_ENRICHED_PEOPLE,
    TMDB_TRAILER_SITE,
    TMDB_TRAILER_URL_TEMPLATE,
)
from movie_catalog.errors import PayloadError
from movie_catalog.models import (
    CastMember,
    Credits,
    CrewMember,
    MovieSummaryPage,
    SimilarList,
    VideoReference,
    first_matching,
    parse_video_list,
)
from movie_catalog.results import TaskResult, UpstreamError
from movie_catalog.tmdb_client import (
    Payload,
    UpstreamClient,
    credits_path,
    external_ids_path,
    fetch_parsed,
    similar_path,
    videos_path,
)
from movie_catalog.worker_pool import WorkerPool

TRAILER_TYPES: Final[tuple[str, ...]] = ("Trailer", "Teaser")


def _log_degraded(tag: str, what: str, ident: object, err: UpstreamError | None) -> None:
    if err is None:
        return
    logger.warning(f"[{tag}] {what} id={ident} path={err.path} -> {err.kind}" + (f" ({err.detail})" if err.detail else ""))


# ============================================================
# PersonEnricher
# ============================================================


def _parse_imdb_id(payload: Payload) -> str | None:
    raw = payload.get("imdb_id")
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise PayloadError(f"external_ids.imdb_id: expected string, got {type(raw).__name__}")
    return raw.strip() or None


class PersonEnricher:
    def __init__(self, upstream: UpstreamClient) -> None:
        self._upstream = upstream

    def resolve_external_id_result(self, person_id: object) -> TaskResult[str]:
        # id ausente o inválido: sin llamada de red
        if isinstance(person_id, bool) or not isinstance(person_id, int) or person_id <= 0:
            return TaskResult.success(None)

        path = external_ids_path(person_id)
        result = fetch_parsed(self._upstream, path, _parse_imdb_id)
        if not result.ok:
            _log_degraded("PERSON", "imdb lookup failed for person", person_id, result.error)
        return result

    def resolve_external_id(self, person_id: object) -> str | None:
        return self.resolve_external_id_result(person_id).value_or_none()


# ============================================================
# CreditsEnricher
# ============================================================


@dataclass(frozen=True, slots=True)
class CreditsOutcome:
    """Resultado tipado del enriquecimiento de créditos."""

    result: TaskResult[Credits]
    person_errors: dict[int, UpstreamError] = field(default_factory=dict)
    people_skipped: int = 0

    @property
    def credits(self) -> Credits | None:
        return self.result.value_or_none()


class CreditsEnricher:
    """
    Fan-out/join de lookups de personas sobre el WorkerPool compartido.

    Ownership por índice: la tarea i recibe members[i] y solo escribe su imdb_id.
    Las listas no se reordenan: el orden de salida es el del proveedor sea cual
    sea el orden en que terminen las tareas.
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        pool: WorkerPool,
        *,
        person_enricher: PersonEnricher | None = None,
        max_people: int | None = None,
    ) -> None:
        self._upstream = upstream
        self._pool = pool
        self._person = person_enricher if person_enricher is not None else PersonEnricher(upstream)
        self._max_people = CATALOG_MAX_ENRICHED_PEOPLE if max_people is None else max(0, int(max_people))

    def _lookup_slot(self, member: CastMember | CrewMember) -> TaskResult[str]:
        result = self._person.resolve_external_id_result(member.id)
        if result.ok and result.value:
            member.set_imdb_id(result.value)
        return result

    def enrich_people(self, credits: Credits) -> tuple[dict[int, UpstreamError], int]:
        """
        Lanza un lookup por miembro (cast y luego crew) y espera a TODOS.
        Devuelve (errores por person_id, miembros saltados por el límite).
        """
        members = credits.members()
        targets = members if self._max_people <= 0 else members[: self._max_people]
        skipped = len(members) - len(targets)

        results = self._pool.join(self._pool.fan_out(self._lookup_slot, targets))

        errors: dict[int, UpstreamError] = {}
        for member, result in zip(targets, results):
            if not result.ok and member.id is not None and result.error is not None:
                errors[member.id] = result.error

        if skipped:
            logger.debug_ctx("CREDITS", f"max_people={self._max_people}: {skipped} members without imdb lookup")
        return errors, skipped

    def fetch_credits_result(self, movie_id: int) -> CreditsOutcome:
        path = credits_path(movie_id)
        result: TaskResult[Credits] = self._pool.run(fetch_parsed, self._upstream, path, Credits.from_payload)
        if not result.ok or result.value is None:
            _log_degraded("CREDITS", "credits unavailable for movie", movie_id, result.error)
            return CreditsOutcome(result=result)

        person_errors, skipped = self.enrich_people(result.value)
        return CreditsOutcome(result=result, person_errors=person_errors, people_skipped=skipped)

    def fetch_credits(self, movie_id: int) -> Credits | None:
        return self.fetch_credits_result(movie_id).credits


# ============================================================
# TrailerResolver
# ============================================================


class TrailerResolver:
    def __init__(
        self,
        upstream: UpstreamClient,
        *,
        site: str = TMDB_TRAILER_SITE,
        types: Sequence[str] = TRAILER_TYPES,
        url_template: str = TMDB_TRAILER_URL_TEMPLATE,
    ) -> None:
        self._upstream = upstream
        self._site = site
        self._types = tuple(types)
        self._url_template = url_template

    def select(self, videos: Sequence[VideoReference]) -> VideoReference | None:
        """Primer match en orden de proveedor; sin scoring."""
        return first_matching(videos, site=self._site, types=self._types)

    def resolve_trailer_result(self, movie_id: int) -> TaskResult[VideoReference]:
        path = videos_path(movie_id)
        videos = fetch_parsed(
            self._upstream,
            path,
            lambda payload: parse_video_list(payload, url_template=self._url_template),
        )
        if not videos.ok:
            _log_degraded("TRAILER", "videos unavailable for movie", movie_id, videos.error)
        return videos.map(lambda found: self.select(found or []))

    def resolve_trailer(self, movie_id: int) -> VideoReference | None:
        return self.resolve_trailer_result(movie_id).value_or_none()


# ============================================================
# SimilarResolver
# ============================================================


class SimilarResolver:
    def __init__(self, upstream: UpstreamClient) -> None:
        self._upstream = upstream

    def resolve_similar_result(self, movie_id: int) -> TaskResult[SimilarList]:
        path = similar_path(movie_id)
        result = fetch_parsed(self._upstream, path, MovieSummaryPage.from_payload)
        if not result.ok:
            _log_degraded("SIMILAR", "similar list unavailable for movie", movie_id, result.error)
        return result

    def resolve_similar(self, movie_id: int) -> SimilarList | None:
        return self.resolve_similar_result(movie_id).value_or_none()
