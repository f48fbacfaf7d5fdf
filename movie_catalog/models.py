from __future__ import annotations

"""
movie_catalog/models.py

Modelos del catálogo (DTOs) construidos a partir de los payloads JSON de TMDB.

Principios
----------
- `from_payload(mapping)` valida la FORMA mínima y lanza PayloadError si no cuadra
  (el cliente lo traduce a un error "malformed").
- Campos escalares opcionales: se normalizan a None si vienen con tipo raro;
  no se consideran "malformed" (TMDB es laxo con nulls).
- `to_dict()` produce un dict con orden de claves estable (idempotencia).
- Este módulo NO hace logging ni I/O.

Propiedad de los campos mutables
--------------------------------
Solo `imdb_id` de CastMember/CrewMember se muta tras el fetch, una única vez y
siempre por la tarea que posee ese índice de la lista (ver enrichers.py).
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias

from movie_catalog.errors import PayloadError
from movie_catalog.results import UpstreamError

# ============================================================================
# Helpers de parseo (silenciosos)
# ============================================================================


def _require_mapping(payload: object, what: str) -> Mapping[str, object]:
    if not isinstance(payload, Mapping):
        raise PayloadError(f"{what}: expected JSON object, got {type(payload).__name__}")
    return payload


def _require_list(payload: Mapping[str, object], key: str, what: str) -> list[object]:
    raw = payload.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise PayloadError(f"{what}.{key}: expected list, got {type(raw).__name__}")
    return raw


def _positive_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _str_or_none(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def _int_or_none(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _float_or_none(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _require_id(payload: Mapping[str, object], what: str) -> int:
    movie_id = _positive_int(payload.get("id"))
    if movie_id is None:
        raise PayloadError(f"{what}.id: expected positive integer, got {payload.get('id')!r}")
    return movie_id


# ============================================================================
# Personas (cast / crew)
# ============================================================================


@dataclass(slots=True)
class _Person:
    id: int | None
    name: str | None
    profile_path: str | None
    imdb_id: str | None = None

    def set_imdb_id(self, imdb_id: str) -> None:
        """Asignación única: un segundo set es un bug de ownership."""
        if self.imdb_id is not None:
            raise ValueError(f"imdb_id already set for person {self.id!r}")
        self.imdb_id = imdb_id


@dataclass(slots=True)
class CastMember(_Person):
    character: str | None = None
    order: int | None = None

    @classmethod
    def from_payload(cls, payload: object) -> CastMember:
        data = _require_mapping(payload, "cast[]")
        return cls(
            id=_positive_int(data.get("id")),
            name=_str_or_none(data.get("name")),
            profile_path=_str_or_none(data.get("profile_path")),
            character=_str_or_none(data.get("character")),
            order=_int_or_none(data.get("order")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "character": self.character,
            "order": self.order,
            "profile_path": self.profile_path,
            "imdb_id": self.imdb_id,
        }


@dataclass(slots=True)
class CrewMember(_Person):
    job: str | None = None
    department: str | None = None

    @classmethod
    def from_payload(cls, payload: object) -> CrewMember:
        data = _require_mapping(payload, "crew[]")
        return cls(
            id=_positive_int(data.get("id")),
            name=_str_or_none(data.get("name")),
            profile_path=_str_or_none(data.get("profile_path")),
            job=_str_or_none(data.get("job")),
            department=_str_or_none(data.get("department")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "job": self.job,
            "department": self.department,
            "profile_path": self.profile_path,
            "imdb_id": self.imdb_id,
        }


@dataclass(slots=True)
class Credits:
    cast: list[CastMember] = field(default_factory=list)
    crew: list[CrewMember] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: object) -> Credits:
        data = _require_mapping(payload, "credits")
        return cls(
            cast=[CastMember.from_payload(x) for x in _require_list(data, "cast", "credits")],
            crew=[CrewMember.from_payload(x) for x in _require_list(data, "crew", "credits")],
        )

    def members(self) -> list[_Person]:
        """Cast y luego crew, en orden de proveedor (orden de slots del fan-out)."""
        return [*self.cast, *self.crew]

    def to_dict(self) -> dict[str, object]:
        return {
            "cast": [m.to_dict() for m in self.cast],
            "crew": [m.to_dict() for m in self.crew],
        }


# ============================================================================
# Vídeos
# ============================================================================


@dataclass(frozen=True, slots=True)
class VideoReference:
    site: str | None
    type: str | None
    key: str | None
    name: str | None = None
    url_template: str = "https://www.youtube.com/watch?v={key}"

    @classmethod
    def from_payload(cls, payload: object, *, url_template: str | None = None) -> VideoReference:
        data = _require_mapping(payload, "videos.results[]")
        kwargs: dict[str, object] = {}
        if url_template:
            kwargs["url_template"] = url_template
        return cls(
            site=_str_or_none(data.get("site")),
            type=_str_or_none(data.get("type")),
            key=_str_or_none(data.get("key")),
            name=_str_or_none(data.get("name")),
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def url(self) -> str | None:
        if not self.key:
            return None
        return self.url_template.format(key=self.key)

    def to_dict(self) -> dict[str, object]:
        return {
            "site": self.site,
            "type": self.type,
            "key": self.key,
            "name": self.name,
            "url": self.url,
        }


def parse_video_list(payload: object, *, url_template: str | None = None) -> list[VideoReference]:
    data = _require_mapping(payload, "videos")
    return [VideoReference.from_payload(x, url_template=url_template) for x in _require_list(data, "results", "videos")]


# ============================================================================
# Listas ligeras (similar / popular / search)
# ============================================================================


@dataclass(frozen=True, slots=True)
class MovieSummary:
    id: int | None
    title: str | None
    overview: str | None = None
    release_date: str | None = None
    vote_average: float | None = None
    poster_path: str | None = None

    @classmethod
    def from_payload(cls, payload: object) -> MovieSummary:
        data = _require_mapping(payload, "results[]")
        return cls(
            id=_positive_int(data.get("id")),
            title=_str_or_none(data.get("title")),
            overview=_str_or_none(data.get("overview")),
            release_date=_str_or_none(data.get("release_date")),
            vote_average=_float_or_none(data.get("vote_average")),
            poster_path=_str_or_none(data.get("poster_path")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "overview": self.overview,
            "release_date": self.release_date,
            "vote_average": self.vote_average,
            "poster_path": self.poster_path,
        }


@dataclass(frozen=True, slots=True)
class MovieSummaryPage:
    page: int
    results: tuple[MovieSummary, ...] = ()
    total_pages: int | None = None
    total_results: int | None = None

    @classmethod
    def from_payload(cls, payload: object) -> MovieSummaryPage:
        data = _require_mapping(payload, "page")
        return cls(
            page=_positive_int(data.get("page")) or 1,
            results=tuple(MovieSummary.from_payload(x) for x in _require_list(data, "results", "page")),
            total_pages=_int_or_none(data.get("total_pages")),
            total_results=_int_or_none(data.get("total_results")),
        )

    def ids(self) -> list[int]:
        """Ids agregables; las entradas sin id válido se conservan pero no se agregan."""
        return [s.id for s in self.results if s.id is not None]

    def to_dict(self) -> dict[str, object]:
        return {
            "page": self.page,
            "results": [s.to_dict() for s in self.results],
            "total_pages": self.total_pages,
            "total_results": self.total_results,
        }


SimilarList: TypeAlias = MovieSummaryPage


# ============================================================================
# Película (entidad agregada)
# ============================================================================


class AggregationState(str, Enum):
    """
    UNSTARTED -> BASE_FETCHED -> ENRICHING -> COMPLETE
    BASE_FETCHED -> FAILED cuando la ficha base no llega.

    Un id inválido (no entero o <= 0) se rechaza antes de cualquier llamada:
    UNSTARTED -> FAILED directamente, sin pasar por BASE_FETCHED.
    """

    UNSTARTED = "unstarted"
    BASE_FETCHED = "base_fetched"
    ENRICHING = "enriching"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(slots=True)
class EnrichmentReport:
    """
    Registro de lo que NO se pudo enriquecer.

    - errors: "credits" | "similar" | "trailer" -> causa
    - person_errors: person_id -> causa (lookups de IMDb fallidos)
    - people_skipped: miembros sin lookup por CATALOG_MAX_ENRICHED_PEOPLE
    """

    state: AggregationState = AggregationState.UNSTARTED
    errors: dict[str, UpstreamError] = field(default_factory=dict)
    person_errors: dict[int, UpstreamError] = field(default_factory=dict)
    people_skipped: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "errors": {k: str(v) for k, v in sorted(self.errors.items())},
            "person_errors": {str(k): str(v) for k, v in sorted(self.person_errors.items())},
            "people_skipped": self.people_skipped,
        }


@dataclass(slots=True)
class Movie:
    id: int
    title: str | None
    overview: str | None = None
    release_date: str | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    runtime: int | None = None
    original_language: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    genres: list[str] = field(default_factory=list)

    credits: Credits | None = None
    similar: SimilarList | None = None
    trailer: VideoReference | None = None

    enrichment: EnrichmentReport = field(default_factory=EnrichmentReport)

    @classmethod
    def from_payload(cls, payload: object) -> Movie:
        data = _require_mapping(payload, "movie")
        genres: list[str] = []
        for g in _require_list(data, "genres", "movie"):
            if isinstance(g, Mapping):
                name = _str_or_none(g.get("name"))
                if name:
                    genres.append(name)
        return cls(
            id=_require_id(data, "movie"),
            title=_str_or_none(data.get("title")),
            overview=_str_or_none(data.get("overview")),
            release_date=_str_or_none(data.get("release_date")),
            vote_average=_float_or_none(data.get("vote_average")),
            vote_count=_int_or_none(data.get("vote_count")),
            runtime=_int_or_none(data.get("runtime")),
            original_language=_str_or_none(data.get("original_language")),
            poster_path=_str_or_none(data.get("poster_path")),
            backdrop_path=_str_or_none(data.get("backdrop_path")),
            genres=genres,
        )

    @property
    def trailer_url(self) -> str | None:
        return self.trailer.url if self.trailer is not None else None

    def to_dict(self, *, include_report: bool = True) -> dict[str, object]:
        out: dict[str, object] = {
            "id": self.id,
            "title": self.title,
            "overview": self.overview,
            "release_date": self.release_date,
            "vote_average": self.vote_average,
            "vote_count": self.vote_count,
            "runtime": self.runtime,
            "original_language": self.original_language,
            "poster_path": self.poster_path,
            "backdrop_path": self.backdrop_path,
            "genres": list(self.genres),
            "credits": self.credits.to_dict() if self.credits is not None else None,
            "similar": self.similar.to_dict() if self.similar is not None else None,
            "trailer": self.trailer.to_dict() if self.trailer is not None else None,
            "trailer_url": self.trailer_url,
        }
        if include_report:
            out["enrichment"] = self.enrichment.to_dict()
        return out


@dataclass(frozen=True, slots=True)
class MoviePage:
    page: int
    results: tuple[Movie, ...] = ()
    missing_ids: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "page": self.page,
            "results": [m.to_dict() for m in self.results],
            "missing_ids": list(self.missing_ids),
        }


def first_matching(videos: Sequence[VideoReference], *, site: str, types: Sequence[str]) -> VideoReference | None:
    """Primer vídeo (orden de proveedor) con site==site y type in types, ambos case-insensitive."""
    site_norm = site.strip().casefold()
    types_norm = {t.strip().casefold() for t in types}
    for v in videos:
        if (v.site or "").casefold() != site_norm:
            continue
        if (v.type or "").casefold() in types_norm:
            return v
    return None
