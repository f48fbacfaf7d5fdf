from __future__ import annotations

import copy
import threading
import time
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field

import pytest

from movie_catalog.results import TaskResult, UpstreamError
from movie_catalog.worker_pool import WorkerPool

# ============================================================
# Fakes de transporte (requests)
# ============================================================


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        payload: object = None,
        *,
        reason: str = "OK",
        invalid_json: bool = False,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self._payload = payload
        self._invalid_json = invalid_json

    def json(self) -> object:
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


@dataclass(slots=True)
class SessionCall:
    url: str
    params: dict[str, str]
    timeout: float | None


class FakeSession:
    """
    Sustituto mínimo de requests.Session con routing programable.

    `responder(url, params)` devuelve un FakeResponse o una excepción (que se lanza).
    """

    def __init__(self, responder: Callable[[str, dict[str, str]], object]) -> None:
        self._responder = responder
        self.calls: list[SessionCall] = []
        self.closed = False

    def get(self, url: str, params: dict[str, str] | None = None, timeout: float | None = None) -> object:
        query = dict(params or {})
        self.calls.append(SessionCall(url=url, params=query, timeout=timeout))
        out = self._responder(url, query)
        if isinstance(out, BaseException):
            raise out
        return out

    def close(self) -> None:
        self.closed = True


# ============================================================
# Upstream guionizado (sin HTTP)
# ============================================================


@dataclass(slots=True)
class UpstreamCall:
    path: str
    params: dict[str, object]
    thread: str


@dataclass
class ScriptedUpstream:
    """
    Implementa `fetch(path, params)` a partir de un dict path -> respuesta.

    - dict: payload devuelto (copia profunda, cada llamada es independiente)
    - UpstreamError: fallo devuelto tal cual
    - path sin ruta: not_found 404
    - delays[path]: segundos de espera antes de responder
    """

    routes: dict[str, object] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[UpstreamCall] = field(default_factory=list)
    max_in_flight: int = 0
    _in_flight: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def fetch(self, path: str, params: Mapping[str, object] | None = None) -> TaskResult[dict[str, object]]:
        with self._lock:
            self.calls.append(UpstreamCall(path=path, params=dict(params or {}), thread=threading.current_thread().name))
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            delay = self.delays.get(path)
            if delay:
                time.sleep(delay)

            route = self.routes.get(path)
            if route is None:
                return TaskResult.failure(UpstreamError(kind="not_found", path=path, detail="no route", status=404))
            if isinstance(route, UpstreamError):
                return TaskResult.failure(route)
            return TaskResult.success(copy.deepcopy(route))  # type: ignore[arg-type]
        finally:
            with self._lock:
                self._in_flight -= 1

    def paths(self) -> list[str]:
        with self._lock:
            return [c.path for c in self.calls]

    def count(self, prefix: str) -> int:
        return sum(1 for p in self.paths() if p.startswith(prefix))


# ============================================================
# Payloads TMDB de ejemplo
# ============================================================


def movie_payload(movie_id: int) -> dict[str, object]:
    return {
        "id": movie_id,
        "title": f"Movie {movie_id}",
        "overview": "A movie.",
        "release_date": "1999-03-31",
        "vote_average": 8.2,
        "vote_count": 1200,
        "runtime": 136,
        "original_language": "en",
        "poster_path": f"/p{movie_id}.jpg",
        "backdrop_path": None,
        "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
    }


def credits_payload(movie_id: int, cast_ids: Iterable[int] = (), crew_ids: Iterable[int] = ()) -> dict[str, object]:
    return {
        "id": movie_id,
        "cast": [
            {"id": pid, "name": f"Person {pid}", "character": f"Role {pid}", "order": i, "profile_path": None}
            for i, pid in enumerate(cast_ids)
        ],
        "crew": [
            {"id": pid, "name": f"Person {pid}", "job": "Director", "department": "Directing"}
            for pid in crew_ids
        ],
    }


def external_ids_payload(person_id: int) -> dict[str, object]:
    return {"id": person_id, "imdb_id": imdb_for(person_id)}


def imdb_for(person_id: int) -> str:
    return f"nm{person_id:07d}"


def videos_payload(movie_id: int, videos: Iterable[tuple[str, str, str]] | None = None) -> dict[str, object]:
    items = list(videos) if videos is not None else [("YouTube", "Trailer", f"key{movie_id}")]
    return {
        "id": movie_id,
        "results": [{"site": site, "type": vtype, "key": key, "name": f"{vtype} {key}"} for site, vtype, key in items],
    }


def summary_page_payload(ids: Iterable[int], *, page: int = 1) -> dict[str, object]:
    items = [{"id": i, "title": f"Movie {i}", "vote_average": 7.0} for i in ids]
    return {"page": page, "results": items, "total_pages": 1, "total_results": len(items)}


def make_routes(
    movie_id: int,
    *,
    cast_ids: Iterable[int] = (1, 2, 3),
    crew_ids: Iterable[int] = (4,),
    similar_ids: Iterable[int] = (11, 12),
    videos: Iterable[tuple[str, str, str]] | None = None,
) -> dict[str, object]:
    cast = list(cast_ids)
    crew = list(crew_ids)
    routes: dict[str, object] = {
        f"/movie/{movie_id}": movie_payload(movie_id),
        f"/movie/{movie_id}/credits": credits_payload(movie_id, cast, crew),
        f"/movie/{movie_id}/videos": videos_payload(movie_id, videos),
        f"/movie/{movie_id}/similar": summary_page_payload(similar_ids),
    }
    for pid in [*cast, *crew]:
        routes[f"/person/{pid}/external_ids"] = external_ids_payload(pid)
    return routes


def unreachable(path: str) -> UpstreamError:
    return UpstreamError(kind="unreachable", path=path, detail="timeout after 10.0s: ReadTimeout")


# ============================================================
# Fixtures
# ============================================================


@pytest.fixture()
def pool() -> Iterator[WorkerPool]:
    p = WorkerPool(4, name="test")
    yield p
    p.shutdown()


@pytest.fixture()
def pool_factory() -> Iterator[Callable[[int], WorkerPool]]:
    created: list[WorkerPool] = []

    def _make(capacity: int) -> WorkerPool:
        p = WorkerPool(capacity, name=f"test{capacity}")
        created.append(p)
        return p

    yield _make
    for p in created:
        p.shutdown()
