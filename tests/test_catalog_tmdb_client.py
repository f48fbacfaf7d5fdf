import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import ReadTimeout

import movie_catalog.tmdb_client as tc
from conftest import FakeResponse, FakeSession, movie_payload
from movie_catalog.errors import ConfigError
from movie_catalog.models import Movie
from movie_catalog.run_metrics import RunMetrics


def _client(responder, **kwargs):
    session = FakeSession(responder)
    metrics = RunMetrics()
    client = tc.TmdbClient(
        api_key="secret",
        base_url="https://api.test/3/",
        timeout_seconds=2.5,
        language=kwargs.pop("language", None),
        session=session,  # type: ignore[arg-type]
        metrics=metrics,
    )
    return client, session, metrics


def test_paths():
    assert tc.movie_path(603) == "/movie/603"
    assert tc.credits_path(603) == "/movie/603/credits"
    assert tc.videos_path(603) == "/movie/603/videos"
    assert tc.similar_path(603) == "/movie/603/similar"
    assert tc.external_ids_path(7) == "/person/7/external_ids"
    assert tc.popular_path() == "/movie/popular"
    assert tc.search_path() == "/search/movie"


def test_missing_api_key_is_config_error():
    with pytest.raises(ConfigError):
        tc.TmdbClient(api_key="  ", session=FakeSession(lambda u, p: FakeResponse()))  # type: ignore[arg-type]


def test_fetch_ok_builds_url_params_and_timeout():
    client, session, metrics = _client(lambda url, params: FakeResponse(200, {"id": 1}), language="es-ES")

    res = client.fetch("/movie/1", {"page": 2, "api_key": "caller", "skip": None})

    assert res.ok is True
    assert res.value == {"id": 1}
    call = session.calls[0]
    assert call.url == "https://api.test/3/movie/1"
    assert call.params == {"language": "es-ES", "page": "2", "api_key": "secret"}
    assert call.timeout == 2.5
    assert metrics.snapshot()["counters"]["tmdb.http.ok"] == 1


@pytest.mark.parametrize(
    "outcome, kind, status",
    [
        (FakeResponse(404, {"status_code": 34}, reason="Not Found"), "not_found", 404),
        (FakeResponse(401, {}, reason="Unauthorized"), "not_found", 401),
        (FakeResponse(503, None, reason="Service Unavailable"), "unreachable", 503),
        (FakeResponse(200, None, invalid_json=True), "malformed", 200),
        (FakeResponse(200, [1, 2, 3]), "malformed", 200),
        (ReadTimeout("read timed out"), "unreachable", None),
        (RequestsConnectionError("refused"), "unreachable", None),
    ],
)
def test_fetch_failure_taxonomy(outcome, kind, status):
    client, _session, metrics = _client(lambda url, params: outcome)

    res = client.fetch("/movie/1/credits")

    assert res.ok is False
    assert res.error is not None
    assert res.error.kind == kind
    assert res.error.status == status
    assert res.error.path == "/movie/1/credits"
    assert metrics.snapshot()["counters"][f"tmdb.errors.{kind}"] == 1
    assert metrics.snapshot()["derived"]["errors.by_subsystem"]["tmdb"] == 1


def test_errors_never_leak_api_key():
    client, _session, _metrics = _client(lambda url, params: RequestsConnectionError(f"{url}?api_key=secret"))
    res = client.fetch("/movie/1")
    assert res.error is not None
    assert "secret" not in str(res.error)


def test_fetch_parsed_maps_payload_error_to_malformed():
    client, _session, metrics = _client(lambda url, params: FakeResponse(200, {"title": "no id"}))

    res = tc.fetch_parsed(client, "/movie/1", Movie.from_payload, metrics=metrics)

    assert res.ok is False
    assert res.error is not None
    assert res.error.kind == "malformed"
    assert metrics.snapshot()["counters"]["tmdb.errors.malformed"] == 1


def test_fetch_parsed_ok_and_passthrough_error():
    client, _session, metrics = _client(
        lambda url, params: FakeResponse(200, movie_payload(1)) if url.endswith("/movie/1") else FakeResponse(404, {})
    )

    ok = tc.fetch_parsed(client, "/movie/1", Movie.from_payload, metrics=metrics)
    assert ok.ok and ok.value is not None and ok.value.id == 1

    missing = tc.fetch_parsed(client, "/movie/2", Movie.from_payload, metrics=metrics)
    assert missing.error is not None and missing.error.kind == "not_found"


def test_build_session_has_no_retries_and_bounded_pool():
    session = tc.build_session(pool_size=6)
    try:
        adapter = session.get_adapter("https://api.themoviedb.org/3/movie/1")
        assert adapter.max_retries.total == 0
        assert adapter._pool_maxsize == 6
        assert adapter._pool_block is True
        assert session.headers["Accept"] == "application/json"
    finally:
        session.close()


def test_close_only_closes_owned_session():
    client, session, _metrics = _client(lambda url, params: FakeResponse())
    with client:
        pass
    assert session.closed is False


def test_metrics_summary_logs_top_counters(monkeypatch):
    lines = []
    monkeypatch.setattr(tc.logger, "info", lambda msg, *a, **k: lines.append(msg))
    metrics = RunMetrics()
    metrics.incr("tmdb.http.requests", 3)

    tc.log_tmdb_metrics_summary(metrics=metrics, force=True)

    assert lines[0] == "[TMDB][METRICS] summary"
    assert "tmdb.http.requests" in lines[1]
    assert lines[1].endswith(": 3")
