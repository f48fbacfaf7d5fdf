import pytest

from conftest import credits_payload, movie_payload, summary_page_payload, videos_payload
from movie_catalog.errors import PayloadError
from movie_catalog.models import (
    Credits,
    Movie,
    MoviePage,
    MovieSummaryPage,
    VideoReference,
    first_matching,
    parse_video_list,
)


def test_movie_from_payload_scalars_and_genres():
    movie = Movie.from_payload(movie_payload(603))

    assert movie.id == 603
    assert movie.title == "Movie 603"
    assert movie.runtime == 136
    assert movie.genres == ["Action", "Science Fiction"]
    assert movie.credits is None
    assert movie.trailer_url is None


def test_movie_from_payload_tolerates_odd_scalars():
    payload = movie_payload(1)
    payload["runtime"] = "long"
    payload["vote_average"] = True
    payload["title"] = "   "

    movie = Movie.from_payload(payload)
    assert movie.runtime is None
    assert movie.vote_average is None
    assert movie.title is None


@pytest.mark.parametrize("bad", [{"title": "x"}, {"id": 0}, {"id": "603"}, {"id": True}])
def test_movie_without_valid_id_is_malformed(bad):
    with pytest.raises(PayloadError):
        Movie.from_payload(bad)


def test_movie_payload_must_be_object():
    with pytest.raises(PayloadError):
        Movie.from_payload([1, 2])


def test_credits_from_payload_keeps_provider_order():
    credits = Credits.from_payload(credits_payload(1, cast_ids=[5, 3, 9], crew_ids=[2]))

    assert [m.id for m in credits.cast] == [5, 3, 9]
    assert [m.order for m in credits.cast] == [0, 1, 2]
    assert credits.crew[0].job == "Director"
    assert [m.id for m in credits.members()] == [5, 3, 9, 2]


def test_credits_null_lists_are_empty_but_wrong_type_is_malformed():
    assert Credits.from_payload({"id": 1, "cast": None}).cast == []

    with pytest.raises(PayloadError):
        Credits.from_payload({"id": 1, "cast": {"id": 3}})


def test_member_imdb_id_is_set_once():
    credits = Credits.from_payload(credits_payload(1, cast_ids=[7]))
    member = credits.cast[0]

    member.set_imdb_id("nm0000007")
    assert member.imdb_id == "nm0000007"
    with pytest.raises(ValueError):
        member.set_imdb_id("nm0000008")


def test_video_reference_url():
    video = VideoReference.from_payload({"site": "YouTube", "type": "Trailer", "key": "abc"})
    assert video.url == "https://www.youtube.com/watch?v=abc"

    custom = VideoReference.from_payload({"key": "abc"}, url_template="https://yt.test/{key}")
    assert custom.url == "https://yt.test/abc"

    assert VideoReference.from_payload({"site": "YouTube"}).url is None


def test_first_matching_picks_first_in_provider_order():
    videos = parse_video_list(
        videos_payload(1, [("Vimeo", "Trailer", "a"), ("YouTube", "Teaser", "b"), ("YouTube", "Trailer", "c")])
    )

    picked = first_matching(videos, site="YouTube", types=("Trailer", "Teaser"))
    assert picked is videos[1]


def test_first_matching_is_case_insensitive_and_may_miss():
    videos = parse_video_list(videos_payload(1, [("youtube", "TRAILER", "a")]))
    assert first_matching(videos, site="YouTube", types=("Trailer",)) is videos[0]
    assert first_matching(videos, site="Vimeo", types=("Trailer",)) is None
    assert first_matching([], site="YouTube", types=("Trailer",)) is None


def test_summary_page_ids_and_defaults():
    page = MovieSummaryPage.from_payload(summary_page_payload([3, 1, 2], page=2))
    assert page.page == 2
    assert page.ids() == [3, 1, 2]

    assert MovieSummaryPage.from_payload({}).page == 1


def test_movie_to_dict_contains_report_and_is_stable():
    movie = Movie.from_payload(movie_payload(1))
    out = movie.to_dict()

    assert list(out)[:2] == ["id", "title"]
    assert out["enrichment"] == {"state": "unstarted", "errors": {}, "person_errors": {}, "people_skipped": 0}
    assert "enrichment" not in movie.to_dict(include_report=False)
    assert movie.to_dict() == out


def test_movie_page_to_dict():
    page = MoviePage(page=1, results=(Movie.from_payload(movie_payload(1)),), missing_ids=(9,))
    out = page.to_dict()
    assert out["page"] == 1
    assert [m["id"] for m in out["results"]] == [1]
    assert out["missing_ids"] == [9]


def test_summary_page_keeps_entries_without_id():
    page = MovieSummaryPage.from_payload({"page": 1, "results": [{"id": 11}, {"title": "no id"}, {"id": "12"}]})

    assert len(page.results) == 3
    assert page.results[1].title == "no id"
    assert page.results[1].id is None
    assert page.ids() == [11]
    assert page.to_dict()["results"][1]["id"] is None


def test_summary_page_wrong_container_is_malformed():
    with pytest.raises(PayloadError):
        MovieSummaryPage.from_payload({"page": 1, "results": {"id": 11}})
    with pytest.raises(PayloadError):
        MovieSummaryPage.from_payload({"page": 1, "results": ["11"]})
