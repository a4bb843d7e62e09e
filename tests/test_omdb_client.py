from __future__ import annotations

import pytest
import requests

from conftest import FakeResponse, FakeSession
from movie_merge.config import MMConfig
from movie_merge.core.exceptions import ConfigurationError, ExternalServiceError
from movie_merge.omdb.client import Candidate, OmdbClient, build_omdb_client, transform_details
from movie_merge.omdb.rate_limiter import RateLimiter


MATRIX_SEARCH = {
    "Response": "True",
    "Search": [
        {"Title": "The Matrix", "Year": "1999", "imdbID": "tt0133093", "Type": "movie", "Poster": "N/A"},
        {"Title": "The Matrix Reloaded", "Year": "2003", "imdbID": "tt0234215", "Type": "movie"},
    ],
}


def make_client(responses, sleeps=None, **kwargs):
    session = FakeSession(responses)
    sleeps = sleeps if sleeps is not None else []
    limiter = RateLimiter(0, clock=lambda: 0.0, sleep=lambda s: None)
    client = OmdbClient("secret", session=session, limiter=limiter, sleep=sleeps.append, **kwargs)
    return client, session


def test_search_sends_expected_params():
    client, session = make_client([FakeResponse(200, MATRIX_SEARCH)])
    results = client.search("The Matrix", 1999)

    assert [c.imdb_id for c in results] == ["tt0133093", "tt0234215"]
    assert results[0].year_number == 1999
    _, params = session.calls[0]
    assert params == {"apikey": "secret", "s": "The Matrix", "type": "movie", "y": "1999"}


def test_search_without_year_omits_y():
    client, session = make_client([FakeResponse(200, MATRIX_SEARCH)])
    client.search("The Matrix")
    assert "y" not in session.calls[0][1]


def test_search_no_results_is_empty_not_error():
    client, _ = make_client([FakeResponse(200, {"Response": "False", "Error": "Movie not found!"})])
    assert client.search("Nonexistent Film", 1950) == []


def test_fetch_details_transforms_payload():
    payload = {"Response": "True", "Title": "The Matrix", "imdbID": "tt0133093", "imdbRating": "8.7", "imdbVotes": "2,012,345"}
    client, session = make_client([FakeResponse(200, payload)])

    details = client.fetch_details("tt0133093")

    assert details["imdbRating"] == 8.7
    assert details["imdbVotes"] == 2012345
    assert session.calls[0][1]["i"] == "tt0133093"
    assert session.calls[0][1]["plot"] == "full"


def test_fetch_details_not_found_is_none():
    client, _ = make_client([FakeResponse(200, {"Response": "False", "Error": "Incorrect IMDb ID."})])
    assert client.fetch_details("tt0000000") is None


def test_rate_limited_response_waits_fixed_delay_then_succeeds():
    sleeps = []
    client, session = make_client(
        [FakeResponse(429), FakeResponse(200, MATRIX_SEARCH)],
        sleeps=sleeps,
        rate_limit_delay=5.0,
    )
    assert len(client.search("The Matrix")) == 2
    assert sleeps == [5.0]
    assert client.request_count == 2


def test_server_errors_back_off_exponentially():
    sleeps = []
    client, _ = make_client(
        [FakeResponse(500), FakeResponse(503), FakeResponse(200, MATRIX_SEARCH)],
        sleeps=sleeps,
        backoff_seconds=1.0,
        max_backoff_seconds=8.0,
        max_attempts=3,
    )
    client.search("The Matrix")
    assert sleeps == [1.0, 2.0]


def test_exhausted_retries_raise_external_service_error():
    client, session = make_client([FakeResponse(500)] * 3, max_attempts=3)
    with pytest.raises(ExternalServiceError) as excinfo:
        client.search("The Matrix")
    assert type(excinfo.value) is ExternalServiceError
    assert len(session.calls) == 3


def test_network_errors_are_retried():
    client, _ = make_client([requests.ConnectionError("boom"), FakeResponse(200, MATRIX_SEARCH)])
    assert len(client.search("The Matrix")) == 2


def test_network_errors_exhausted():
    client, _ = make_client([requests.ConnectionError("boom")] * 2, max_attempts=2)
    with pytest.raises(ExternalServiceError):
        client.search("The Matrix")


def test_transform_details_drops_not_available():
    out = transform_details({"imdbRating": "N/A", "imdbVotes": "N/A", "Title": "X"})
    assert "imdbRating" not in out
    assert "imdbVotes" not in out
    assert out["Title"] == "X"


def test_candidate_year_number():
    assert Candidate("tt1", "Show", "1999–2003").year_number == 1999
    assert Candidate("tt1", "Film", "N/A").year_number is None
    assert Candidate("tt1", "Film", None).year_number is None


def test_missing_api_key_is_configuration_error(monkeypatch):
    monkeypatch.delenv("OMDB_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        build_omdb_client(MMConfig({}))


def test_build_client_from_config(monkeypatch):
    monkeypatch.setenv("OMDB_API_KEY", "abc")
    client = build_omdb_client(MMConfig({"omdb": {"min_interval_seconds": 0.5, "rate_limit_delay_seconds": 2}}))
    assert client.api_key == "abc"
    assert client.limiter.min_interval == 0.5
    assert client.rate_limit_delay == 2.0
