from __future__ import annotations

import pytest

from conftest import FakeResponse, FakeSession
from movie_merge.core.exceptions import ExternalServiceError
from movie_merge.scrapers.archive import ArchiveScraper, build_archive_entry, extract_year, parse_duration
from movie_merge.scrapers.youtube import (
    YouTubeScraper,
    build_youtube_entry,
    is_excluded_title,
    parse_iso_duration,
)


# -----------------------------
# Archive.org
# -----------------------------

def test_archive_helpers():
    assert extract_year("c. 1925") == 1925
    assert extract_year(None) is None
    assert parse_duration("5400") == 5400
    assert parse_duration("1:30:00") == 5400
    assert parse_duration("90:00") == 5400
    assert parse_duration(["01:36:00"]) == 5760
    assert parse_duration("about an hour") is None
    assert parse_duration(None) is None


def test_build_archive_entry(now):
    item = {
        "identifier": "night_of_the_living_dead",
        "title": "Night of the Living Dead",
        "description": ["Classic", "horror"],
        "date": "1968-10-01T00:00:00Z",
        "downloads": 12345,
        "runtime": "1:36:00",
        "language": ["English"],
    }
    entry = build_archive_entry(item, "feature_films", now=now)

    assert entry.key == "archive-night_of_the_living_dead"
    assert entry.titles == ["Night of the Living Dead"]
    assert entry.year == 1968
    source = entry.sources[0]
    assert source.url == "https://archive.org/details/night_of_the_living_dead"
    assert source.collection == "feature_films"
    assert source.downloads == 12345
    assert source.duration == 5760
    assert source.language == "English"
    assert source.description == "Classic\nhorror"
    assert source.added_at == now
    assert source.year_hint() == 1968


def test_archive_scraper_follows_cursor():
    session = FakeSession(
        [
            FakeResponse(200, {"items": [{"identifier": "a"}, {"identifier": "b"}, {"title": "no id"}], "cursor": "c2", "total": 3}),
            FakeResponse(200, {"items": [{"identifier": "c"}], "total": 3}),
        ]
    )
    scraper = ArchiveScraper(session, page_size=10)

    ids = [item["identifier"] for item in scraper.iter_items("feature_films")]

    assert ids == ["a", "b", "c"]
    first_params, second_params = session.calls[0][1], session.calls[1][1]
    assert first_params["count"] == "100"
    assert "collection:feature_films" in first_params["q"]
    assert "cursor" not in first_params
    assert second_params["cursor"] == "c2"


def test_archive_scraper_limit_stops_paging():
    session = FakeSession([FakeResponse(200, {"items": [{"identifier": "a"}, {"identifier": "b"}], "cursor": "c2"})])
    entries = list(ArchiveScraper(session).iter_entries("feature_films", limit=1))
    assert [e.key for e in entries] == ["archive-a"]
    assert len(session.calls) == 1


def test_archive_scraper_http_error():
    session = FakeSession([FakeResponse(404)])
    with pytest.raises(ExternalServiceError):
        list(ArchiveScraper(session).iter_items("feature_films"))


# -----------------------------
# YouTube
# -----------------------------

def video(video_id, title, duration="PT1H30M", views="1234"):
    return {
        "id": video_id,
        "snippet": {
            "title": title,
            "description": "",
            "channelTitle": "Timeless Classic Movies",
            "channelId": "UCtimeless",
            "publishedAt": "2020-01-01T00:00:00Z",
            "thumbnails": {"default": {"url": "d.jpg"}, "high": {"url": "h.jpg"}},
        },
        "contentDetails": {"duration": duration},
        "statistics": {"viewCount": views},
    }


def test_parse_iso_duration():
    assert parse_iso_duration("PT1H32M10S") == 5530
    assert parse_iso_duration("PT45M") == 2700
    assert parse_iso_duration("P1DT1H") == 90000
    assert parse_iso_duration("") is None
    assert parse_iso_duration("90 minutes") is None


def test_excluded_titles():
    assert is_excluded_title("Official Trailer")
    assert is_excluded_title("Funny moment #shorts")
    assert not is_excluded_title("Detour")


def test_build_youtube_entry_applies_channel_rule_and_year(now):
    entry = build_youtube_entry(
        video("abc123", "Johnny O'Clock (1947) [Film Noir] [Drama]"),
        {"id": "@TimelessClassicMovies", "language": "en"},
        now=now,
    )

    assert entry.key == "youtube-abc123"
    assert entry.titles == ["Johnny O'Clock"]
    assert entry.year == 1947
    source = entry.sources[0]
    assert source.url == "https://www.youtube.com/watch?v=abc123"
    assert source.title == "Johnny O'Clock (1947) [Film Noir] [Drama]"
    assert source.release_year == 1947
    assert source.duration == 5400
    assert source.view_count == 1234
    assert source.thumbnail == "h.jpg"
    assert source.language == "en"
    assert source.channel_name == "Timeless Classic Movies"


def fake_youtube_api(url, params):
    if url.endswith("/channels"):
        assert params["forHandle"] == "@TimelessClassicMovies"
        return FakeResponse(200, {"items": [{"id": "UCtimeless", "contentDetails": {"relatedPlaylists": {"uploads": "UUtimeless"}}}]})
    if url.endswith("/playlistItems"):
        assert params["playlistId"] == "UUtimeless"
        if params.get("pageToken") == "p2":
            return FakeResponse(200, {"items": [{"contentDetails": {"videoId": "v3"}}]})
        return FakeResponse(
            200,
            {"items": [{"contentDetails": {"videoId": "v1"}}, {"contentDetails": {"videoId": "v2"}}], "nextPageToken": "p2"},
        )
    if url.endswith("/videos"):
        catalog = {
            "v1": video("v1", "Detour (1945)"),
            "v2": video("v2", "Detour - Official Trailer"),
            "v3": video("v3", "Detour clip", duration="PT10M"),
        }
        return FakeResponse(200, {"items": [catalog[v] for v in params["id"].split(",")]})
    return FakeResponse(404)


def test_youtube_scraper_pages_and_filters():
    session = FakeSession(fake_youtube_api)
    scraper = YouTubeScraper("key", session, min_duration_seconds=2400)

    videos = list(scraper.iter_videos("@TimelessClassicMovies"))

    assert [v["id"] for v in videos] == ["v1"]
    assert all(params["key"] == "key" for _, params in session.calls)
    video_calls = [params for url, params in session.calls if url.endswith("/videos")]
    assert video_calls[0]["id"] == "v1,v2,v3"


def test_youtube_iter_entries():
    session = FakeSession(fake_youtube_api)
    scraper = YouTubeScraper("key", session)

    entries = list(scraper.iter_entries({"id": "@TimelessClassicMovies", "language": "en"}, limit=5))

    assert [e.key for e in entries] == ["youtube-v1"]
    assert entries[0].titles == ["Detour"]
    assert entries[0].year == 1945


def test_youtube_unknown_channel():
    session = FakeSession([FakeResponse(200, {"items": []})])
    with pytest.raises(ExternalServiceError):
        YouTubeScraper("key", session).resolve_channel("@nobody")
