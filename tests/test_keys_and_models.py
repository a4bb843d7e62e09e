from __future__ import annotations

import pytest

from movie_merge.core.exceptions import MalformedRecordError, StoreError
from movie_merge.entities.models import (
    ArchiveSource,
    CanonicalEntry,
    YouTubeSource,
    source_from_dict,
)
from movie_merge.identity.keys import (
    decode_temporary_key,
    is_canonical_key,
    is_temporary_key,
    next_free_key,
    temporary_key_for,
)


# -----------------------------
# Keys
# -----------------------------

def test_key_classification():
    assert is_canonical_key("tt0133093")
    assert is_canonical_key("tt12345678")
    assert not is_canonical_key("tt123")
    assert not is_canonical_key("archive-foo")

    assert is_temporary_key("archive-foo")
    assert is_temporary_key("youtube-abc-1")
    assert not is_temporary_key("archive-")
    assert not is_temporary_key("vimeo-123")
    assert not is_temporary_key("tt0133093")


def test_temporary_key_for_sources():
    assert temporary_key_for(ArchiveSource(id="night_of_the_living_dead")) == "archive-night_of_the_living_dead"
    assert temporary_key_for(YouTubeSource(id="dQw4w9WgXcQ")) == "youtube-dQw4w9WgXcQ"


def test_decode_without_entry_keeps_suffix():
    assert decode_temporary_key("youtube-abc-1") == ("youtube", "abc-1")
    assert decode_temporary_key("tt0133093") is None


def test_decode_strips_collision_suffix_only_when_needed():
    suffixed = CanonicalEntry(key="archive-foo-1", sources=[ArchiveSource(id="foo")])
    assert decode_temporary_key("archive-foo-1", suffixed) == ("archive.org", "foo")

    native = CanonicalEntry(key="archive-foo-1", sources=[ArchiveSource(id="foo-1")])
    assert decode_temporary_key("archive-foo-1", native) == ("archive.org", "foo-1")


def test_next_free_key():
    taken = {"archive-foo", "archive-foo-1"}
    assert next_free_key("archive-bar", taken.__contains__) == "archive-bar"
    assert next_free_key("archive-foo", taken.__contains__) == "archive-foo-2"


# -----------------------------
# Models
# -----------------------------

def test_source_from_dict_dispatches_on_type():
    source = source_from_dict({"type": "youtube", "id": "abc", "channelName": "Popcornflix", "releaseYear": 1972})
    assert isinstance(source, YouTubeSource)
    assert source.channel_name == "Popcornflix"
    assert source.year_hint() == 1972

    with pytest.raises(MalformedRecordError):
        source_from_dict({"type": "vimeo", "id": "1"})
    with pytest.raises(MalformedRecordError):
        source_from_dict({"type": "archive.org"})


def test_archive_year_hint_from_release_date():
    assert ArchiveSource(id="x", release_date="1968-10-01T00:00:00Z").year_hint() == 1968
    assert ArchiveSource(id="x", release_date="unknown").year_hint() is None


def test_entry_round_trip_keeps_unknown_fields():
    data = {
        "imdbId": "tt0133093",
        "title": "The Matrix",
        "year": 1999,
        "sources": [
            {"type": "archive.org", "id": "matrix", "url": "https://archive.org/details/matrix", "mirror": "eu"},
        ],
        "metadata": {"Title": "The Matrix"},
        "verified": True,
        "lastUpdated": "2024-01-01T00:00:00.000Z",
        "notes": "keep me",
    }
    entry = CanonicalEntry.from_dict("tt0133093", data)

    assert entry.titles == ["The Matrix"]
    assert entry.sources[0].extra == {"mirror": "eu"}
    assert entry.extra == {"notes": "keep me"}
    assert entry.to_dict() == data


def test_competing_titles_serialize_as_list():
    entry = CanonicalEntry.from_dict("archive-x", {"title": ["Der Golem", "The Golem"], "sources": []})
    assert entry.title == "Der Golem"
    assert entry.to_dict()["title"] == ["Der Golem", "The Golem"]
    assert entry.to_dict()["imdbId"] == "archive-x"


def test_recorded_id_differs_from_key():
    entry = CanonicalEntry.from_dict("archive-x", {"imdbId": "tt0068713", "title": "Horror Express", "sources": []})
    assert entry.imdb_id == "tt0068713"
    assert entry.to_dict()["imdbId"] == "tt0068713"


def test_bad_source_in_entry_is_store_error():
    with pytest.raises(StoreError):
        CanonicalEntry.from_dict("archive-x", {"title": "X", "sources": [{"type": "laserdisc", "id": "1"}]})


def test_ai_title_and_missing_title():
    entry = CanonicalEntry(key="youtube-x", titles=[None, "  "], ai={"title": "Real Title"})
    assert entry.title is None
    assert entry.ai_title == "Real Title"
