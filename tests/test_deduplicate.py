from __future__ import annotations

import pytest

from movie_merge.entities.models import ArchiveSource, CanonicalEntry, YouTubeSource
from movie_merge.postprocess.deduplicate import (
    REASON_IMDB_ID,
    REASON_TITLE,
    DuplicateGroup,
    apply_groups,
    choose_representative,
    find_groups,
    merge_group,
    normalize_for_comparison,
    representative_score,
    title_similarity,
)
from movie_merge.store.movie_store import MovieStore


def horror_express_store():
    store = MovieStore()
    store.put(CanonicalEntry(key="archive-horror_express", titles=["Horror Express"], sources=[ArchiveSource(id="horror_express")]))
    store.put(
        CanonicalEntry(
            key="tt0068713",
            titles=["Horror Express"],
            year=1972,
            sources=[ArchiveSource(id="HorrorExpress1972")],
            metadata={"Title": "Horror Express"},
        )
    )
    store.put(CanonicalEntry(key="youtube-hx", titles=["HORROR EXPRESS!"], sources=[YouTubeSource(id="hx")]))
    store.put(CanonicalEntry(key="archive-nosferatu", titles=["Nosferatu"], sources=[ArchiveSource(id="nosferatu")]))
    return store


def test_similarity_bounds():
    assert title_similarity("", "") == 1.0
    assert title_similarity("abc", "abc") == 1.0
    assert title_similarity("abc", "xyz") == 0.0
    for a, b in [("horror express", "horror expres"), ("nosferatu", "metropolis"), ("a", "")]:
        value = title_similarity(a, b)
        assert 0.0 <= value <= 1.0
        assert value == title_similarity(b, a)


def test_normalize_for_comparison():
    assert normalize_for_comparison("  HORROR   Express! ") == "horror express"


def test_representative_score():
    canonical = CanonicalEntry(key="tt0068713", titles=["X"], year=1972, sources=[ArchiveSource(id="a")], metadata={"Title": "X"})
    assert representative_score(canonical) == 100 + 50 + 5 + 10
    ai_only = CanonicalEntry(key="archive-a", titles=["X"], ai={"title": "X"}, sources=[ArchiveSource(id="a"), YouTubeSource(id="b")])
    assert representative_score(ai_only) == 25 + 10


def test_horror_express_group_is_merged_into_canonical(now):
    store = horror_express_store()

    groups = find_groups(store, threshold=0.85)

    assert len(groups) == 1
    assert groups[0].keys == ["archive-horror_express", "tt0068713", "youtube-hx"]
    assert groups[0].reasons == [REASON_TITLE]

    summary = apply_groups(store, groups, now=now)

    assert summary.groups == 1
    assert summary.kept_keys == ["tt0068713"]
    assert sorted(summary.removed_keys) == ["archive-horror_express", "youtube-hx"]
    assert summary.entries_before == 4
    assert summary.entries_after == 2
    kept = store.get("tt0068713")
    assert {s.identity for s in kept.sources} == {
        ("archive.org", "HorrorExpress1972"),
        ("archive.org", "horror_express"),
        ("youtube", "hx"),
    }
    assert kept.titles == ["Horror Express"]
    assert "archive-nosferatu" in store


def test_strict_threshold_finds_nothing_for_near_titles():
    store = MovieStore()
    store.put(CanonicalEntry(key="archive-a", titles=["Horror Express"], sources=[ArchiveSource(id="a")]))
    store.put(CanonicalEntry(key="archive-b", titles=["Horror Expres"], sources=[ArchiveSource(id="b")]))

    assert find_groups(store, threshold=1.0) == []
    assert len(find_groups(store, threshold=0.9)) == 1


def test_recorded_imdb_id_collision_is_grouped():
    store = MovieStore()
    store.put(CanonicalEntry(key="tt0068713", titles=["Horror Express"], sources=[ArchiveSource(id="a")], metadata={"Title": "Horror Express"}))
    store.put(
        CanonicalEntry(
            key="archive-b",
            recorded_id="tt0068713",
            titles=["Pánico en el Transiberiano"],
            sources=[ArchiveSource(id="b")],
        )
    )

    groups = find_groups(store)

    assert len(groups) == 1
    assert groups[0].keys == ["tt0068713", "archive-b"]
    assert groups[0].reasons == [REASON_IMDB_ID]


def test_merge_group_fills_gaps_from_losers_without_touching_store(now):
    store = MovieStore()
    store.put(CanonicalEntry(key="tt0000001", titles=["Film"], sources=[ArchiveSource(id="a")]))
    store.put(CanonicalEntry(key="archive-b", titles=["Film"], year=1950, ai={"title": "Film"}, sources=[ArchiveSource(id="b")]))

    key, merged, removed = merge_group(store, DuplicateGroup(["tt0000001", "archive-b"], [REASON_TITLE]), now=now)

    assert key == "tt0000001"
    assert removed == ["archive-b"]
    assert merged.year == 1950
    assert merged.ai == {"title": "Film"}
    assert len(merged.sources) == 2
    assert len(store) == 2
    assert len(store.get("tt0000001").sources) == 1


def test_choose_representative_first_seen_on_ties():
    a = CanonicalEntry(key="archive-a", titles=["X"], sources=[ArchiveSource(id="a")])
    b = CanonicalEntry(key="archive-b", titles=["X"], sources=[ArchiveSource(id="b")])
    assert choose_representative([a, b]) is a
    assert choose_representative([b, a]) is b


@pytest.mark.parametrize("threshold", [0.5, 0.85, 0.95])
def test_entries_after_matches_removed(threshold, now):
    store = horror_express_store()
    summary = apply_groups(store, find_groups(store, threshold), now=now)
    assert summary.entries_after == summary.entries_before - len(summary.removed_keys)
    assert len(store) == summary.entries_after


def test_different_films_with_similar_titles_stay_apart():
    store = MovieStore()
    store.put(CanonicalEntry(key="archive-a", titles=["Horror Express"], sources=[ArchiveSource(id="a")]))
    store.put(CanonicalEntry(key="archive-b", titles=["Horror Expedition"], sources=[ArchiveSource(id="b")]))

    assert title_similarity("horror express", "horror expedition") < 0.85
    assert find_groups(store, threshold=0.85) == []
