from __future__ import annotations

import pytest

from movie_merge.matching.confidence import ConfidenceTier, best_match, score, token_overlap
from movie_merge.omdb.client import Candidate


def cand(title, year=None, imdb_id="tt0000001"):
    return Candidate(imdb_id=imdb_id, title=title, year=year)


def test_exact_title_and_year():
    assert score("The Matrix", 1999, cand("The Matrix", "1999")) == ConfidenceTier.EXACT


def test_substring_with_matching_year_is_high():
    assert score("Matrix", 1999, cand("The Matrix", "1999")) == ConfidenceTier.HIGH


@pytest.mark.parametrize(
    "query, year, candidate, expected",
    [
        ("The Matrix", None, cand("The Matrix", "1999"), ConfidenceTier.HIGH),
        ("The Matrix", 2003, cand("The Matrix", "1999"), ConfidenceTier.MEDIUM),
        ("The Matrix", 1999, cand("The Matrix", None), ConfidenceTier.MEDIUM),
        ("Matrix", None, cand("The Matrix", "1999"), ConfidenceTier.MEDIUM),
        ("Matrix", 2003, cand("The Matrix", "1999"), ConfidenceTier.LOW),
        ("Night Living Dead", None, cand("Night of the Living Dead", "1968"), ConfidenceTier.MEDIUM),
        ("Night Living Dead", 1990, cand("Night of the Living Dead", "1968"), ConfidenceTier.LOW),
        ("Casablanca", 1942, cand("Gone with the Wind", "1939"), ConfidenceTier.LOW),
        ("the matrix", 1999, cand("THE MATRIX", "1999"), ConfidenceTier.EXACT),
        ("", 1999, cand("The Matrix", "1999"), ConfidenceTier.LOW),
    ],
)
def test_score_rules(query, year, candidate, expected):
    assert score(query, year, candidate) == expected


@pytest.mark.parametrize(
    "query, title",
    [("The Matrix", "The Matrix"), ("Matrix", "The Matrix"), ("Night Living Dead", "Night of the Living Dead")],
)
def test_matching_year_never_scores_below_no_year(query, title):
    candidate = cand(title, "1999")
    assert score(query, 1999, candidate) >= score(query, None, candidate)
    assert score(query, 1999, candidate) >= score(query, 2005, candidate)


@pytest.mark.parametrize("year", [None, 1999, 2005])
def test_closer_title_never_scores_lower(year):
    exact = score("The Matrix", year, cand("The Matrix", "1999"))
    substring = score("Matrix", year, cand("The Matrix", "1999"))
    overlap = score("Night Living Dead", year, cand("Night of the Living Dead", "1999"))
    assert exact >= substring >= overlap


def test_token_overlap():
    assert token_overlap("night living dead", "night of the living dead") == 1.0
    assert token_overlap("a b", "c d") == 0.0
    assert token_overlap("", "x") == 0.0


def test_best_match_empty_is_none():
    result = best_match("The Matrix", 1999, [])
    assert result.tier == ConfidenceTier.NONE
    assert result.imdb_id is None
    assert not result.matched


def test_best_match_prefers_higher_tier_and_first_on_ties():
    candidates = [
        cand("Matrix Reloaded", "2003", "tt0234215"),
        cand("The Matrix", "1999", "tt0133093"),
        cand("The Matrix", "1999", "tt9999999"),
    ]
    result = best_match("The Matrix", 1999, candidates)
    assert result.tier == ConfidenceTier.EXACT
    assert result.imdb_id == "tt0133093"
    assert result.title == "The Matrix"
    assert result.year == "1999"
    assert result.matched


def test_tier_parse():
    assert ConfidenceTier.parse("medium") == ConfidenceTier.MEDIUM
    assert ConfidenceTier.parse(" HIGH ") == ConfidenceTier.HIGH
    assert ConfidenceTier.parse(ConfidenceTier.LOW) == ConfidenceTier.LOW
    with pytest.raises(ValueError):
        ConfidenceTier.parse("certain")
    assert ConfidenceTier.EXACT.label == "exact"
