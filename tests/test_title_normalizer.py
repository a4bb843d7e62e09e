# tests/test_title_normalizer.py

from __future__ import annotations

import pytest

from movie_merge.normalization import extract_year_and_clean_title, normalize
from movie_merge.normalization.channel_rules import CHANNEL_RULES, clean_for_channel
from movie_merge.normalization.title_normalizer import (
    collapse_translation_pair,
    strip_channel_envelope,
    strip_descriptive_subtitle,
    strip_promotional_prefix,
    strip_year_prefix,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1937 - Snow White", "Snow White"),
        ("Nosferatu (1922)", "Nosferatu"),
        ("Der Golem (The Golem)", "The Golem"),
        ("Metropolis (German: Metropolis)", "Metropolis"),
        ('Charlie Chaplin\'s "The Kid"', "The Kid"),
        ("CHARLIE CHAPLIN in THE KID", "THE KID"),
        ("The Lost World - A Journey Into the Unknown", "The Lost World"),
        ("Night of the Living Dead | FULL MOVIE | Horror", "Night of the Living Dead"),
        ("Director Unknown Some Film.mp4", "Some Film"),
        ("[Horror] The Bat", "The Bat"),
        ("Director Unknown Pipin Der Kurze", "Pipin Der Kurze"),
        ("- Damals zu Hause", "Damals zu Hause"),
    ],
)
def test_normalize_scenarios(raw, expected):
    assert normalize(raw) == expected


def test_titles_that_must_survive():
    assert normalize("Murder in the Cathedral") == "Murder in the Cathedral"
    assert normalize("2001 A Space Odyssey") == "2001 A Space Odyssey"
    assert normalize("Spider-Man: Homecoming") == "Spider-Man: Homecoming"


def test_channel_rule_applied_inside_normalize():
    assert normalize("Johnny O'Clock [Film Noir] [Drama] [Crime]", "@TimelessClassicMovies") == "Johnny O'Clock"
    assert normalize("Banger (2018) | FULL MOVIE | Action, Crime | Omar Gooding", "@Popcornflix") == "Banger"


@pytest.mark.parametrize(
    "raw",
    ["2001", '"', "...", "-", "(1999)", "[Drama]", "CHARLIE in X", "  x  ", "A - The"],
)
def test_normalize_never_empties_a_title(raw):
    assert normalize(raw).strip()


def test_normalize_whitespace_only_is_unchanged():
    assert normalize("   ") == "   "


def test_normalize_records_trace():
    trace = []
    normalize("1937 - Snow White", trace=trace)
    assert trace == ["year_prefix", "dash_prefix"]


def test_individual_rules():
    assert strip_year_prefix("1934 - Title") == "- Title"
    assert strip_year_prefix("1934 Title") == "1934 Title"
    assert collapse_translation_pair("Nosferatu (dir. Murnau)") == "Nosferatu (dir. Murnau)"
    assert strip_promotional_prefix("The Kid") == "The Kid"
    assert strip_descriptive_subtitle("Alien: Resurrection") == "Alien: Resurrection"
    assert strip_channel_envelope("Plan 9 From Outer Space.avi") == "Plan 9 From Outer Space"


@pytest.mark.parametrize(
    "channel_id, dirty, clean",
    [(rule.channel_id, dirty, clean) for rule in CHANNEL_RULES for dirty, clean in rule.examples],
)
def test_channel_rule_examples(channel_id, dirty, clean):
    assert clean_for_channel(dirty, channel_id) == clean


def test_unknown_channel_passes_through():
    assert clean_for_channel("  Some Title | FULL MOVIE  ", "@SomeoneElse") == "Some Title | FULL MOVIE"


@pytest.mark.parametrize(
    "title, expected",
    [
        ("The Matrix (1999)", ("The Matrix", 1999)),
        ("Metropolis | 1927", ("Metropolis", 1927)),
        ("Nosferatu 1922", ("Nosferatu", 1922)),
        ("Dracula (1931) | Full Movie", ("Dracula", 1931)),
        ("Movie (1850)", ("Movie (1850)", None)),
        ("The Matrix", ("The Matrix", None)),
    ],
)
def test_extract_year_and_clean_title(title, expected):
    assert extract_year_and_clean_title(title) == expected
