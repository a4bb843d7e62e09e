"""
title_normalizer.py
Title normalization for OMDB matching.

Goals:
- Pure string -> string transforms, no I/O
- Each rule is a standalone function so it can be tested on its own
- A rule that would empty the title is skipped (the pre-rule title is kept)
- normalize() never returns an empty string for a non-empty input
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Tuple

from movie_merge.normalization.channel_rules import clean_for_channel

MIN_TITLE_YEAR = 1900
MAX_TITLE_YEAR = 2030

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

DIRECTOR_UNKNOWN_RE = re.compile(r"^\s*(?:(?:19|20)\d{2}\s+)?director\s+unknown\s+", re.I)
FILE_EXTENSION_RE = re.compile(r"\s*\.\s*(?:3gp|mp4|m4v|avi|mkv|ogv|mpe?g|wmv|flv|webm|mov)\s*$", re.I)
PIPE_PROMO_RE = re.compile(
    r"\s*\|\s*(?:WAR|ROMANTIC|DRAMA|COMEDY|HORROR|THRILLER|ACTION|SCI-FI|SCIENCE FICTION|SPY|FULL|FREE"
    r"|HD|4K|MOVIE|FILM|BASED ON|BASADA EN|Subtitulos|subtítulos|with|con|مع|ترجمة|by|por|dir\.).*$",
    re.I,
)
GENRE_TAG_RE = re.compile(r"\s*\[[^\]]*[^\d\s\]][^\]]*\]\s*")

YEAR_PREFIX_RE = re.compile(r"^(?:19|20)\d{2}\s+(?=[-–—]\s)")
DASH_PREFIX_RE = re.compile(r"^[-–—]\s+")

TRANSLATION_PAIR_RE = re.compile(r"^[^(]+\(\s*([A-Z][^):]+?)\s*\)$")
METADATA_WORDS_RE = re.compile(r"German|French|Spanish|Italian|Russian|dir\.|directed by", re.I)
METADATA_PAREN_RE = re.compile(
    r"\s*\([^)]*(?:German|French|Spanish|Italian|Russian|dir\.|directed by)[^)]*\)", re.I
)
GENRE_PAREN_RE = re.compile(r"\s*\([^)]*(?:experience|thriller|drama|comedy|horror)\s*\)", re.I)

POSSESSIVE_QUOTE_RE = re.compile(r"^[^\"“”]+['’]s\s*[\"“”]([^\"“”]+)[\"“”].*$")
# uppercase run followed by a lowercase is/in, so all-caps titles are left alone
ACTOR_PREFIX_RE = re.compile(r"^[A-Z][A-Z\s&]+\s+(?:is|in)\s+(.+)$")

SUBTITLE_SPLIT_RE = re.compile(r"^(.+?)\s*[-–—:]\s*(.+)$")
SUBTITLE_LEAD_RE = re.compile(r"^(?:A|An|The|Nothing|Everything|Survival|Trust|Two) ")
SUBTITLE_MIN_LENGTH = 25

BRACKETED_YEAR_RE = re.compile(r"\s*[(\[]\s*\d{4}\s*[)\]]\s*")
WHOLE_QUOTED_RE = re.compile(r"^[\"“”](.+)[\"“”]$")
INNER_QUOTED_RE = re.compile(r"[\"“”]([^\"“”]+)[\"“”]")
TRAILING_PUNCT_RE = re.compile(r"[.,!?;:]\s*$")

EMBEDDED_YEAR_PATTERNS = [
    re.compile(r"\((\d{4})\)"),
    re.compile(r"\[(\d{4})\]"),
    re.compile(r"\|\s*(\d{4})"),
    re.compile(r"-\s*(\d{4})"),
    re.compile(r"\s+(\d{4})$"),
]
FULL_MOVIE_TAIL_PATTERNS = [
    re.compile(r"\s*\|\s*Full Movie.*$", re.I),
    re.compile(r"\s*-\s*Full Movie.*$", re.I),
    re.compile(r"\s*\[Full Movie\].*$", re.I),
    re.compile(r"\s*\(Full Movie\).*$", re.I),
    re.compile(r"\s*Full HD.*$", re.I),
    re.compile(r"\s*4K.*$", re.I),
]


def _clean_ws(s: str) -> str:
    return " ".join(s.split())


def _keep_if_empty(before: str, after: str) -> str:
    after = after.strip()
    return after if after else before


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def strip_channel_envelope(title: str, channel_id: Optional[str] = None) -> str:
    """
    Remove provider envelopes: the channel's own rule (if any), then the
    generic ones (``Director Unknown`` prefix, file extensions, promotional
    pipe tails, ``[Genre]`` tags).
    """
    cleaned = clean_for_channel(title, channel_id)
    cleaned = _keep_if_empty(cleaned, DIRECTOR_UNKNOWN_RE.sub("", cleaned))
    cleaned = _keep_if_empty(cleaned, FILE_EXTENSION_RE.sub("", cleaned))
    cleaned = _keep_if_empty(cleaned, PIPE_PROMO_RE.sub("", cleaned))
    cleaned = _keep_if_empty(cleaned, GENRE_TAG_RE.sub(" ", cleaned))
    return cleaned


def strip_year_prefix(title: str) -> str:
    """``1937 - Title`` -> ``- Title`` (the dash goes in the next rule)."""
    return YEAR_PREFIX_RE.sub("", title)


def strip_dash_prefix(title: str) -> str:
    return DASH_PREFIX_RE.sub("", title)


def collapse_translation_pair(title: str) -> str:
    """``Foreign Title (English Title)`` -> ``English Title``."""
    m = TRANSLATION_PAIR_RE.match(title)
    if m and not METADATA_WORDS_RE.search(m.group(1)):
        return m.group(1)
    return title


def strip_annotations(title: str) -> str:
    """Drop ``(German: ...)``, ``(1974, dir. Name)`` and genre parentheticals."""
    cleaned = METADATA_PAREN_RE.sub("", title)
    return GENRE_PAREN_RE.sub("", cleaned)


def strip_promotional_prefix(title: str) -> str:
    """
    ``Charlie Chaplin's "The Kid"`` -> ``The Kid`` and
    ``CHARLIE CHAPLIN in THE KID`` -> ``THE KID``.
    """
    cleaned = POSSESSIVE_QUOTE_RE.sub(r"\1", title)
    return ACTOR_PREFIX_RE.sub(r"\1", cleaned)


def strip_descriptive_subtitle(title: str) -> str:
    """
    Drop a dash/colon subtitle when it is long or starts with a lead word,
    but only when the head is multi-word (``Spider-Man`` stays intact).
    """
    m = SUBTITLE_SPLIT_RE.match(title)
    if not m:
        return title
    head, tail = m.group(1), m.group(2)
    if not re.search(r"\s", head):
        return title
    if len(tail) > SUBTITLE_MIN_LENGTH or SUBTITLE_LEAD_RE.match(tail):
        return head
    return title


def strip_years_and_punctuation(title: str) -> str:
    cleaned = BRACKETED_YEAR_RE.sub(" ", title)
    cleaned = WHOLE_QUOTED_RE.sub(r"\1", cleaned.strip())
    cleaned = INNER_QUOTED_RE.sub(r"\1", cleaned, count=1)
    cleaned = TRAILING_PUNCT_RE.sub("", cleaned)
    return _clean_ws(cleaned)


RULES: List[Tuple[str, Callable[[str], str]]] = [
    ("year_prefix", strip_year_prefix),
    ("dash_prefix", strip_dash_prefix),
    ("translation_pair", collapse_translation_pair),
    ("annotations", strip_annotations),
    ("promotional_prefix", strip_promotional_prefix),
    ("descriptive_subtitle", strip_descriptive_subtitle),
    ("years_and_punctuation", strip_years_and_punctuation),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize(raw_title: str, channel_id: Optional[str] = None, trace: Optional[List[str]] = None) -> str:
    """
    Normalize a scraped title for metadata lookup.

    ``channel_id`` selects a channel envelope rule (``@Popcornflix`` ...).
    When ``trace`` is a list, the names of rules that changed the title are
    appended to it.
    """
    if raw_title is None:
        return ""
    raw = str(raw_title)
    current = raw.strip()
    if not current:
        return raw

    steps: List[Tuple[str, Callable[[str], str]]] = [
        ("channel_envelope", lambda t: strip_channel_envelope(t, channel_id)),
        *RULES,
    ]
    for name, rule in steps:
        result = _keep_if_empty(current, rule(current))
        if result != current and trace is not None:
            trace.append(name)
        current = result

    return current


def extract_year_and_clean_title(title: str) -> Tuple[str, Optional[int]]:
    """
    Split a title-embedded year off the title.

    Recognises ``(1999)``, ``[1999]``, ``| 1999``, ``- 1999`` and a trailing
    ``1999`` (first pattern with a year in 1900..2030 wins). Also drops
    ``Full Movie`` / ``Full HD`` / ``4K`` tails.
    """
    cleaned = title or ""
    for pattern in FULL_MOVIE_TAIL_PATTERNS:
        cleaned = pattern.sub("", cleaned)

    year: Optional[int] = None
    for pattern in EMBEDDED_YEAR_PATTERNS:
        m = pattern.search(cleaned)
        if not m:
            continue
        candidate = int(m.group(1))
        if MIN_TITLE_YEAR <= candidate <= MAX_TITLE_YEAR:
            year = candidate
            cleaned = pattern.sub("", cleaned, count=1).strip()
            break

    cleaned = _clean_ws(cleaned)
    cleaned = re.sub(r"[|-]\s*$", "", cleaned).strip()
    return (cleaned or (title or "").strip()), year
