"""
Confidence scoring for OMDB candidates.

A query (title + optional year) is compared against each candidate and given
a discrete tier. A contradicting year is a strong negative signal: it
downgrades even an exact title match, since remakes and sequels share titles.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional

from movie_merge.omdb.client import Candidate

TOKEN_OVERLAP_THRESHOLD = 0.6


class ConfidenceTier(IntEnum):
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    EXACT = 4

    @classmethod
    def parse(cls, value) -> "ConfidenceTier":
        if isinstance(value, ConfidenceTier):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"unknown confidence tier: {value!r}") from None

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class MatchResult:
    tier: ConfidenceTier
    imdb_id: Optional[str] = None
    title: Optional[str] = None
    year: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.tier > ConfidenceTier.NONE and self.imdb_id is not None


NO_MATCH = MatchResult(ConfidenceTier.NONE)


def _tokens(title: str) -> set:
    return set(title.split())


def token_overlap(a: str, b: str) -> float:
    """Shared tokens as a fraction of the smaller token set."""
    ta, tb = _tokens(a), _tokens(b)
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / min(len(ta), len(tb))


def score(query_title: str, query_year: Optional[int], candidate: Candidate) -> ConfidenceTier:
    q = (query_title or "").strip().lower()
    c = (candidate.title or "").strip().lower()
    if not q or not c:
        return ConfidenceTier.LOW

    year_given = query_year is not None
    year_matches = year_given and candidate.year_number == int(query_year)

    if q == c:
        if not year_given:
            return ConfidenceTier.HIGH
        return ConfidenceTier.EXACT if year_matches else ConfidenceTier.MEDIUM

    if q in c or c in q:
        if not year_given:
            return ConfidenceTier.MEDIUM
        return ConfidenceTier.HIGH if year_matches else ConfidenceTier.LOW

    if token_overlap(q, c) >= TOKEN_OVERLAP_THRESHOLD:
        if year_given and not year_matches:
            return ConfidenceTier.LOW
        return ConfidenceTier.MEDIUM

    return ConfidenceTier.LOW


def best_match(query_title: str, query_year: Optional[int], candidates: Iterable[Candidate]) -> MatchResult:
    """Highest-tier candidate; the earliest candidate wins ties."""
    best: Optional[Candidate] = None
    best_tier = ConfidenceTier.NONE
    for candidate in candidates:
        tier = score(query_title, query_year, candidate)
        if tier > best_tier:
            best, best_tier = candidate, tier

    if best is None:
        return NO_MATCH
    return MatchResult(best_tier, best.imdb_id, best.title, best.year)
