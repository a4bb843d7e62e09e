"""
Identity resolution for one store entry at a time.

normalize title -> OMDB search (with year, then +/- tolerance without year)
-> confidence scoring -> canonical id decision.

Outcomes:
- Matched: best tier reached the threshold and details were fetched
- Unmatched: no confident candidate; attempts are written to the failure log
- Skipped: invalid title, or a known failure and no force-retry
- Failed: OMDB kept failing after retries; nothing is recorded so the entry
  is retried on the next run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from movie_merge.core.exceptions import ExternalServiceError
from movie_merge.entities.models import CanonicalEntry
from movie_merge.logging import get_logger
from movie_merge.matching.confidence import NO_MATCH, ConfidenceTier, MatchResult, best_match
from movie_merge.matching.failures import FailureLog, MatchAttempt
from movie_merge.normalization.title_normalizer import extract_year_and_clean_title, normalize

log = get_logger("matching.resolver")

DEFAULT_YEAR_TOLERANCE = 2


@dataclass(frozen=True)
class Matched:
    imdb_id: str
    metadata: Dict[str, Any]
    tier: ConfidenceTier
    title: Optional[str] = None
    year: Optional[str] = None
    query: Optional[str] = None


@dataclass(frozen=True)
class Unmatched:
    attempts: Tuple[MatchAttempt, ...] = ()
    best_tier: ConfidenceTier = ConfidenceTier.NONE
    reason: str = "No OMDB match found"


@dataclass(frozen=True)
class Skipped:
    reason: str
    # invalid input counts as a failure; suppression does not
    is_failure: bool = False


@dataclass(frozen=True)
class Failed:
    error: str


Outcome = Union[Matched, Unmatched, Skipped, Failed]


@dataclass
class QueryPlan:
    """Queries to try for one entry, with the year used for all of them."""

    original_title: str
    year: Optional[int]
    queries: List[str] = field(default_factory=list)


def provider_year(entry: CanonicalEntry) -> Optional[int]:
    """First year hint carried by any of the entry's sources."""
    for source in entry.sources:
        year = source.year_hint()
        if year is not None:
            return year
    return None


def ai_status(entry: CanonicalEntry, used: bool) -> Dict[str, bool]:
    ai = entry.ai if isinstance(entry.ai, dict) else {}
    return {
        "hasAITitle": bool(ai.get("title")),
        "hasAIYear": bool(ai.get("year")),
        "aiTitleUsed": used,
    }


def plan_queries(entry: CanonicalEntry, hint_year: Optional[int] = None) -> QueryPlan:
    """
    Year priority: explicit hint > provider year > title-embedded year.
    Primary query is the AI title when present, else the normalized title;
    the least-cleaned title (embedded year removed only) is the fallback.
    """
    title = entry.title or ""
    least_cleaned, title_year = extract_year_and_clean_title(title)
    year = hint_year or provider_year(entry) or title_year

    primary = entry.ai_title or normalize(least_cleaned)
    queries = [primary]
    if least_cleaned and least_cleaned.strip().lower() != primary.strip().lower():
        queries.append(least_cleaned)
    return QueryPlan(original_title=title, year=year, queries=queries)


class IdentityResolver:
    def __init__(
        self,
        client,
        failures: FailureLog,
        min_tier: ConfidenceTier = ConfidenceTier.MEDIUM,
        year_tolerance: int = DEFAULT_YEAR_TOLERANCE,
    ):
        self.client = client
        self.failures = failures
        self.min_tier = ConfidenceTier.parse(min_tier)
        self.year_tolerance = year_tolerance

    def search_with_tolerance(self, query: str, year: Optional[int]) -> MatchResult:
        candidates = self.client.search(query, year)
        if not candidates and year is not None:
            relaxed = self.client.search(query, None)
            candidates = [
                c for c in relaxed
                if c.year_number is not None and abs(c.year_number - year) <= self.year_tolerance
            ]
            log.debug("Relaxed year search for %r: %d/%d within +/-%d", query, len(candidates), len(relaxed), self.year_tolerance)
        return best_match(query, year, candidates)

    def resolve(
        self,
        key: str,
        entry: CanonicalEntry,
        hint_year: Optional[int] = None,
        force_retry: bool = False,
    ) -> Outcome:
        title = entry.titles[0] if entry.titles else None
        if not isinstance(title, str) or not title.strip():
            log.warning("Invalid title for %s: %r", key, title)
            self.failures.record(
                key,
                str(title) if title else "Unknown",
                reason="Invalid title",
                ai=ai_status(entry, used=False),
            )
            return Skipped("Invalid title", is_failure=True)

        if self.failures.has(key) and not force_retry:
            log.debug("Skipping %s: previously failed", key)
            return Skipped("Previously failed")

        plan = plan_queries(entry, hint_year)
        attempts: List[MatchAttempt] = []
        best = NO_MATCH
        details_missing = False

        try:
            for query in plan.queries:
                attempts.append(MatchAttempt(query, plan.year))
                result = self.search_with_tolerance(query, plan.year)
                if result.tier > best.tier:
                    best = result
                if result.tier < self.min_tier or not result.imdb_id:
                    continue

                details = self.client.fetch_details(result.imdb_id)
                if details is None:
                    log.info("Details missing for %s; treating %r as unmatched", result.imdb_id, query)
                    details_missing = True
                    continue

                self.failures.forget(key)
                self.failures.forget(result.imdb_id)
                log.info("Matched %s -> %s (%s, %r)", key, result.imdb_id, result.tier.label, query)
                return Matched(
                    imdb_id=result.imdb_id,
                    metadata=details,
                    tier=result.tier,
                    title=result.title,
                    year=result.year,
                    query=query,
                )
        except ExternalServiceError as exc:
            log.error("OMDB failure while resolving %s: %s", key, exc)
            return Failed(str(exc))

        if best.tier == ConfidenceTier.NONE:
            reason = "No OMDB match found"
        elif details_missing:
            reason = "OMDB details not found"
        else:
            reason = f"Best match below threshold ({best.tier.label})"
        self.failures.record(
            key,
            plan.original_title,
            attempts,
            year=plan.year,
            reason=reason,
            ai=ai_status(entry, used=entry.ai_title is not None),
        )
        log.info("No match for %s (%s)", key, reason)
        return Unmatched(tuple(attempts), best.tier, reason)
