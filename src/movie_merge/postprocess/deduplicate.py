"""
Duplicate detection over the whole store.

Two grouping passes, unioned:

- same canonical id: entries whose recorded ``imdbId`` is the same ``tt``
  id but whose store keys differ
- title similarity: greedy single-link clustering on normalized titles,
  ``1 - levenshtein(a, b) / max(len(a), len(b)) >= threshold``. Each
  unplaced entry seeds a group and pulls in every later unplaced entry
  similar to it; placed entries are never re-evaluated, so boundaries
  depend on store order.

Each group keeps its highest-scoring member (first seen on ties); the
others are folded into it and removed. Running again with a looser
threshold can merge more, never less: snapshot the store first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from movie_merge.entities.models import CanonicalEntry
from movie_merge.identity.keys import is_canonical_key
from movie_merge.logging import get_logger
from movie_merge.store.merge import merge_sources
from movie_merge.store.movie_store import MovieStore
from movie_merge.utils import utc_now_iso

log = get_logger("deduplicate")

DEFAULT_THRESHOLD = 0.85

REASON_IMDB_ID = "imdb_id"
REASON_TITLE = "title"


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------

def normalize_for_comparison(title: str) -> str:
    t = (title or "").lower()
    t = re.sub(r"[^\w\s]", "", t)
    return " ".join(t.split())


def title_similarity(a: str, b: str) -> float:
    """Edit-distance ratio in [0, 1]; identical strings (incl. two empties) give 1."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / max_len


def representative_score(entry: CanonicalEntry) -> int:
    score = 0
    if is_canonical_key(entry.imdb_id):
        score += 100
    if entry.metadata:
        score += 50
    if entry.ai_title:
        score += 25
    score += 5 * len(entry.sources)
    if entry.year:
        score += 10
    return score


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

@dataclass
class DuplicateGroup:
    keys: List[str]
    reasons: List[str] = field(default_factory=list)
    # lowest pairwise similarity that placed a member (title groups only)
    min_similarity: Optional[float] = None


@dataclass
class DedupeSummary:
    groups: int = 0
    removed_keys: List[str] = field(default_factory=list)
    kept_keys: List[str] = field(default_factory=list)
    entries_before: int = 0
    entries_after: int = 0


def find_imdb_id_groups(store: MovieStore) -> List[DuplicateGroup]:
    by_id: Dict[str, List[str]] = {}
    for key, entry in store.items():
        imdb_id = entry.imdb_id
        if imdb_id and imdb_id.startswith("tt"):
            by_id.setdefault(imdb_id, []).append(key)
    return [DuplicateGroup(keys, [REASON_IMDB_ID]) for keys in by_id.values() if len(keys) > 1]


def find_title_groups(store: MovieStore, threshold: float = DEFAULT_THRESHOLD) -> List[DuplicateGroup]:
    titled: List[Tuple[str, str]] = []
    for key, entry in store.items():
        if entry.title:
            titled.append((key, normalize_for_comparison(entry.title)))

    groups: List[DuplicateGroup] = []
    placed = set()
    for i, (seed_key, seed_title) in enumerate(titled):
        if seed_key in placed:
            continue
        placed.add(seed_key)
        group = DuplicateGroup([seed_key], [REASON_TITLE])

        for other_key, other_title in titled[i + 1:]:
            if other_key in placed:
                continue
            similarity = title_similarity(seed_title, other_title)
            if similarity >= threshold:
                group.keys.append(other_key)
                placed.add(other_key)
                if group.min_similarity is None or similarity < group.min_similarity:
                    group.min_similarity = similarity

        if len(group.keys) > 1:
            groups.append(group)
    return groups


def _union(groups: List[DuplicateGroup], order: Dict[str, int]) -> List[DuplicateGroup]:
    """Merge groups that share a key; members stay in store order."""
    merged: List[DuplicateGroup] = []
    for group in groups:
        overlapping = [g for g in merged if set(g.keys) & set(group.keys)]
        combined = DuplicateGroup(list(group.keys), list(group.reasons), group.min_similarity)
        for g in overlapping:
            merged.remove(g)
            combined.keys.extend(k for k in g.keys if k not in combined.keys)
            combined.reasons.extend(r for r in g.reasons if r not in combined.reasons)
            if g.min_similarity is not None:
                combined.min_similarity = (
                    g.min_similarity if combined.min_similarity is None
                    else min(g.min_similarity, combined.min_similarity)
                )
        combined.keys.sort(key=lambda k: order.get(k, len(order)))
        merged.append(combined)
    return merged


def find_groups(store: MovieStore, threshold: float = DEFAULT_THRESHOLD) -> List[DuplicateGroup]:
    order = {key: i for i, key in enumerate(store)}
    groups = find_imdb_id_groups(store) + find_title_groups(store, threshold)
    unioned = _union(groups, order)
    unioned.sort(key=lambda g: order.get(g.keys[0], 0))
    log.info("Found %d duplicate groups (threshold=%.2f)", len(unioned), threshold)
    return unioned


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------

def choose_representative(members: List[CanonicalEntry]) -> CanonicalEntry:
    best = members[0]
    best_score = representative_score(best)
    for entry in members[1:]:
        s = representative_score(entry)
        if s > best_score:
            best, best_score = entry, s
    return best


def merge_group(
    store: MovieStore,
    group: DuplicateGroup,
    now: Optional[str] = None,
) -> Tuple[str, CanonicalEntry, List[str]]:
    """
    Build the merged representative for ``group`` without touching the store.
    Returns ``(key, merged_entry, keys_to_remove)``.
    """
    members = [store.get(k) for k in group.keys if store.get(k) is not None]
    rep = choose_representative(members)
    losers = [m for m in members if m is not rep]

    merged = replace(rep, titles=list(rep.titles), extra=dict(rep.extra))
    sources = list(rep.sources)
    for loser in losers:
        sources = merge_sources(sources, loser.sources)
        if not merged.metadata and loser.metadata:
            merged.metadata = loser.metadata
        if merged.year is None and loser.year is not None:
            merged.year = loser.year
        if not merged.ai and loser.ai:
            merged.ai = loser.ai
        merged.verified = merged.verified or loser.verified
    merged.sources = sources
    merged.last_updated = now or utc_now_iso()

    return rep.key, merged, [m.key for m in losers]


def apply_groups(store: MovieStore, groups: List[DuplicateGroup], now: Optional[str] = None) -> DedupeSummary:
    summary = DedupeSummary(entries_before=len(store))
    for group in groups:
        if len([k for k in group.keys if k in store]) < 2:
            continue
        key, entry, removed = merge_group(store, group, now=now)
        for loser_key in removed:
            store.delete(loser_key)
        store.put(entry)
        summary.groups += 1
        summary.kept_keys.append(key)
        summary.removed_keys.extend(removed)
        log.info("Merged %s into %s (%s)", ", ".join(removed), key, "+".join(group.reasons))

    summary.entries_after = len(store)
    return summary
