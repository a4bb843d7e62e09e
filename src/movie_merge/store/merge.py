"""
Merge engine: every mutation of the in-memory store goes through here.

- upsert: insert or merge an incoming entry under a key
- migrate_key: temporary -> canonical re-keying (merging into an occupant)
- revert_to_temporary: canonical -> temporary, collision-safe
- move_entry: curator re-keying with the key rules enforced
- remove_source / annotate_source: curator edits

Merge rules:
- sources are identified by (type, id); a repeat observation is merged
  field-wise (last non-empty value wins), never duplicated
- metadata is never overwritten by an absent value
- titles are unioned (existing first) unless the existing entry is already
  resolved and the incoming one is not, in which case title and year stay
- ``verified`` is sticky

Functions mutate the store in place and return it; nothing here touches disk.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from movie_merge.core.exceptions import EntryNotFoundError, MalformedRecordError
from movie_merge.entities.models import CanonicalEntry, SourceRecord, is_empty
from movie_merge.identity.keys import (
    decode_temporary_key,
    is_canonical_key,
    is_temporary_key,
    next_free_key,
    temporary_key_for,
)
from movie_merge.logging import get_logger
from movie_merge.store.movie_store import MovieStore
from movie_merge.utils import utc_now_iso

log = get_logger("store.merge")


# ---------------------------------------------------------------------------
# Source-level merging
# ---------------------------------------------------------------------------

def merge_source(existing: SourceRecord, incoming: SourceRecord) -> SourceRecord:
    """Field-wise merge of two observations of the same source."""
    if existing.identity != incoming.identity:
        raise ValueError(f"cannot merge {existing.identity} with {incoming.identity}")

    updates: Dict[str, Any] = {}
    for name in existing.data_fields():
        value = getattr(incoming, name)
        if not is_empty(value):
            updates[name] = value

    extra = dict(existing.extra)
    extra.update({k: v for k, v in incoming.extra.items() if not is_empty(v)})
    updates["extra"] = extra
    return replace(existing, **updates)


def merge_sources(existing: List[SourceRecord], incoming: List[SourceRecord]) -> List[SourceRecord]:
    """Union of two source lists keyed by (type, id), existing order first."""
    merged: List[SourceRecord] = []
    index: Dict[Tuple[str, str], int] = {}
    for source in list(existing) + list(incoming):
        pos = index.get(source.identity)
        if pos is None:
            index[source.identity] = len(merged)
            merged.append(source)
        else:
            merged[pos] = merge_source(merged[pos], source)
    return merged


def _merge_titles(existing: List[Any], incoming: List[Any]) -> List[Any]:
    titles = list(existing)
    seen = {t.strip().lower() for t in titles if isinstance(t, str)}
    for t in incoming:
        if not isinstance(t, str) or not t.strip():
            continue
        if t.strip().lower() not in seen:
            seen.add(t.strip().lower())
            titles.append(t)
    return titles


def merge_entries(existing: CanonicalEntry, incoming: CanonicalEntry) -> CanonicalEntry:
    """Fold ``incoming`` into ``existing`` (mutated and returned)."""
    existing.sources = merge_sources(existing.sources, incoming.sources)

    resolved_only_here = bool(existing.metadata) and not incoming.metadata
    if not resolved_only_here:
        existing.titles = _merge_titles(existing.titles, incoming.titles)
        if incoming.year is not None:
            existing.year = incoming.year

    if incoming.metadata:
        existing.metadata = incoming.metadata
    if incoming.ai:
        existing.ai = incoming.ai
    existing.verified = existing.verified or incoming.verified

    for k, v in incoming.extra.items():
        if not is_empty(v):
            existing.extra[k] = v
    return existing


# ---------------------------------------------------------------------------
# Store-level operations
# ---------------------------------------------------------------------------

def upsert(store: MovieStore, key: str, incoming: CanonicalEntry, now: Optional[str] = None) -> MovieStore:
    """Insert ``incoming`` under ``key`` or merge it into the entry already there."""
    now = now or utc_now_iso()
    existing = store.get(key)

    if existing is None:
        entry = replace(
            incoming,
            key=key,
            recorded_id=None,
            sources=merge_sources([], incoming.sources),
            titles=list(incoming.titles),
            extra=dict(incoming.extra),
        )
        entry.last_updated = now
        store.put(entry)
        log.debug("Added %s", key)
    else:
        merge_entries(existing, incoming)
        existing.last_updated = now
        log.debug("Merged into %s (%d sources)", key, len(existing.sources))
    return store


def migrate_key(store: MovieStore, old_key: str, new_key: str, now: Optional[str] = None) -> MovieStore:
    """
    Move the entry at ``old_key`` to ``new_key``. An occupant at ``new_key``
    absorbs it (sources unioned) instead of being overwritten.
    """
    if old_key == new_key:
        return store

    entry = store.get(old_key)
    if entry is None:
        log.warning("Cannot migrate: %s not found", old_key)
        return store

    occupied = new_key in store
    store.delete(old_key)
    entry.key = new_key
    entry.recorded_id = None
    upsert(store, new_key, entry, now=now)
    log.info("Migrated %s -> %s%s", old_key, new_key, " (merged)" if occupied else "")
    return store


def _relocate_to_temporary(
    store: MovieStore,
    entry: CanonicalEntry,
    now: Optional[str],
    anchor: Optional[SourceRecord] = None,
) -> str:
    """
    Move ``entry`` to the temporary key of ``anchor`` (its first source by
    default). An occupant that already holds that source absorbs the entry;
    an unrelated occupant forces a ``-1``, ``-2`` ... suffix.
    """
    if not entry.sources:
        raise MalformedRecordError(f"{entry.key}: cannot derive a temporary key without sources")

    anchor = anchor or entry.sources[0]
    base = temporary_key_for(anchor)

    def taken(candidate: str) -> bool:
        if candidate == entry.key:
            return False
        occupant = store.get(candidate)
        return occupant is not None and not occupant.has_source(*anchor.identity)

    target = next_free_key(base, taken)
    migrate_key(store, entry.key, target, now=now)
    return target


def revert_to_temporary(store: MovieStore, key: str, now: Optional[str] = None) -> Tuple[MovieStore, str]:
    """Undo a canonical match: drop metadata and verification, re-key temporarily."""
    entry = store.get(key)
    if entry is None:
        raise EntryNotFoundError(f"Movie {key} not found")

    entry.metadata = None
    entry.verified = False
    entry.last_updated = now or utc_now_iso()

    if is_temporary_key(key):
        kind, source_id = decode_temporary_key(key, entry)
        if entry.has_source(kind, source_id):
            return store, key

    new_key = _relocate_to_temporary(store, entry, now)
    return store, new_key


def remove_source(
    store: MovieStore,
    key: str,
    source_id: str,
    kind: Optional[str] = None,
    now: Optional[str] = None,
) -> Tuple[MovieStore, Optional[str]]:
    """
    Remove one source. The entry goes with its last source; a temporary key
    whose anchoring source was removed is re-derived from the first
    remaining source. Returns the entry's final key (None when deleted).
    """
    entry = store.get(key)
    if entry is None:
        raise EntryNotFoundError(f"Movie {key} not found")

    anchor = decode_temporary_key(key, entry) if is_temporary_key(key) else None

    remaining = [s for s in entry.sources if not (s.id == source_id and (kind is None or s.kind == kind))]
    if len(remaining) == len(entry.sources):
        raise EntryNotFoundError(f"Source {source_id} not found in movie {key}")

    if not remaining:
        store.delete(key)
        log.info("Removed last source of %s; entry deleted", key)
        return store, None

    entry.sources = remaining
    entry.last_updated = now or utc_now_iso()

    if anchor is not None and not entry.has_source(*anchor):
        return store, _relocate_to_temporary(store, entry, now)
    return store, key


def annotate_source(
    store: MovieStore,
    key: str,
    source_id: str,
    *,
    label: Optional[str] = None,
    quality: Optional[str] = None,
    now: Optional[str] = None,
) -> SourceRecord:
    """Set the curator annotations on one source; empty strings clear them."""
    entry = store.get(key)
    if entry is None:
        raise EntryNotFoundError(f"Movie {key} not found")

    for i, source in enumerate(entry.sources):
        if source.id != source_id:
            continue
        updates: Dict[str, Any] = {}
        if label is not None:
            updates["label"] = label or None
        if quality is not None:
            updates["quality"] = quality or None
        entry.sources[i] = replace(source, **updates)
        entry.last_updated = now or utc_now_iso()
        return entry.sources[i]

    raise EntryNotFoundError(f"Source {source_id} not found in movie {key}")


def find_key_for_source(store: MovieStore, kind: str, source_id: str) -> Optional[str]:
    """Key of the entry already holding source ``(kind, source_id)``, if any."""
    for key in store:
        entry = store.get(key)
        if entry is not None and entry.has_source(kind, source_id):
            return key
    return None


def _parse_year(value: Any) -> Optional[int]:
    if value is None:
        return None
    digits = str(value).strip()[:4]
    return int(digits) if digits.isdigit() else None


def apply_match(store: MovieStore, key: str, matched, now: Optional[str] = None) -> str:
    """
    Stamp a resolver match (title, year, metadata) onto the entry and move it
    to the canonical key. Returns the new key.
    """
    entry = store.get(key)
    if entry is None:
        raise EntryNotFoundError(f"Movie {key} not found")

    _stamp(entry, matched.title, matched.year, matched.metadata, now)
    migrate_key(store, key, matched.imdb_id, now=now)
    return matched.imdb_id


def _stamp(entry: CanonicalEntry, title: Optional[str], year: Any, metadata: Optional[Dict[str, Any]], now: Optional[str]) -> None:
    if title:
        entry.titles = [title]
    parsed = _parse_year(year)
    if parsed is not None:
        entry.year = parsed
    if metadata:
        entry.metadata = metadata
    entry.last_updated = now or utc_now_iso()


def move_entry(
    store: MovieStore,
    old_key: str,
    new_key: str,
    metadata: Optional[Dict[str, Any]] = None,
    now: Optional[str] = None,
) -> str:
    """
    Curator re-keying. Returns the key the entry ends up under.

    A canonical target needs OMDB ``metadata`` for that id, unless an
    occupant already carries it. A temporary target must name one of the
    entry's own sources; the entry loses any match and lands on that
    source's key, suffixed when an unrelated entry sits there.
    """
    entry = store.get(old_key)
    if entry is None:
        raise EntryNotFoundError(f"Movie {old_key} not found")
    if old_key == new_key:
        return old_key

    if is_canonical_key(new_key):
        if metadata:
            _stamp(entry, metadata.get("Title"), metadata.get("Year"), metadata, now)
        else:
            occupant = store.get(new_key)
            if occupant is None or not occupant.metadata:
                raise MalformedRecordError(f"{new_key}: no OMDB metadata for this id")
            # the occupant's match wins
            entry.metadata = None
        migrate_key(store, old_key, new_key, now=now)
        return new_key

    if not is_temporary_key(new_key):
        raise MalformedRecordError(f"Invalid target key: {new_key}")

    kind, source_id = decode_temporary_key(new_key, entry)
    anchor = next((s for s in entry.sources if s.identity == (kind, source_id)), None)
    if anchor is None:
        raise MalformedRecordError(f"{new_key} does not name a source of {old_key}")

    entry.metadata = None
    entry.verified = False
    entry.last_updated = now or utc_now_iso()
    return _relocate_to_temporary(store, entry, now, anchor=anchor)
