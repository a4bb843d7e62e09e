"""
In-memory movie store.

The store maps entry keys (``tt0133093``, ``archive-<id>``, ``youtube-<id>``)
to ``CanonicalEntry`` objects and carries the reserved ``_schema`` block.
Any other ``_``-prefixed top-level keys in the JSON document are kept
verbatim in ``reserved``. Components mutate the store only through
``get`` / ``put`` / ``delete`` / iteration.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterator, List, Optional, Tuple

from movie_merge.core.exceptions import StoreError
from movie_merge.entities.models import CanonicalEntry
from movie_merge.identity.keys import is_canonical_key, is_temporary_key

SCHEMA_KEY = "_schema"
SCHEMA_VERSION = "1.0.0"
SCHEMA_DESCRIPTION = (
    "Centralized movie database indexed by imdbId. Temporary IDs use format "
    '"archive-{identifier}" or "youtube-{videoId}" until OMDB matching succeeds.'
)


def fresh_schema(now: Optional[str] = None) -> Dict[str, Any]:
    return {
        "version": SCHEMA_VERSION,
        "description": SCHEMA_DESCRIPTION,
        "lastUpdated": now,
    }


class MovieStore:
    def __init__(
        self,
        entries: Optional[Dict[str, CanonicalEntry]] = None,
        schema: Optional[Dict[str, Any]] = None,
        reserved: Optional[Dict[str, Any]] = None,
    ):
        self._entries: Dict[str, CanonicalEntry] = dict(entries or {})
        self.schema: Dict[str, Any] = dict(schema) if schema else fresh_schema()
        self.reserved: Dict[str, Any] = dict(reserved or {})

    # ------------------------------------------------------------------
    # Mapping interface
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[CanonicalEntry]:
        return self._entries.get(key)

    def put(self, entry: CanonicalEntry) -> CanonicalEntry:
        """Insert or replace the entry stored under ``entry.key``."""
        self._entries[entry.key] = entry
        return entry

    def delete(self, key: str) -> Optional[CanonicalEntry]:
        return self._entries.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def values(self) -> List[CanonicalEntry]:
        return list(self._entries.values())

    def items(self) -> List[Tuple[str, CanonicalEntry]]:
        return list(self._entries.items())

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"MovieStore(entries={len(self._entries)})"

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, Any]:
        by_type: Counter = Counter()
        out = {
            "entries": len(self._entries),
            "canonical": 0,
            "temporary": 0,
            "other_keys": 0,
            "with_metadata": 0,
            "verified": 0,
            "sources": 0,
        }
        for key, entry in self._entries.items():
            if is_canonical_key(key):
                out["canonical"] += 1
            elif is_temporary_key(key):
                out["temporary"] += 1
            else:
                out["other_keys"] += 1
            if entry.metadata:
                out["with_metadata"] += 1
            if entry.verified:
                out["verified"] += 1
            out["sources"] += len(entry.sources)
            for source in entry.sources:
                by_type[source.kind] += 1
        out["sources_by_type"] = dict(sorted(by_type.items()))
        return out

    # ------------------------------------------------------------------
    # JSON document codec
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {SCHEMA_KEY: dict(self.schema)}
        doc.update(self.reserved)
        for key, entry in self._entries.items():
            doc[key] = entry.to_dict()
        return doc

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "MovieStore":
        if not isinstance(doc, dict):
            raise StoreError(f"store document must be a JSON object, got {type(doc).__name__}")

        schema = doc.get(SCHEMA_KEY)
        if schema is not None and not isinstance(schema, dict):
            raise StoreError("_schema block must be an object")

        entries: Dict[str, CanonicalEntry] = {}
        reserved: Dict[str, Any] = {}
        for key, value in doc.items():
            if key == SCHEMA_KEY:
                continue
            if key.startswith("_"):
                reserved[key] = value
                continue
            entries[key] = CanonicalEntry.from_dict(key, value)

        return cls(entries, schema=schema or fresh_schema(), reserved=reserved)
