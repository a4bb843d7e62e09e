"""
Whole-document persistence for the movie store.

``load`` never fails on a missing file (a fresh store with a stamped schema
is returned) but does fail loudly with ``StoreError`` on unreadable or
invalid JSON. ``save`` stamps ``_schema.lastUpdated`` and replaces the file
atomically. There is no locking: one writer at a time.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from movie_merge.core.exceptions import StoreError
from movie_merge.logging import get_logger
from movie_merge.store.movie_store import MovieStore, fresh_schema
from movie_merge.utils import utc_now_iso, write_json_atomic

log = get_logger("store.persistence")


class StoreRepository:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> MovieStore:
        if not self.path.exists():
            log.info("Store %s does not exist yet; starting empty", self.path)
            return MovieStore(schema=fresh_schema(utc_now_iso()))

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Store {self.path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise StoreError(f"Cannot read store {self.path}: {exc}") from exc

        store = MovieStore.from_dict(doc)
        log.info("Loaded %d entries from %s", len(store), self.path)
        return store

    def save(self, store: MovieStore, now: Optional[str] = None) -> None:
        store.schema.setdefault("version", fresh_schema()["version"])
        store.schema.setdefault("description", fresh_schema()["description"])
        store.schema["lastUpdated"] = now or utc_now_iso()

        try:
            write_json_atomic(self.path, store.to_dict())
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"Cannot write store {self.path}: {exc}") from exc

        log.info("Saved %d entries to %s", len(store), self.path)
