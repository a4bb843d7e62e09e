"""
Failure-suppression log (``data/failed-omdb.json``).

A JSON list of records, one per store key that could not be matched:

    {identifier, originalTitle, year, attempts: [{query, year}],
     failedAt, lastAttempt, reason, ai?}

The resolver consults it to skip known-failing keys, and keeps it in step
with key migrations so no entry is left keyed by an identifier that no
longer exists.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from movie_merge.core.exceptions import StoreError
from movie_merge.logging import get_logger
from movie_merge.utils import utc_now_iso, write_json_atomic

log = get_logger("matching.failures")


@dataclass(frozen=True)
class MatchAttempt:
    query: str
    year: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"query": self.query}
        if self.year is not None:
            out["year"] = self.year
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchAttempt":
        return cls(query=str(data.get("query", "")), year=data.get("year"))


@dataclass
class FailureRecord:
    identifier: str
    original_title: str
    year: Optional[int] = None
    attempts: List[MatchAttempt] = field(default_factory=list)
    failed_at: Optional[str] = None
    last_attempt: Optional[str] = None
    reason: Optional[str] = None
    ai: Optional[Dict[str, Any]] = None

    def merge_attempts(self, attempts: Iterable[MatchAttempt]) -> None:
        for attempt in attempts:
            if attempt not in self.attempts:
                self.attempts.append(attempt)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "identifier": self.identifier,
            "originalTitle": self.original_title,
        }
        if self.year is not None:
            out["year"] = self.year
        out["attempts"] = [a.to_dict() for a in self.attempts]
        out["failedAt"] = self.failed_at
        out["lastAttempt"] = self.last_attempt
        if self.reason is not None:
            out["reason"] = self.reason
        if self.ai is not None:
            out["ai"] = self.ai
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FailureRecord":
        return cls(
            identifier=str(data["identifier"]),
            original_title=str(data.get("originalTitle", "")),
            year=data.get("year"),
            attempts=[MatchAttempt.from_dict(a) for a in data.get("attempts") or [] if isinstance(a, dict)],
            failed_at=data.get("failedAt"),
            last_attempt=data.get("lastAttempt"),
            reason=data.get("reason"),
            ai=data.get("ai"),
        )


class FailureLog:
    def __init__(self, path: Optional[Path | str] = None):
        self.path = Path(path) if path else None
        self._records: Dict[str, FailureRecord] = {}
        self.dirty = False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | str) -> "FailureLog":
        failures = cls(path)
        p = Path(path)
        if not p.exists():
            return failures

        try:
            with open(p, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Cannot read failure log {p}: {exc}") from exc

        if not isinstance(data, list):
            raise StoreError(f"Failure log {p} must be a JSON list")

        for row in data:
            if isinstance(row, dict) and row.get("identifier"):
                record = FailureRecord.from_dict(row)
                failures._records[record.identifier] = record
        log.debug("Loaded %d failure records from %s", len(failures._records), p)
        return failures

    def save(self) -> None:
        if self.path is None:
            return
        try:
            write_json_atomic(self.path, [r.to_dict() for r in self._records.values()])
        except OSError as exc:
            raise StoreError(f"Cannot write failure log {self.path}: {exc}") from exc
        self.dirty = False

    # ------------------------------------------------------------------
    # Queries / mutations
    # ------------------------------------------------------------------

    def has(self, identifier: str) -> bool:
        return identifier in self._records

    def get(self, identifier: str) -> Optional[FailureRecord]:
        return self._records.get(identifier)

    def entries(self) -> List[FailureRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def record(
        self,
        identifier: str,
        original_title: str,
        attempts: Iterable[MatchAttempt] = (),
        *,
        year: Optional[int] = None,
        reason: Optional[str] = None,
        ai: Optional[Dict[str, Any]] = None,
        now: Optional[str] = None,
    ) -> FailureRecord:
        """Add a failure, or refresh an existing one and merge its attempts."""
        now = now or utc_now_iso()
        existing = self._records.get(identifier)
        if existing is not None:
            existing.last_attempt = now
            existing.reason = reason
            if ai is not None:
                existing.ai = ai
            existing.merge_attempts(attempts)
            record = existing
        else:
            record = FailureRecord(
                identifier=identifier,
                original_title=original_title,
                year=year,
                failed_at=now,
                last_attempt=now,
                reason=reason,
                ai=ai,
            )
            record.merge_attempts(attempts)
            self._records[identifier] = record
        self.dirty = True
        return record

    def forget(self, identifier: str) -> bool:
        removed = self._records.pop(identifier, None) is not None
        if removed:
            self.dirty = True
        return removed

    def rename(self, old: str, new: str) -> None:
        """Re-key a record after a store key migration."""
        record = self._records.pop(old, None)
        if record is None:
            return
        record.identifier = new
        existing = self._records.get(new)
        if existing is not None:
            existing.merge_attempts(record.attempts)
        else:
            self._records[new] = record
        self.dirty = True

    def clear(self) -> int:
        count = len(self._records)
        self._records.clear()
        self.dirty = True
        return count
