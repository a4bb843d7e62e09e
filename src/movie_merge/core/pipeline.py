"""
Batch orchestration.

- EnrichmentPipeline: resolve every temporary-keyed entry against OMDB and
  migrate matches to their canonical key
- IngestPipeline: fold freshly scraped entries into the store

Both checkpoint the store every ``pipeline.checkpoint_every`` records so an
interrupted run loses at most one window of work. Per-record problems become
counters in the summary; store and configuration errors abort the run.
No matching or merge logic lives here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from movie_merge.core.context import RunContext
from movie_merge.core.exceptions import MalformedRecordError, MovieMergeError, PipelineError
from movie_merge.entities.models import CanonicalEntry
from movie_merge.identity.keys import is_temporary_key
from movie_merge.matching.failures import FailureLog
from movie_merge.matching.resolver import Failed, IdentityResolver, Matched, Skipped, Unmatched
from movie_merge.store.merge import apply_match, find_key_for_source, upsert
from movie_merge.store.movie_store import MovieStore
from movie_merge.store.persistence import StoreRepository

DEFAULT_CHECKPOINT_EVERY = 10
DEFAULT_FAILURE_CAP = 20


@dataclass
class BatchSummary:
    processed: int = 0
    matched: int = 0
    failed: int = 0
    skipped: int = 0
    added: int = 0
    merged: int = 0
    checkpoints: int = 0
    failures: List[Dict[str, str]] = field(default_factory=list)
    failure_cap: int = DEFAULT_FAILURE_CAP

    def note_failure(self, key: str, reason: str) -> None:
        self.failed += 1
        if len(self.failures) < self.failure_cap:
            self.failures.append({"key": key, "reason": reason})

    def as_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "matched": self.matched,
            "failed": self.failed,
            "skipped": self.skipped,
            "added": self.added,
            "merged": self.merged,
            "checkpoints": self.checkpoints,
        }


class _BatchPipeline:
    def __init__(self, context: RunContext, repository: StoreRepository):
        self.ctx = context
        self.log = context.logger
        self.repository = repository
        self.checkpoint_every = max(1, int(context.setting("pipeline", "checkpoint_every", DEFAULT_CHECKPOINT_EVERY)))
        self.failure_cap = int(context.setting("pipeline", "failure_report_cap", DEFAULT_FAILURE_CAP))

    def _new_summary(self) -> BatchSummary:
        return BatchSummary(failure_cap=self.failure_cap)

    def _persist(self, store: MovieStore, dry_run: bool) -> None:
        if dry_run:
            return
        self.repository.save(store)

    def _maybe_checkpoint(self, store: MovieStore, summary: BatchSummary, dry_run: bool) -> None:
        if summary.processed % self.checkpoint_every:
            return
        if dry_run:
            self.log.debug("Dry run: skipping checkpoint at %d", summary.processed)
            return
        self._persist(store, dry_run)
        summary.checkpoints += 1
        self.log.info("Checkpoint after %d records", summary.processed)

    def _guarded(self, name: str, fn, *args):
        try:
            return fn(*args)
        except MovieMergeError:
            raise
        except Exception as exc:
            self.log.exception("%s pipeline failed", name)
            raise PipelineError(str(exc)) from exc


class EnrichmentPipeline(_BatchPipeline):
    def __init__(
        self,
        context: RunContext,
        repository: StoreRepository,
        failures: FailureLog,
        resolver: IdentityResolver,
    ):
        super().__init__(context, repository)
        self.failures = failures
        self.resolver = resolver

    def _persist(self, store: MovieStore, dry_run: bool) -> None:
        if dry_run:
            return
        self.repository.save(store)
        if self.failures.dirty:
            self.failures.save()

    def pending_keys(self, store: MovieStore, limit: Optional[int] = None) -> List[str]:
        keys = [k for k in store.keys() if is_temporary_key(k)]
        return keys[:limit] if limit is not None else keys

    def run(
        self,
        limit: Optional[int] = None,
        dry_run: Optional[bool] = None,
        force_retry: bool = False,
        store: Optional[MovieStore] = None,
    ) -> Tuple[MovieStore, BatchSummary]:
        return self._guarded("Enrichment", self._run, limit, dry_run, force_retry, store)

    def _run(self, limit, dry_run, force_retry, store):
        dry_run = self.ctx.dry_run if dry_run is None else dry_run
        store = store if store is not None else self.repository.load()
        summary = self._new_summary()

        keys = self.pending_keys(store, limit)
        self.log.info("Enrichment starting: %d pending entries%s", len(keys), " (dry run)" if dry_run else "")

        for key in keys:
            entry = store.get(key)
            if entry is None:
                # absorbed by an earlier migration in this run
                continue

            try:
                outcome = self.resolver.resolve(key, entry, force_retry=force_retry)
                if isinstance(outcome, Matched):
                    apply_match(store, key, outcome)
                    summary.matched += 1
                elif isinstance(outcome, Unmatched):
                    summary.note_failure(key, outcome.reason)
                elif isinstance(outcome, Skipped):
                    if outcome.is_failure:
                        summary.note_failure(key, outcome.reason)
                    else:
                        summary.skipped += 1
                elif isinstance(outcome, Failed):
                    summary.note_failure(key, outcome.error)
            except MalformedRecordError as exc:
                self.log.error("Malformed record %s: %s", key, exc)
                summary.note_failure(key, str(exc))

            summary.processed += 1
            self._maybe_checkpoint(store, summary, dry_run)

        self._persist(store, dry_run)
        self.ctx.stats["enrich"] = summary.as_dict()
        self.log.info(
            "Enrichment complete: processed=%d matched=%d failed=%d skipped=%d",
            summary.processed, summary.matched, summary.failed, summary.skipped,
        )
        return store, summary


class IngestPipeline(_BatchPipeline):
    def route(self, store: MovieStore, entry: CanonicalEntry) -> str:
        """Key that should receive ``entry``: the holder of its source, else its own key."""
        if not entry.sources:
            raise MalformedRecordError(f"{entry.key}: scraped entry has no sources")
        kind, source_id = entry.sources[0].identity
        return find_key_for_source(store, kind, source_id) or entry.key

    def run(
        self,
        entries: Iterable[CanonicalEntry],
        dry_run: Optional[bool] = None,
        store: Optional[MovieStore] = None,
    ) -> Tuple[MovieStore, BatchSummary]:
        return self._guarded("Ingest", self._run, entries, dry_run, store)

    def _run(self, entries, dry_run, store):
        dry_run = self.ctx.dry_run if dry_run is None else dry_run
        store = store if store is not None else self.repository.load()
        summary = self._new_summary()
        self.log.info("Ingest starting%s", " (dry run)" if dry_run else "")

        for entry in entries:
            try:
                key = self.route(store, entry)
            except MalformedRecordError as exc:
                self.log.error("%s", exc)
                summary.note_failure(entry.key, str(exc))
                summary.processed += 1
                continue

            if key in store:
                summary.merged += 1
            else:
                summary.added += 1
            upsert(store, key, entry)

            summary.processed += 1
            self._maybe_checkpoint(store, summary, dry_run)

        self._persist(store, dry_run)
        self.ctx.stats["ingest"] = summary.as_dict()
        self.log.info(
            "Ingest complete: processed=%d added=%d merged=%d failed=%d",
            summary.processed, summary.added, summary.merged, summary.failed,
        )
        return store, summary
