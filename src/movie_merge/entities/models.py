"""
Entity model for the movie store.

A store entry (``CanonicalEntry``) groups every provider observation
(``ArchiveSource`` / ``YouTubeSource``) of one real-world movie. Both are
plain dataclasses with explicit ``to_dict`` / ``from_dict`` codecs mirroring
the camelCase JSON layout of ``data/movies.json``. Unknown JSON fields are
carried in ``extra`` so a load/save cycle never drops data.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, Union

from movie_merge.core.exceptions import MalformedRecordError, StoreError

YEAR_TOKEN_RE = re.compile(r"\b(19|20)\d{2}\b")


def is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

@dataclass
class SourceBase:
    """Fields shared by every provider observation."""

    # (attribute, json key) pairs, extended by subclasses
    COMMON_FIELDS: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("id", "id"),
        ("url", "url"),
        ("title", "title"),
        ("description", "description"),
        ("label", "label"),
        ("quality", "quality"),
        ("added_at", "addedAt"),
    )
    EXTRA_FIELDS: ClassVar[Tuple[Tuple[str, str], ...]] = ()
    kind: ClassVar[str] = ""
    key_prefix: ClassVar[str] = ""

    id: str
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    label: Optional[str] = None
    quality: Optional[str] = None
    added_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def field_map(cls) -> Tuple[Tuple[str, str], ...]:
        return cls.COMMON_FIELDS + cls.EXTRA_FIELDS

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.kind, self.id)

    def year_hint(self) -> Optional[int]:
        return None

    def data_fields(self) -> List[str]:
        """Attribute names that take part in field-wise merging."""
        return [f.name for f in fields(self) if f.name != "extra"]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.kind}
        for attr, key in self.field_map():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise MalformedRecordError(f"source must be an object, got {type(data).__name__}")
        source_id = data.get("id")
        if source_id is None or str(source_id) == "":
            raise MalformedRecordError("source is missing its provider id")

        known = {"type"}
        kwargs: Dict[str, Any] = {}
        for attr, key in cls.field_map():
            known.add(key)
            if key in data:
                kwargs[attr] = data[key]
        kwargs["id"] = str(source_id)
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)


@dataclass
class ArchiveSource(SourceBase):
    EXTRA_FIELDS: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("collection", "collection"),
        ("downloads", "downloads"),
        ("thumbnail", "thumbnail"),
        ("duration", "duration"),
        ("release_date", "releaseDate"),
        ("language", "language"),
    )
    kind: ClassVar[str] = "archive.org"
    key_prefix: ClassVar[str] = "archive"

    collection: Optional[str] = None
    downloads: Optional[int] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = None
    release_date: Optional[str] = None
    language: Optional[str] = None

    def year_hint(self) -> Optional[int]:
        if not self.release_date:
            return None
        m = YEAR_TOKEN_RE.search(str(self.release_date))
        return int(m.group(0)) if m else None


@dataclass
class YouTubeSource(SourceBase):
    EXTRA_FIELDS: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("channel_name", "channelName"),
        ("channel_id", "channelId"),
        ("release_year", "releaseYear"),
        ("language", "language"),
        ("duration", "duration"),
        ("published_at", "publishedAt"),
        ("view_count", "viewCount"),
        ("thumbnail", "thumbnail"),
    )
    kind: ClassVar[str] = "youtube"
    key_prefix: ClassVar[str] = "youtube"

    channel_name: Optional[str] = None
    channel_id: Optional[str] = None
    release_year: Optional[int] = None
    language: Optional[str] = None
    duration: Optional[int] = None
    published_at: Optional[str] = None
    view_count: Optional[int] = None
    thumbnail: Optional[str] = None

    def year_hint(self) -> Optional[int]:
        if self.release_year in (None, ""):
            return None
        try:
            return int(self.release_year)
        except (TypeError, ValueError):
            return None


SourceRecord = Union[ArchiveSource, YouTubeSource]

SOURCE_TYPES: Dict[str, Type[SourceBase]] = {
    ArchiveSource.kind: ArchiveSource,
    YouTubeSource.kind: YouTubeSource,
}

# temporary-key prefix -> source class
KEY_PREFIXES: Dict[str, Type[SourceBase]] = {
    ArchiveSource.key_prefix: ArchiveSource,
    YouTubeSource.key_prefix: YouTubeSource,
}


def source_from_dict(data: Dict[str, Any]) -> SourceRecord:
    """Decode one JSON source, dispatching on its ``type`` field."""
    kind = data.get("type") if isinstance(data, dict) else None
    cls = SOURCE_TYPES.get(kind)
    if cls is None:
        raise MalformedRecordError(f"unknown source type: {kind!r}")
    return cls.from_dict(data)


# ---------------------------------------------------------------------------
# Canonical entry
# ---------------------------------------------------------------------------

@dataclass
class CanonicalEntry:
    key: str
    titles: List[Any] = field(default_factory=list)
    year: Optional[int] = None
    sources: List[SourceRecord] = field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None
    verified: bool = False
    ai: Optional[Dict[str, Any]] = None
    last_updated: Optional[str] = None
    # JSON "imdbId" field when it disagrees with the store key
    recorded_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> Optional[str]:
        """Primary display title, or None when no usable title exists."""
        for t in self.titles:
            if isinstance(t, str) and t.strip():
                return t
        return None

    @property
    def ai_title(self) -> Optional[str]:
        if isinstance(self.ai, dict):
            value = self.ai.get("title")
            if isinstance(value, str) and value.strip():
                return value
        return None

    @property
    def imdb_id(self) -> str:
        """The entry's own canonical id field (may differ from its key)."""
        return self.recorded_id or self.key

    def has_source(self, kind: str, source_id: str) -> bool:
        return any(s.identity == (kind, source_id) for s in self.sources)

    def find_source(self, kind: str, source_id: str) -> Optional[SourceRecord]:
        for s in self.sources:
            if s.identity == (kind, source_id):
                return s
        return None

    # ------------------------------------------------------------------
    # JSON codec
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"imdbId": self.imdb_id}
        if len(self.titles) == 1:
            out["title"] = self.titles[0]
        elif self.titles:
            out["title"] = list(self.titles)
        if self.year is not None:
            out["year"] = self.year
        out["sources"] = [s.to_dict() for s in self.sources]
        if self.metadata is not None:
            out["metadata"] = self.metadata
        if self.ai is not None:
            out["ai"] = self.ai
        if self.verified:
            out["verified"] = True
        if self.last_updated:
            out["lastUpdated"] = self.last_updated
        for k, v in self.extra.items():
            out.setdefault(k, v)
        return out

    @classmethod
    def from_dict(cls, key: str, data: Dict[str, Any]) -> "CanonicalEntry":
        if not isinstance(data, dict):
            raise StoreError(f"entry {key!r} is not an object")

        raw_title = data.get("title")
        if raw_title is None:
            titles: List[Any] = []
        elif isinstance(raw_title, list):
            titles = list(raw_title)
        else:
            # non-string titles are kept so the resolver can report them
            titles = [raw_title]

        try:
            sources = [source_from_dict(s) for s in data.get("sources") or []]
        except MalformedRecordError as exc:
            raise StoreError(f"entry {key!r}: {exc}") from exc

        known = {"imdbId", "title", "year", "sources", "metadata", "ai", "verified", "lastUpdated"}
        extra = {k: v for k, v in data.items() if k not in known}
        imdb_field = data.get("imdbId")
        recorded_id = imdb_field if isinstance(imdb_field, str) and imdb_field != key else None

        year = data.get("year")
        return cls(
            key=key,
            titles=titles,
            year=year if isinstance(year, int) else _coerce_year(year),
            sources=sources,
            metadata=data.get("metadata") or None,
            verified=bool(data.get("verified", False)),
            ai=data.get("ai") or None,
            last_updated=data.get("lastUpdated"),
            recorded_id=recorded_id,
            extra=extra,
        )


def _coerce_year(value: Any) -> Optional[int]:
    if is_empty(value):
        return None
    try:
        return int(str(value)[:4])
    except ValueError:
        return None


def new_entry(key: str, title: Any, sources: List[SourceRecord], year: Optional[int] = None) -> CanonicalEntry:
    """Convenience constructor used by scrapers and tests."""
    return CanonicalEntry(
        key=key,
        titles=[title] if title is not None else [],
        year=year,
        sources=list(sources),
    )
