"""
movie_merge.entities package

Store entities: provider observations (ArchiveSource, YouTubeSource) and the
CanonicalEntry that groups them.
"""

from __future__ import annotations

from .models import (
    ArchiveSource,
    CanonicalEntry,
    SourceRecord,
    YouTubeSource,
    source_from_dict,
)

__all__ = [
    "ArchiveSource",
    "CanonicalEntry",
    "SourceRecord",
    "YouTubeSource",
    "source_from_dict",
]
