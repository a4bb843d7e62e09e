# src/movie_merge/identity/keys.py
from __future__ import annotations

import re
from typing import Callable, Optional, Tuple

from movie_merge.entities.models import KEY_PREFIXES, CanonicalEntry, SourceRecord

CANONICAL_KEY_RE = re.compile(r"^tt\d{7,}$")
SUFFIX_RE = re.compile(r"^(?P<base>.+)-(?P<n>\d+)$")


# -----------------------------
# Classification
# -----------------------------

def is_canonical_key(key: Optional[str]) -> bool:
    return bool(key) and bool(CANONICAL_KEY_RE.match(key))


def is_temporary_key(key: Optional[str]) -> bool:
    return _split_prefix(key) is not None


def _split_prefix(key: Optional[str]) -> Optional[Tuple[str, str]]:
    if not key:
        return None
    prefix, sep, rest = key.partition("-")
    if not sep or not rest or prefix not in KEY_PREFIXES:
        return None
    return prefix, rest


# -----------------------------
# Encoding / decoding
# -----------------------------

def temporary_key_for(source: SourceRecord) -> str:
    """Deterministic provisional key for a single source: ``archive-<id>``."""
    return f"{source.key_prefix}-{source.id}"


def decode_temporary_key(key: str, entry: Optional[CanonicalEntry] = None) -> Optional[Tuple[str, str]]:
    """
    Decode a temporary key to its ``(source type, provider id)`` pair.

    Provider ids may themselves end in ``-<digits>``, so the collision suffix
    added by ``next_free_key`` is only stripped when an entry is supplied and
    the unstripped id is not one of its sources.
    """
    parts = _split_prefix(key)
    if parts is None:
        return None
    prefix, remainder = parts
    kind = KEY_PREFIXES[prefix].kind

    if entry is None or entry.has_source(kind, remainder):
        return kind, remainder

    m = SUFFIX_RE.match(remainder)
    if m and entry.has_source(kind, m.group("base")):
        return kind, m.group("base")
    return kind, remainder


def next_free_key(base: str, taken: Callable[[str], bool]) -> str:
    """Return ``base`` or the first of ``base-1``, ``base-2``, ... for which ``taken`` is false."""
    if not taken(base):
        return base
    n = 1
    while taken(f"{base}-{n}"):
        n += 1
    return f"{base}-{n}"
