"""
movie_merge.store package

In-memory store (MovieStore), its JSON persistence (StoreRepository) and the
merge engine that mutates it.

To avoid circular imports, this __init__ keeps exports minimal.
"""

from .movie_store import MovieStore
from .persistence import StoreRepository

__all__ = ["MovieStore", "StoreRepository"]
