"""
movie_merge

Aggregates Archive.org and YouTube movie records into one canonical JSON
store keyed by IMDB id, reconciling them against OMDB and each other.
"""

__version__ = "1.0.0"
