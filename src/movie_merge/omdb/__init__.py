from .client import Candidate, OmdbClient, build_omdb_client
from .rate_limiter import RateLimiter

__all__ = ["Candidate", "OmdbClient", "RateLimiter", "build_omdb_client"]
