"""
OMDB API client.

* ``search(title, year)`` -> ranked ``Candidate`` list (``s=`` endpoint)
* ``fetch_details(imdb_id)`` -> metadata dict or None (``i=`` endpoint)

Every request passes through the injected ``RateLimiter`` and a tenacity
retry policy: HTTP 429 waits a fixed ``rate_limit_delay``, other non-2xx
responses and network errors back off exponentially. Once attempts run out
the failure surfaces as ``ExternalServiceError``. A well-formed
``"Response": "False"`` payload is a normal empty result, not an error.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from movie_merge.core.exceptions import (
    ExternalServiceError,
    RateLimitedError,
    TransientHTTPError,
)
from movie_merge.logging import get_logger
from movie_merge.omdb.rate_limiter import RateLimiter

log = get_logger("omdb.client")

DEFAULT_BASE_URL = "https://www.omdbapi.com/"
NOT_AVAILABLE = "N/A"


@dataclass
class Candidate:
    """One row of an OMDB search response."""

    imdb_id: str
    title: str
    year: Optional[str] = None
    type: Optional[str] = None
    poster: Optional[str] = None

    @property
    def year_number(self) -> Optional[int]:
        """Leading four-digit year (``"1999–2003"`` -> 1999), if any."""
        if not self.year or self.year == NOT_AVAILABLE:
            return None
        digits = str(self.year).strip()[:4]
        return int(digits) if digits.isdigit() else None

    @classmethod
    def from_omdb(cls, row: Dict[str, Any]) -> "Candidate":
        return cls(
            imdb_id=str(row.get("imdbID", "")),
            title=str(row.get("Title", "")),
            year=row.get("Year"),
            type=row.get("Type"),
            poster=row.get("Poster"),
        )


def transform_details(data: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce ``imdbRating`` to float and ``imdbVotes`` to int; drop ``N/A``."""
    out = dict(data)

    rating = out.pop("imdbRating", None)
    if isinstance(rating, str) and rating and rating != NOT_AVAILABLE:
        try:
            out["imdbRating"] = float(rating)
        except ValueError:
            log.debug("Unparseable imdbRating %r", rating)
    elif isinstance(rating, (int, float)):
        out["imdbRating"] = float(rating)

    votes = out.pop("imdbVotes", None)
    if isinstance(votes, str) and votes and votes != NOT_AVAILABLE:
        try:
            out["imdbVotes"] = int(votes.replace(",", ""))
        except ValueError:
            log.debug("Unparseable imdbVotes %r", votes)
    elif isinstance(votes, int):
        out["imdbVotes"] = votes

    return out


class OmdbClient:
    def __init__(
        self,
        api_key: str,
        *,
        session: Optional[requests.Session] = None,
        limiter: Optional[RateLimiter] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 8.0,
        rate_limit_delay: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.limiter = limiter or RateLimiter()
        self.base_url = base_url
        self.timeout = timeout
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.rate_limit_delay = rate_limit_delay
        self.request_count = 0

        self._retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type((TransientHTTPError, requests.RequestException, ValueError)),
            before_sleep=before_sleep_log(log, logging.WARNING),
            sleep=sleep,
            reraise=True,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _wait(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RateLimitedError):
            return self.rate_limit_delay
        delay = self.backoff_seconds * (2 ** (retry_state.attempt_number - 1))
        return min(self.max_backoff_seconds, delay)

    def _fetch_once(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self.limiter.wait()
        self.request_count += 1
        response = self.session.get(self.base_url, params=params, timeout=self.timeout)

        if response.status_code == 429:
            raise RateLimitedError()
        if not 200 <= response.status_code < 300:
            raise TransientHTTPError(response.status_code)

        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"unexpected OMDB payload type: {type(payload).__name__}")
        return payload

    def _request(self, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {"apikey": self.api_key, **params}
        try:
            return self._retrying.copy()(self._fetch_once, query)
        except ExternalServiceError as exc:
            raise ExternalServiceError(f"OMDB request failed after retries: {exc}") from exc
        except (requests.RequestException, ValueError) as exc:
            raise ExternalServiceError(f"OMDB request failed after retries: {exc}") from exc

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def search(self, title: str, year: Optional[int] = None) -> List[Candidate]:
        params: Dict[str, Any] = {"s": title, "type": "movie"}
        if year:
            params["y"] = str(year)

        data = self._request(params)
        if data.get("Response") == "False":
            log.debug("OMDB search: no results for %r (year=%s)", title, year)
            return []

        rows = data.get("Search") or []
        candidates = [Candidate.from_omdb(r) for r in rows if isinstance(r, dict) and r.get("imdbID")]
        log.debug("OMDB search: %d candidates for %r (year=%s)", len(candidates), title, year)
        return candidates

    def fetch_details(self, imdb_id: str) -> Optional[Dict[str, Any]]:
        data = self._request({"i": imdb_id, "plot": "full"})
        if data.get("Response") == "False":
            log.info("OMDB details: %s not found", imdb_id)
            return None
        return transform_details(data)


def build_omdb_client(cfg, session: Optional[requests.Session] = None) -> OmdbClient:
    """Construct a client from the ``omdb`` config section (API key from env)."""
    section = cfg.omdb
    api_key = cfg.secret("omdb")
    limiter = RateLimiter(min_interval=float(section.get("min_interval_seconds", 0.25)))
    return OmdbClient(
        api_key,
        session=session,
        limiter=limiter,
        base_url=section.get("base_url", DEFAULT_BASE_URL),
        timeout=float(section.get("timeout_seconds", 15)),
        max_attempts=int(section.get("max_attempts", 3)),
        backoff_seconds=float(section.get("backoff_seconds", 1.0)),
        max_backoff_seconds=float(section.get("max_backoff_seconds", 8.0)),
        rate_limit_delay=float(section.get("rate_limit_delay_seconds", 5.0)),
    )
