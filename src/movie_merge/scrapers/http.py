from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from movie_merge.core.exceptions import ExternalServiceError, TransientHTTPError
from movie_merge.logging import get_logger

log = get_logger("scrapers.http")

RETRY_STATUSES = {429, 500, 502, 503, 504}


def get_json(
    session: requests.Session,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    timeout: float = 30,
    attempts: int = 3,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """GET a JSON document, retrying 429/5xx and network errors with backoff."""

    def _once() -> Dict[str, Any]:
        response = session.get(url, params=params, timeout=timeout)
        if response.status_code in RETRY_STATUSES:
            raise TransientHTTPError(response.status_code)
        if not 200 <= response.status_code < 300:
            raise ExternalServiceError(f"GET {url} returned HTTP {response.status_code}")
        return response.json()

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((TransientHTTPError, requests.RequestException)),
        before_sleep=before_sleep_log(log, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
    try:
        return retrying(_once)
    except ExternalServiceError:
        raise
    except (requests.RequestException, ValueError) as exc:
        raise ExternalServiceError(f"GET {url} failed: {exc}") from exc
