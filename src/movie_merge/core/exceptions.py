class MovieMergeError(Exception):
    """Base exception for movie_merge failures that abort a run."""


class ConfigurationError(MovieMergeError):
    """Raised when required configuration (e.g. an API key) is missing."""


class StoreError(MovieMergeError):
    """Raised when the store file cannot be read, parsed, or written."""


class PipelineError(MovieMergeError):
    """Raised when a batch run cannot continue."""


class MalformedRecordError(MovieMergeError):
    """Raised when a single record cannot be interpreted."""


class ExternalServiceError(MovieMergeError):
    """Raised when the metadata provider keeps failing after retries."""


class TransientHTTPError(ExternalServiceError):
    """Non-2xx response from the metadata provider; retried with backoff."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code}")


class RateLimitedError(TransientHTTPError):
    """HTTP 429 from the metadata provider; retried after a fixed delay."""

    def __init__(self, message: str = "rate limited"):
        super().__init__(429, message)


class EntryNotFoundError(MovieMergeError, KeyError):
    """Raised when a curation command names a missing entry or source."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "entry not found"
