import sys
from pathlib import Path

import pytest

# Ensure the project src directory is on sys.path for test imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_PATH = PROJECT_ROOT / "src"
if SRC_PATH not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

NOW = "2024-01-01T00:00:00.000Z"


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}

    def json(self):
        return self._payload


class FakeSession:
    """
    Stand-in for requests.Session. ``responses`` is either a list consumed in
    order or a callable ``(url, params) -> FakeResponse``. Exceptions in the
    list are raised instead of returned.
    """

    def __init__(self, responses):
        self.responses = responses if callable(responses) else list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        if callable(self.responses):
            return self.responses(url, dict(params or {}))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def now():
    return NOW
