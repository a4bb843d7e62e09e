from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class RateLimiter:
    """
    Enforces a minimum interval between outgoing requests.

    One instance may be shared by several callers; the last-request timestamp
    is guarded by a lock. ``clock`` and ``sleep`` are injectable so tests can
    run on a fake clock instead of sleeping.
    """

    def __init__(
        self,
        min_interval: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = float(min_interval)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request: Optional[float] = None
        self.total_waited = 0.0

    def wait(self) -> float:
        """Block until a request may be sent; return the time slept."""
        with self._lock:
            now = self._clock()
            waited = 0.0
            if self._last_request is not None:
                remaining = self.min_interval - (now - self._last_request)
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
                    now = self._clock()
            self._last_request = now
            self.total_waited += waited
            return waited
