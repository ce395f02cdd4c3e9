"""Request pacing for synthesis provider calls.

Responsibilities:
- Enforce a minimum interval between requests sharing one pacing key.
- Stay safe when segments of several jobs are dispatched from worker threads.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from time import monotonic, sleep
from typing import Callable


@dataclass(slots=True)
class RateLimiter:
    """Per-key minimum-interval limiter used around provider requests."""

    min_interval_seconds: float = 0.0
    clock: Callable[[], float] = monotonic
    sleeper: Callable[[float], None] = sleep
    _next_allowed_at: dict[str, float] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def acquire(self, key: str) -> None:
        """Block until `key` may issue its next request.

        The slot is claimed under the lock and the wait happens outside it, so
        concurrent callers queue up at successive intervals.
        """

        if self.min_interval_seconds <= 0.0:
            return
        with self._lock:
            now = self.clock()
            slot = max(now, self._next_allowed_at.get(key, 0.0))
            self._next_allowed_at[key] = slot + self.min_interval_seconds
        wait_seconds = slot - now
        if wait_seconds > 0.0:
            self.sleeper(wait_seconds)
