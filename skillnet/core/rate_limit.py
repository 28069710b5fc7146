"""Per-caller fixed-window rate limiter.

Each caller identity gets a ``RateWindow`` the first time it calls. A window
lives for ``window_seconds``; inside it the caller may make ``max_calls``
invocations. The counter resets once more than ``window_seconds`` have passed, so bursts
straddling a boundary can reach roughly twice the quota.

Configure via settings:
- RATE_LIMIT_MAX_CALLS: int (default 30)
- RATE_LIMIT_WINDOW_SECONDS: float (default 60)
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable


@dataclass
class RateWindow:
    window_start: float
    count: int = 0


class FixedWindowRateLimiter:
    """Fixed-window counter keyed by caller identity.

    Only touched from the event loop between awaits, so no lock is taken.
    """

    def __init__(
        self,
        *,
        max_calls: int = 30,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_calls = max(1, int(max_calls))
        self.window_seconds = max(0.001, float(window_seconds))
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}

    def allow(self, caller_id: str | None) -> bool:
        key = str(caller_id or "")
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now - window.window_start > self.window_seconds:
            self._windows[key] = RateWindow(window_start=now, count=1)
            return True
        window.count += 1
        return window.count <= self.max_calls

    def cleanup(self) -> int:
        """Evict windows older than twice the window length. Returns the eviction count."""
        now = self._clock()
        max_age = self.window_seconds * 2
        stale_keys = [key for key, window in self._windows.items() if now - window.window_start > max_age]
        for key in stale_keys:
            del self._windows[key]
        return len(stale_keys)

    def window_for(self, caller_id: str | None) -> RateWindow | None:
        return self._windows.get(str(caller_id or ""))

    @property
    def active_callers(self) -> int:
        return len(self._windows)

    @property
    def sweep_interval_seconds(self) -> float:
        return self.window_seconds * 2
