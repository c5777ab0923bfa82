"""
Requests-per-minute pacing for source fetches.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

LOW_RATE_THRESHOLD_RPM = 5


class RequestPacer:
    """
    Enforces a minimum interval between outbound source requests.

    The interval is the larger of the configured pause and 60/rpm. When the
    budget is very conservative (rpm <= 5) an extra pause of 60/rpm minus
    the base pause is added on top.
    """

    def __init__(
        self,
        *,
        requests_per_minute: int,
        pause_between_requests_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._requests_per_minute = max(1, requests_per_minute)
        self._pause_seconds = max(0.0, pause_between_requests_seconds)
        self._sleep = sleep
        self._clock = clock
        self._last_request: float | None = None
        self._lock = threading.Lock()

    @property
    def min_interval_seconds(self) -> float:
        budget_interval = 60.0 / self._requests_per_minute
        interval = max(self._pause_seconds, budget_interval)
        if self._requests_per_minute <= LOW_RATE_THRESHOLD_RPM:
            extra = budget_interval - self._pause_seconds
            if extra > 0:
                interval += extra
        return interval

    def wait(self) -> float:
        """
        Sleep as needed so the next request respects the budget.

        Returns the number of seconds slept.
        """

        with self._lock:
            waited = 0.0
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                remaining = self.min_interval_seconds - elapsed
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
            self._last_request = self._clock()
            return waited
