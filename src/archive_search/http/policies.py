from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from archive_search.core.errors import SearchCancelled
from archive_search.utils.logging import get_logger


@dataclass(frozen=True)
class RetryPolicy:
    """Per-status waits and the overall attempt budget for one request."""

    perseverance: float = 10
    burst_wait_s: float = 1.0
    unavailable_wait_s: float = 5.0
    unexpected_wait_s: float = 5.0

    def allows(self, attempts_made: int) -> bool:
        return attempts_made < self.perseverance


def parse_perseverance(value) -> float:
    """Accept a positive int, or None/"inf" for an unbounded budget."""
    if value is None:
        return math.inf
    if isinstance(value, str):
        if value.strip().lower() in {"inf", "infinity", "unbounded"}:
            return math.inf
        value = int(value)
    if isinstance(value, float) and math.isinf(value):
        return math.inf
    if value < 1:
        raise ValueError("perseverance must be at least 1")
    return value


class Sleeper:
    """Blocking sleep that a cancellation event can cut short."""

    def __init__(self, cancel_event: Optional[threading.Event] = None):
        self.cancel_event = cancel_event or threading.Event()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            self.cancel_event.wait(seconds)
        self.check()

    def check(self) -> None:
        if self.cancel_event.is_set():
            raise SearchCancelled("Search cancelled; already appended batches are kept and resumable")


class RequestPacer:
    """Keeps consecutive outbound requests at least min_interval_s apart."""

    def __init__(
        self,
        min_interval_s: float = 1.0,
        sleeper: Optional[Sleeper] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval_s = min_interval_s
        self.sleeper = sleeper or Sleeper()
        self.clock = clock
        self.last_request_at: Optional[float] = None
        self.log = get_logger("archive_search.http.pacer")

    def wait(self) -> None:
        """Sleep out the remainder of the interval, then stamp the request time."""
        if self.last_request_at is not None:
            elapsed = self.clock() - self.last_request_at
            if elapsed < self.min_interval_s:
                self.log.debug("Pacing: sleeping %.3fs", self.min_interval_s - elapsed)
                self.sleeper.sleep(self.min_interval_s - elapsed)
        self.sleeper.check()
        self.last_request_at = self.clock()
