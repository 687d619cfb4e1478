"""
Shared search statistics.

Counters live in shared memory so every worker process updates the same
values. Both counters sit behind one lock, which keeps snapshots consistent
(found never exceeds checked).
"""

import logging
import multiprocessing
import threading
import time
from dataclasses import dataclass
from typing import Optional

from addrhunt.notify import format_progress

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time view of the counters."""
    checked: int
    found: int
    elapsed: float

    @property
    def rate(self) -> float:
        return self.checked / self.elapsed if self.elapsed > 0 else 0.0


class SearchStats:
    """Process-shared checked/found counters.

    Must be handed to worker processes as a Process argument (shared memory
    objects can only be transferred at spawn time).
    """

    def __init__(self, start_time: Optional[float] = None, ctx=None):
        ctx = ctx or multiprocessing
        self._lock = ctx.Lock()
        self._checked = ctx.RawValue("Q", 0)
        self._found = ctx.RawValue("Q", 0)
        self.start_time = time.time() if start_time is None else start_time

    def add_checked(self) -> int:
        """Increment the checked counter and return the new value."""
        with self._lock:
            self._checked.value += 1
            return self._checked.value

    def add_found(self) -> int:
        """Increment the found counter and return the new value."""
        with self._lock:
            self._found.value += 1
            return self._found.value

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            checked = self._checked.value
            found = self._found.value
        return StatsSnapshot(checked, found, time.time() - self.start_time)


class StatsReporter(threading.Thread):
    """Background thread logging a progress summary on a fixed cadence.

    Independent of the per-worker progress interval, so there is visibility
    even when no threshold has been crossed recently.
    """

    def __init__(self, stats: SearchStats, interval: float = 30.0, notifier=None):
        super().__init__(name="addrhunt-reporter", daemon=True)
        self.stats = stats
        self.interval = interval
        self.notifier = notifier
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.wait(self.interval):
            message = format_progress(self.stats.snapshot(), title="Progress Report")
            log.info(message.replace("\n", " "))
            if self.notifier is not None:
                self.notifier.notify(message)

    def stop(self) -> None:
        self._stop_event.set()
