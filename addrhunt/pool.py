"""
Worker pool orchestrator: manages multiprocessing workers and the stats reporter.
"""

import logging
import multiprocessing
import sys
import time
from typing import Callable, Optional

from addrhunt.config import SearchConfig
from addrhunt.matcher import AddressSet
from addrhunt.notify import Notifier
from addrhunt.recorder import ResultRecorder
from addrhunt.stats import SearchStats, StatsReporter, StatsSnapshot
from addrhunt.worker import search_worker

log = logging.getLogger(__name__)

MAX_WORKERS = 1000


def clamp_workers(num_workers: int) -> int:
    """Validate a worker count, capping it at MAX_WORKERS for stability."""
    if num_workers < 1:
        raise ValueError(f"Worker count must be a positive integer, got {num_workers}")
    if num_workers > MAX_WORKERS:
        log.warning("Limiting workers to %d for stability", MAX_WORKERS)
        return MAX_WORKERS
    return num_workers


def _mp_context():
    # On Linux fork shares the (potentially huge) address set copy-on-write
    # instead of pickling it once per worker. macOS system frameworks are not
    # fork-safe, so other platforms keep the default start method.
    if sys.platform.startswith("linux"):
        return multiprocessing.get_context("fork")
    return multiprocessing.get_context()


class SearchPool:
    """Runs N identical search workers against one address set.

    Usage:
        pool = SearchPool(address_set, recorder, notifier, num_workers=8)
        pool.on_progress = lambda snap: print(f"{snap.rate:.0f} checks/sec")
        pool.start()
        # ... poll periodically ...
        pool.stop()
    """

    def __init__(
        self,
        address_set: AddressSet,
        recorder: ResultRecorder,
        notifier: Notifier,
        num_workers: int,
        config: Optional[SearchConfig] = None,
    ):
        self.address_set = address_set
        self.recorder = recorder
        self.notifier = notifier
        self.num_workers = clamp_workers(num_workers)
        self.config = config or SearchConfig()

        # Callbacks
        self.on_progress: Optional[Callable[[StatsSnapshot], None]] = None

        # Internal state
        self._ctx = _mp_context()
        self._workers: list = []
        self._dead_reported = 0
        self._stop_event = None
        self._reporter: Optional[StatsReporter] = None
        self.stats: Optional[SearchStats] = None
        self._is_running = False

    def start(self) -> None:
        """Start worker processes and the reporter thread (non-blocking)."""
        if self._is_running:
            raise RuntimeError("Search pool is already running")

        self._stop_event = self._ctx.Event()
        self.stats = SearchStats(ctx=self._ctx)
        self._is_running = True

        for i in range(self.num_workers):
            p = self._ctx.Process(
                target=search_worker,
                args=(
                    self.address_set,
                    self.stats,
                    self.recorder,
                    self.notifier,
                    self._stop_event,
                    self.config,
                    i,
                ),
                daemon=True,
                name=f"addrhunt-worker-{i}",
            )
            p.start()
            self._workers.append(p)

        # Threads are started after forking so no child inherits them
        self._reporter = StatsReporter(self.stats, self.config.report_interval)
        self._reporter.start()
        log.info("Started %d workers", self.num_workers)

    def poll(self) -> StatsSnapshot:
        """Take a stats snapshot and fire on_progress. Call periodically from CLI."""
        if self.stats is None:
            return StatsSnapshot(0, 0, 0.0)

        snapshot = self.stats.snapshot()
        if self.on_progress:
            self.on_progress(snapshot)

        dead = sum(1 for w in self._workers if not w.is_alive())
        if self._is_running and dead > self._dead_reported and not self._stop_event.is_set():
            log.error("%d of %d workers exited unexpectedly", dead, len(self._workers))
            self._dead_reported = dead
        return snapshot

    def stop(self) -> StatsSnapshot:
        """Stop all workers and the reporter; return the final snapshot."""
        if self._stop_event:
            self._stop_event.set()

        for w in self._workers:
            w.join(timeout=2.0)
            if w.is_alive():
                w.terminate()

        if self._reporter:
            self._reporter.stop()
            self._reporter.join(timeout=2.0)
            self._reporter = None

        self._workers = []
        self._dead_reported = 0
        self._is_running = False
        if self.stats is None:
            return StatsSnapshot(0, 0, 0.0)
        return self.stats.snapshot()

    @property
    def is_running(self) -> bool:
        return self._is_running

    def run_blocking(self, poll_interval: float = 0.5) -> StatsSnapshot:
        """Run until interrupted with periodic progress callbacks. For CLI use."""
        self.start()
        try:
            try:
                while self._is_running:
                    time.sleep(poll_interval)
                    self.poll()
            except KeyboardInterrupt:
                pass
        finally:
            snapshot = self.stop()
        return snapshot
