"""
Search loop for a single worker.

IMPORTANT: This module must contain only top-level importable functions.
On macOS/Windows, multiprocessing uses 'spawn' which requires worker
targets to be importable by name from a module.
"""

import logging
from typing import Callable

from addrhunt.core import DEFAULT_SCHEME, AddressScheme, generate_secret
from addrhunt.log import setup_logging
from addrhunt.matcher import AddressSet
from addrhunt.notify import Notifier, format_match, format_progress
from addrhunt.recorder import MatchRecord, ResultRecorder
from addrhunt.stats import SearchStats, StatsSnapshot

log = logging.getLogger(__name__)


def _guarded(worker_id: int, what: str, func, *args) -> None:
    # Side effects run independently; none may end the worker
    try:
        func(*args)
    except Exception:
        log.exception("Worker %d: %s failed", worker_id, what)


def search_loop(
    address_set: AddressSet,
    stats: SearchStats,
    recorder: ResultRecorder,
    notifier: Notifier,
    stop_event,
    *,
    scheme: AddressScheme = DEFAULT_SCHEME,
    generate: Callable[[], bytes] = generate_secret,
    progress_every: int = 1_000_000,
    throttle: float = 0.01,
    retry_delay: float = 0.1,
    worker_id: int = 0,
) -> None:
    """Generate, derive and check candidates until stop_event is set.

    Args:
        address_set: Target addresses, read-only.
        stats: Shared counters.
        recorder: Durable match log.
        notifier: Best-effort alert sink.
        stop_event: threading or multiprocessing Event, checked once per iteration.
        scheme: Address derivation parameters.
        generate: Secret source; os.urandom-backed by default.
        progress_every: Send a progress notification each time the global
            checked count reaches a multiple of this.
        throttle: Seconds to pause after each iteration (0 disables).
        retry_delay: Seconds to pause after a generate/derive failure.
        worker_id: Used in log messages only.
    """
    while not stop_event.is_set():
        try:
            secret = generate()
            address = scheme.derive(secret)
        except Exception as e:
            log.warning("Worker %d: failed to produce candidate: %s", worker_id, e)
            stop_event.wait(retry_delay)
            continue

        hit = address in address_set

        checked = stats.add_checked()
        if checked % progress_every == 0:
            snap = stats.snapshot()
            progress = StatsSnapshot(checked, snap.found, snap.elapsed)
            _guarded(worker_id, "progress notification", notifier.notify, format_progress(progress))

        if hit:
            found = stats.add_found()
            record = MatchRecord.create(secret, address, found, scheme.compressed)
            log.info("Worker %d: FOUND MATCH! Address: %s", worker_id, address)
            _guarded(worker_id, "match record", recorder.record, record)
            _guarded(worker_id, "match notification", notifier.notify, format_match(record))

        if throttle > 0:
            stop_event.wait(throttle)


def search_worker(
    address_set: AddressSet,
    stats: SearchStats,
    recorder: ResultRecorder,
    notifier: Notifier,
    stop_event,
    config,
    worker_id: int = 0,
) -> None:
    """Worker process entry point: set up logging, then run search_loop.

    Args:
        config: SearchConfig with the loop tuning values.
    """
    setup_logging(config.log_level)
    log.debug("Worker %d started", worker_id)
    try:
        search_loop(
            address_set,
            stats,
            recorder,
            notifier,
            stop_event,
            scheme=AddressScheme(compressed=config.compressed),
            progress_every=config.progress_every,
            throttle=config.throttle,
            retry_delay=config.retry_delay,
            worker_id=worker_id,
        )
    except KeyboardInterrupt:
        pass
    log.debug("Worker %d stopped", worker_id)
