import threading

from addrhunt.core import DEFAULT_SCHEME
from addrhunt.matcher import AddressSet
from addrhunt.recorder import ResultRecorder, parse_line
from addrhunt.stats import SearchStats, StatsSnapshot
from addrhunt.worker import search_loop

KNOWN_SECRET = (0xC0FFEE).to_bytes(32, "big")
ONE_SECRET = (1).to_bytes(32, "big")


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    def notify(self, message):
        self.messages.append(message)
        return True


class ScriptedGenerator:
    """Returns queued secrets, then sets the stop event after the last one."""

    def __init__(self, secrets, stop_event):
        self.secrets = list(secrets)
        self.stop_event = stop_event
        self.calls = 0

    def __call__(self):
        self.calls += 1
        secret = self.secrets.pop(0)
        if not self.secrets:
            self.stop_event.set()
        return secret


def run_loop(address_set, secrets, tmp_path, notifier=None, progress_every=1_000_000, **kwargs):
    stop = threading.Event()
    stats = SearchStats()
    recorder = ResultRecorder(str(tmp_path / "found.txt"))
    notifier = notifier or RecordingNotifier()
    gen = ScriptedGenerator(secrets, stop)
    search_loop(
        address_set, stats, recorder, notifier, stop,
        generate=gen, progress_every=progress_every, throttle=0, retry_delay=0,
        **kwargs,
    )
    return stats, recorder, notifier, gen


def read_records(recorder):
    try:
        with open(recorder.path) as f:
            return [parse_line(line) for line in f]
    except FileNotFoundError:
        return []


def test_known_secret_produces_exactly_one_match(tmp_path):
    target = DEFAULT_SCHEME.derive(KNOWN_SECRET)
    address_set, _ = AddressSet.from_lines([target, "1SomeOtherAddress"])
    others = [(i + 1).to_bytes(32, "big") for i in range(5)]

    stats, recorder, notifier, _ = run_loop(address_set, others + [KNOWN_SECRET], tmp_path)

    records = read_records(recorder)
    assert len(records) == 1
    assert records[0].secret_hex == KNOWN_SECRET.hex()
    assert records[0].address == target
    assert records[0].found == 1

    snap = stats.snapshot()
    assert (snap.checked, snap.found) == (6, 1)
    alerts = [m for m in notifier.messages if m.startswith("FOUND ADDRESS!")]
    assert len(alerts) == 1
    assert KNOWN_SECRET.hex() in alerts[0]


def test_empty_set_never_matches(tmp_path):
    address_set, _ = AddressSet.from_lines([])
    secrets = [(i + 1).to_bytes(32, "big") for i in range(50)]

    stats, recorder, notifier, _ = run_loop(address_set, secrets, tmp_path)

    snap = stats.snapshot()
    assert snap.checked == 50
    assert snap.found == 0
    assert read_records(recorder) == []
    assert notifier.messages == []


def test_progress_fires_on_each_multiple(tmp_path):
    address_set, _ = AddressSet.from_lines([])
    secrets = [(i + 1).to_bytes(32, "big") for i in range(17)]

    _, _, notifier, _ = run_loop(address_set, secrets, tmp_path, progress_every=5)

    assert len(notifier.messages) == 3
    assert "Checked: 5 addresses" in notifier.messages[0]
    assert "Checked: 10 addresses" in notifier.messages[1]
    assert "Checked: 15 addresses" in notifier.messages[2]


def test_transient_failures_are_retried(tmp_path):
    address_set, _ = AddressSet.from_lines([])
    stop = threading.Event()
    calls = {"n": 0}

    def flaky():
        calls["n"] += 1
        if calls["n"] <= 3:
            raise OSError("entropy unavailable")
        if calls["n"] == 4:
            return bytes(32)  # invalid scalar, derive fails
        if calls["n"] == 6:
            stop.set()
        return calls["n"].to_bytes(32, "big")

    stats = SearchStats()
    search_loop(
        address_set, stats, ResultRecorder(str(tmp_path / "found.txt")),
        RecordingNotifier(), stop, generate=flaky, throttle=0, retry_delay=0,
    )

    assert calls["n"] == 6
    assert stats.snapshot().checked == 2


def test_recorder_failure_does_not_block_alert(tmp_path):
    target = DEFAULT_SCHEME.derive(KNOWN_SECRET)
    address_set, _ = AddressSet.from_lines([target])
    stop = threading.Event()
    notifier = RecordingNotifier()
    # Recording into a directory fails
    recorder = ResultRecorder(str(tmp_path))

    search_loop(
        address_set, SearchStats(), recorder, notifier, stop,
        generate=ScriptedGenerator([KNOWN_SECRET], stop), throttle=0,
    )

    assert len(notifier.messages) == 1
    assert target in notifier.messages[0]


def test_concurrent_workers_share_stats(tmp_path):
    target = DEFAULT_SCHEME.derive(KNOWN_SECRET)
    address_set, _ = AddressSet.from_lines([target])
    stats = SearchStats()
    recorder = ResultRecorder(str(tmp_path / "found.txt"))
    notifier = RecordingNotifier()
    stops = [threading.Event() for _ in range(4)]

    def run(i):
        secrets = [(i * 100 + j + 1).to_bytes(32, "big") for j in range(10)] + [KNOWN_SECRET]
        search_loop(
            address_set, stats, recorder, notifier, stops[i],
            generate=ScriptedGenerator(secrets, stops[i]), throttle=0, worker_id=i,
        )

    threads = [threading.Thread(target=run, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snap = stats.snapshot()
    assert (snap.checked, snap.found) == (44, 4)
    records = read_records(recorder)
    assert sorted(r.found for r in records) == [1, 2, 3, 4]
    assert all(r.address == target for r in records)


class RunAheadStats(SearchStats):
    """Snapshots report other workers' checks landing after ours."""

    def snapshot(self):
        snap = super().snapshot()
        return StatsSnapshot(snap.checked + 3, snap.found, snap.elapsed)


def test_progress_reports_the_crossing_count(tmp_path):
    address_set, _ = AddressSet.from_lines([])
    stop = threading.Event()
    notifier = RecordingNotifier()
    secrets = [(i + 1).to_bytes(32, "big") for i in range(6)]

    search_loop(
        address_set, RunAheadStats(), ResultRecorder(str(tmp_path / "found.txt")), notifier, stop,
        generate=ScriptedGenerator(secrets, stop), progress_every=5, throttle=0,
    )

    assert len(notifier.messages) == 1
    assert "Checked: 5 addresses" in notifier.messages[0]


class ExplodingRecorder:
    def record(self, record):
        raise RuntimeError("disk on fire")


class ExplodingNotifier:
    def notify(self, message):
        raise RuntimeError("sink down")


def test_recorder_exception_does_not_end_worker(tmp_path):
    target = DEFAULT_SCHEME.derive(KNOWN_SECRET)
    address_set, _ = AddressSet.from_lines([target])
    stop = threading.Event()
    stats = SearchStats()
    notifier = RecordingNotifier()

    search_loop(
        address_set, stats, ExplodingRecorder(), notifier, stop,
        generate=ScriptedGenerator([KNOWN_SECRET, ONE_SECRET, KNOWN_SECRET], stop), throttle=0,
    )

    assert (stats.snapshot().checked, stats.snapshot().found) == (3, 2)
    assert len(notifier.messages) == 2


def test_notifier_exception_does_not_lose_record(tmp_path):
    target = DEFAULT_SCHEME.derive(KNOWN_SECRET)
    address_set, _ = AddressSet.from_lines([target])
    stop = threading.Event()
    stats = SearchStats()
    recorder = ResultRecorder(str(tmp_path / "found.txt"))

    search_loop(
        address_set, stats, recorder, ExplodingNotifier(), stop,
        generate=ScriptedGenerator([KNOWN_SECRET, ONE_SECRET, KNOWN_SECRET], stop),
        progress_every=2, throttle=0,
    )

    assert stats.snapshot().checked == 3
    assert [r.found for r in read_records(recorder)] == [1, 2]
