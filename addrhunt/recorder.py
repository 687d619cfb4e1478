"""
Durable, append-only log of confirmed matches.

Each match becomes one self-contained line:
  [2024-01-31 12:00:00] FOUND! PrivateKey: <hex> Address: <addr> Found: <n> Compressed: yes|no
"""

import logging
import multiprocessing
import os
import re
from dataclasses import dataclass
from datetime import datetime

from addrhunt.core import secret_to_wif

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LINE_RE = re.compile(
    r"^\[(?P<timestamp>[^\]]+)\] FOUND! "
    r"PrivateKey: (?P<secret_hex>[0-9a-f]+) "
    r"Address: (?P<address>\S+) "
    r"Found: (?P<found>\d+) "
    r"Compressed: (?P<compressed>yes|no)$"
)


@dataclass(frozen=True)
class MatchRecord:
    """A single confirmed match."""
    timestamp: str
    secret_hex: str
    address: str
    found: int
    compressed: bool = True

    @classmethod
    def create(cls, secret: bytes, address: str, found: int, compressed: bool = True) -> "MatchRecord":
        return cls(
            timestamp=datetime.now().strftime(TIMESTAMP_FORMAT),
            secret_hex=secret.hex(),
            address=address,
            found=found,
            compressed=compressed,
        )

    @property
    def wif(self) -> str:
        return secret_to_wif(bytes.fromhex(self.secret_hex), self.compressed)

    def to_line(self) -> str:
        return (
            f"[{self.timestamp}] FOUND! PrivateKey: {self.secret_hex} "
            f"Address: {self.address} Found: {self.found} "
            f"Compressed: {'yes' if self.compressed else 'no'}"
        )


def parse_line(line: str) -> MatchRecord:
    """Parse a log line written by MatchRecord.to_line().

    Raises ValueError for malformed lines.
    """
    m = _LINE_RE.match(line.rstrip("\r\n"))
    if m is None:
        raise ValueError(f"Malformed match line: {line!r}")
    return MatchRecord(
        timestamp=m.group("timestamp"),
        secret_hex=m.group("secret_hex"),
        address=m.group("address"),
        found=int(m.group("found")),
        compressed=m.group("compressed") == "yes",
    )


class ResultRecorder:
    """Serializes match appends from any number of worker processes.

    The lock is a multiprocessing lock, so the recorder must be handed to
    workers at spawn time like the other shared objects.
    """

    def __init__(self, path: str, lock=None):
        self.path = os.path.abspath(path)
        self._lock = lock if lock is not None else multiprocessing.Lock()

    def prepare(self) -> str:
        """Create the log file (mode 0600, it holds private keys).

        Raises OSError if the location is not writable. Returns the absolute path.
        """
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with open(self.path, "a", encoding="utf-8"):
            pass
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            pass  # Windows: chmod not fully supported
        return self.path

    def record(self, record: MatchRecord) -> bool:
        """Append one match and flush it to disk.

        Failures are logged and reported via the return value; they never
        propagate into the search loop.
        """
        line = record.to_line() + "\n"
        try:
            with self._lock:
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line)
                    f.flush()
                    os.fsync(f.fileno())
        except OSError as e:
            log.error("Failed to record match for %s in %s: %s", record.address, self.path, e)
            return False
        return True
