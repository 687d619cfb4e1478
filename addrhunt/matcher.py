"""Target address set for exact-match lookups."""

import logging
from typing import Iterable

log = logging.getLogger(__name__)


class AddressSet:
    """Immutable set of target addresses.

    Built once before any worker starts and never mutated afterwards, so
    lookups from any number of workers need no locking.
    """

    __slots__ = ("_addresses",)

    def __init__(self, addresses: Iterable[str] = ()):
        self._addresses = frozenset(addresses)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> tuple["AddressSet", int]:
        """Build a set from raw lines, trimming whitespace and skipping blanks.

        Returns (address_set, inserted) where inserted counts non-blank lines,
        duplicates included.
        """
        inserted = 0
        cleaned = []
        for line in lines:
            address = line.strip()
            if address:
                cleaned.append(address)
                inserted += 1
        return cls(cleaned), inserted

    def contains(self, address: str) -> bool:
        return address in self._addresses

    def __contains__(self, address: object) -> bool:
        return address in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)

    def __repr__(self) -> str:
        return f"AddressSet({len(self._addresses)} addresses)"


def load_address_set(path: str) -> tuple[AddressSet, int]:
    """Load newline-delimited addresses from a file.

    Raises OSError if the file is missing or unreadable; callers must treat
    that as fatal rather than search against an empty set.
    """
    with open(path, "r", encoding="utf-8") as f:
        address_set, inserted = AddressSet.from_lines(f)

    if inserted == 0:
        log.warning("Address file %s contains no addresses; no match is possible", path)
    else:
        log.info("Loaded %d addresses (%d unique) from %s", inserted, len(address_set), path)
    return address_set, inserted
