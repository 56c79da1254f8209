"""Durable cache of sync-server addresses seen in earlier runs.

DNS is often unavailable right when we need to block (the device just woke
up, wifi is still coming up), so every address ever resolved is remembered
here and blocked along with whatever resolves fresh.

Policy
------
* One entry per address; on a merge the newest ``last_updated`` wins.
* Entries older than ``EXPIRATION`` (8 weeks) are dropped, but only when at
  least ``MIN_FRESH`` (2) entries are still fresh after the merge. A resolver
  that stays offline for months therefore never empties the cache.

The file is a JSON array of ``{"ip": ..., "last_updated": ...}`` objects,
rewritten in full by ``persist()``.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from ipaddress import IPv4Address, IPv6Address, ip_address
from pathlib import Path

from pydantic import AwareDatetime, BaseModel, IPvAnyAddress, TypeAdapter, ValidationError

from booksafe.clock import SYSTEM_CLOCK, Clock
from booksafe.errors import PersistenceFailure

logger = logging.getLogger(__name__)

EXPIRATION = timedelta(weeks=8)
MIN_FRESH = 2

IPAddress = IPv4Address | IPv6Address


class RouteEntry(BaseModel):
    ip: IPvAnyAddress
    last_updated: AwareDatetime


_entries_adapter = TypeAdapter(list[RouteEntry])


def _ip_key(ip: IPAddress) -> tuple[int, int]:
    return ip.version, int(ip)


def dedup_keep_newest(entries: Iterable[RouteEntry]) -> list[RouteEntry]:
    """One entry per ip, the most recently updated one, sorted by ip."""
    newest: dict[IPAddress, RouteEntry] = {}
    for entry in entries:
        current = newest.get(entry.ip)
        if current is None or entry.last_updated > current.last_updated:
            newest[entry.ip] = entry
    return [newest[ip] for ip in sorted(newest, key=_ip_key)]


class RouteCache:
    def __init__(
        self,
        path: Path,
        entries: Iterable[RouteEntry] = (),
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self.path = path
        self.entries: list[RouteEntry] = list(entries)
        self._clock = clock

    # ── storage ──────────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: Path, clock: Clock = SYSTEM_CLOCK) -> "RouteCache":
        """Read the cache at *path*; a missing or empty file is an empty cache.

        The file is created (empty) when it does not exist yet.
        Raises PersistenceFailure.
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)
            raw = path.read_bytes()
        except OSError as exc:
            raise PersistenceFailure(path, f"could not read: {exc}") from exc

        if not raw.strip():
            return cls(path, (), clock)

        try:
            entries = _entries_adapter.validate_json(raw)
        except ValidationError as exc:
            raise PersistenceFailure(path, f"could not parse addresses: {exc}") from exc
        logger.debug("Loaded %d cached route(s) from %s", len(entries), path)
        return cls(path, entries, clock)

    def persist(self) -> None:
        """Overwrite the cache file with the current entries."""
        try:
            self.path.write_bytes(_entries_adapter.dump_json(self.entries, indent=2))
        except OSError as exc:
            raise PersistenceFailure(self.path, f"could not write: {exc}") from exc
        logger.debug("Wrote %d route(s) to %s", len(self.entries), self.path)

    # ── policy ───────────────────────────────────────────────────────────

    def _is_fresh(self, entry: RouteEntry, now: datetime) -> bool:
        return now - entry.last_updated < EXPIRATION

    def update(self, new_addresses: Iterable[IPAddress | str]) -> "RouteCache | None":
        """Merge freshly resolved addresses in and prune expired entries.

        Returns None when the merged cache is empty, otherwise ``self``.
        """
        now = self._clock.now()
        merged = self.entries + [
            RouteEntry(ip=ip_address(ip), last_updated=now) for ip in new_addresses
        ]
        self.entries = dedup_keep_newest(merged)

        if not self.entries:
            return None

        fresh = [e for e in self.entries if self._is_fresh(e, now)]
        if len(fresh) >= MIN_FRESH and len(fresh) < len(self.entries):
            logger.debug(
                "Pruning %d expired route(s)", len(self.entries) - len(fresh)
            )
            self.entries = fresh
        return self

    def addresses(self) -> list[IPAddress]:
        return [entry.ip for entry in self.entries]
