"""Resolve the sync servers' hostnames to addresses.

Each hostname is looked up on its own; one failing never stops the others.
Failures are classified, because only a *connectivity* failure (no
resolver reachable, typically wifi still coming up after wake) is worth
waiting for. A name that does not exist will not start existing in the next
200 ms.
"""

import logging
import socket
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from ipaddress import ip_address
from pathlib import Path

from booksafe.clock import SYSTEM_CLOCK, Clock
from booksafe.errors import NoSyncRoutes
from booksafe.route_cache import IPAddress, RouteCache

logger = logging.getLogger(__name__)

SYNC_BACKENDS: tuple[str, ...] = (
    "hwr-production-dot-remarkable-production.appspot.com",
    "service-manager-production-dot-remarkable-production.appspot.com",
    "local.appspot.com",
    "my.remarkable.com",
    "ping.remarkable.com",
    "internal.cloud.remarkable.com",
    "ams15s41-in-f20.1e100.net",
    "ams15s48-in-f20.1e100.net",
    "206.137.117.34.bc.googleusercontent.com",
)

DNS_TIMEOUT = 30.0
DNS_RETRY_DELAY = 0.2

Lookup = Callable[..., list]

_CONNECTIVITY_CODES = frozenset({socket.EAI_AGAIN})
# EAI_NODATA is not exposed on every platform
_NOT_FOUND_CODES = frozenset(
    {socket.EAI_NONAME, getattr(socket, "EAI_NODATA", socket.EAI_NONAME)}
)


class FailureKind(Enum):
    CONNECTIVITY = "connectivity"
    NOT_FOUND = "not found"
    OTHER = "other"


@dataclass(frozen=True)
class ResolveFailure:
    hostname: str
    kind: FailureKind
    reason: str


@dataclass
class ResolveResult:
    addresses: set[IPAddress] = field(default_factory=set)
    failures: list[ResolveFailure] = field(default_factory=list)

    @property
    def only_connectivity_failures(self) -> bool:
        return bool(self.failures) and all(
            f.kind is FailureKind.CONNECTIVITY for f in self.failures
        )


def classify(exc: OSError) -> FailureKind:
    if isinstance(exc, socket.gaierror):
        if exc.errno in _CONNECTIVITY_CODES:
            return FailureKind.CONNECTIVITY
        if exc.errno in _NOT_FOUND_CODES:
            return FailureKind.NOT_FOUND
        return FailureKind.OTHER
    # timeouts, "network is unreachable" and friends
    return FailureKind.CONNECTIVITY


class HostResolver:
    def __init__(
        self,
        lookup: Lookup = socket.getaddrinfo,
        clock: Clock = SYSTEM_CLOCK,
        retry_delay: float = DNS_RETRY_DELAY,
    ) -> None:
        self._lookup = lookup
        self._clock = clock
        self.retry_delay = retry_delay

    def _lookup_host(self, hostname: str) -> set[IPAddress]:
        infos = self._lookup(hostname, None, socket.AF_INET, socket.SOCK_STREAM)
        return {ip_address(sockaddr[0]) for *_, sockaddr in infos}

    def resolve(self, hostnames: Iterable[str]) -> ResolveResult:
        result = ResolveResult()
        for hostname in hostnames:
            try:
                result.addresses |= self._lookup_host(hostname)
            except OSError as exc:
                result.failures.append(ResolveFailure(hostname, classify(exc), str(exc)))
        logger.debug(
            "Resolved %d address(es), %d failure(s)",
            len(result.addresses), len(result.failures),
        )
        return result

    def wait_for_routes(
        self,
        hostnames: Iterable[str] = SYNC_BACKENDS,
        timeout: float = DNS_TIMEOUT,
    ) -> list[IPAddress]:
        """Resolve *hostnames*, retrying while the network is unreachable.

        Retries only while every failure is a connectivity failure. After
        *timeout* seconds whatever the last attempt produced is returned,
        possibly nothing.
        """
        hostnames = list(hostnames)
        start = self._clock.monotonic()
        while True:
            result = self.resolve(hostnames)
            if not result.only_connectivity_failures:
                break
            if self._clock.monotonic() - start > timeout:
                logger.warning(
                    "Could not resolve sync routes within %.0fs, "
                    "continuing with %d address(es)",
                    timeout, len(result.addresses),
                )
                break
            logger.debug("Could not reach a DNS server, retrying...")
            self._clock.sleep(self.retry_delay)

        for failure in result.failures:
            if failure.kind is not FailureKind.CONNECTIVITY:
                logger.info("Skipping %s: %s", failure.hostname, failure.reason)
        return sorted(result.addresses, key=lambda ip: (ip.version, int(ip)))


def sync_routes(
    resolver: HostResolver,
    cache_path: Path,
    hostnames: Iterable[str] = SYNC_BACKENDS,
    timeout: float = DNS_TIMEOUT,
    clock: Clock = SYSTEM_CLOCK,
) -> list[IPAddress]:
    """Fresh addresses merged with the cached ones; the cache is rewritten.

    Raises NoSyncRoutes when nothing resolved and nothing was cached, and
    PersistenceFailure when the cache cannot be read or written.
    """
    cache = RouteCache.load(cache_path, clock)
    resolved = resolver.wait_for_routes(hostnames, timeout)

    routes = cache.update(resolved)
    if routes is None:
        raise NoSyncRoutes()
    routes.persist()

    addresses = routes.addresses()
    logger.debug("Sync routes: %s", ", ".join(str(a) for a in addresses))
    return addresses
