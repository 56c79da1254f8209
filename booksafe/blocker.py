"""Block / unblock the appliance's cloud sync.

``block()`` resolves the sync servers (falling back on the route cache)
and installs a reject route for every address not already rejected.
``unblock()`` removes the routes for every cached address, without touching
DNS, so it works with no network at all.

Both are idempotent per address: a run that dies half way is finished by
the next run of either operation. A timeout on one address does not stop
the remaining addresses from being processed; timeouts are raised together
once every address has been tried. A ``CommandFailure`` stops the run.
"""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from booksafe.clock import SYSTEM_CLOCK, Clock
from booksafe.config import Settings
from booksafe.errors import MultipleTimeouts, OperationTimeout
from booksafe.resolver import DNS_TIMEOUT, SYNC_BACKENDS, HostResolver, sync_routes
from booksafe.route_cache import IPAddress, RouteCache
from booksafe.routes import RouteController

logger = logging.getLogger(__name__)


def _raise_timeouts(timeouts: list[OperationTimeout]) -> None:
    if len(timeouts) == 1:
        raise timeouts[0]
    if timeouts:
        raise MultipleTimeouts(timeouts)


class SyncBlocker:
    def __init__(
        self,
        resolver: HostResolver,
        controller: RouteController,
        cache_path: Path,
        hostnames: Iterable[str] = SYNC_BACKENDS,
        dns_timeout: float = DNS_TIMEOUT,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self.resolver = resolver
        self.controller = controller
        self.cache_path = cache_path
        self.hostnames = tuple(hostnames)
        self.dns_timeout = dns_timeout
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncBlocker":
        return cls(
            resolver=HostResolver(),
            controller=RouteController(tool=settings.route_tool),
            cache_path=settings.route_cache,
            dns_timeout=settings.dns_timeout,
        )

    def _apply(
        self,
        operation: str,
        addresses: Iterable[IPAddress],
        action: Callable[[IPAddress], None],
    ) -> int:
        timeouts: list[OperationTimeout] = []
        changed = 0
        for address in addresses:
            try:
                action(address)
            except OperationTimeout as exc:
                logger.error("%s", exc)
                timeouts.append(exc)
                continue
            changed += 1
        _raise_timeouts(timeouts)
        logger.info("%s: %d route(s) changed", operation, changed)
        return changed

    def block(self) -> int:
        """Reject every sync address.  Returns how many routes were added."""
        logger.info("Blocking sync")
        targets = sync_routes(
            self.resolver,
            self.cache_path,
            self.hostnames,
            self.dns_timeout,
            self._clock,
        )
        table = self.controller.current_table()
        return self._apply(
            "block",
            [addr for addr in targets if addr not in table],
            self.controller.block,
        )

    def unblock(self) -> int:
        """Drop the reject route of every cached address that has one."""
        logger.info("Unblocking sync")
        cached = RouteCache.load(self.cache_path, self._clock)
        table = self.controller.current_table()
        return self._apply(
            "unblock",
            [addr for addr in cached.addresses() if addr in table],
            self.controller.unblock,
        )
