"""Reject routes through the system ``route`` tool.

Right after the device resumes from sleep ``route`` sometimes exits
cleanly without changing anything. Every add/delete is therefore followed
by a fresh table dump, and an operation that left no trace is retried a few
times before giving up with ``OperationTimeout``. Any other failure of the
tool is raised at once as ``CommandFailure``, stdout/stderr attached.

Invocations
-----------
    route -n                              table dump
    route add -host <ip> reject           block
    route delete -host <ip> reject        unblock
"""

import logging
import subprocess
from collections.abc import Callable
from ipaddress import ip_address

from booksafe.clock import SYSTEM_CLOCK, Clock
from booksafe.errors import CommandFailure, OperationTimeout
from booksafe.route_cache import IPAddress

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
RETRY_DELAY = 0.2

# stderr fragments meaning "already in the state you asked for"
_ALREADY_PRESENT = "File exists"
_ALREADY_ABSENT = "No such process"

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class NoEffect(Exception):
    """The command ran but the table does not show its effect."""


class RouteController:
    def __init__(
        self,
        tool: str = "route",
        runner: Runner = subprocess.run,
        clock: Clock = SYSTEM_CLOCK,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
    ) -> None:
        self.tool = tool
        self._run = runner
        self._clock = clock
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    # ── subprocess ───────────────────────────────────────────────────────

    def _invoke(self, *args: str) -> "subprocess.CompletedProcess[str]":
        command = [self.tool, *args]
        try:
            return self._run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise CommandFailure(command, f"could not run {self.tool}: {exc}") from exc

    def _check(
        self,
        result: "subprocess.CompletedProcess[str]",
        known_noop: str | None = None,
    ) -> None:
        if result.returncode == 0:
            return
        if known_noop is not None and known_noop in (result.stderr or ""):
            return
        raise CommandFailure(
            list(result.args),
            f"{self.tool} returned an error",
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )

    # ── table ────────────────────────────────────────────────────────────

    def current_table(self) -> set[IPAddress]:
        """Destinations currently in the kernel routing table."""
        result = self._invoke("-n")
        self._check(result)

        routes: set[IPAddress] = set()
        # two header lines: "Kernel IP routing table" and the column names
        for line in result.stdout.splitlines()[2:]:
            if not line.strip():
                continue
            destination = line.split()[0]
            try:
                routes.add(ip_address(destination))
            except ValueError:
                raise CommandFailure(
                    list(result.args),
                    f"could not parse routing table entry: {line!r}",
                    stdout=result.stdout,
                    stderr=result.stderr or "",
                ) from None
        logger.debug("Parsed routes: %s", sorted(str(r) for r in routes))
        return routes

    # ── block / unblock ──────────────────────────────────────────────────

    def _add(self, address: IPAddress) -> None:
        result = self._invoke("add", "-host", str(address), "reject")
        self._check(result, known_noop=_ALREADY_PRESENT)
        if address not in self.current_table():
            raise NoEffect

    def _delete(self, address: IPAddress) -> None:
        result = self._invoke("delete", "-host", str(address), "reject")
        self._check(result, known_noop=_ALREADY_ABSENT)
        if address in self.current_table():
            raise NoEffect

    def _with_retry(
        self,
        operation: str,
        action: Callable[[IPAddress], None],
        address: IPAddress,
    ) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                action(address)
            except NoEffect:
                logger.debug(
                    "%s %s had no effect (attempt %d/%d)",
                    operation, address, attempt, self.max_attempts,
                )
                if attempt < self.max_attempts:
                    self._clock.sleep(self.retry_delay)
                continue
            logger.debug("%s %s done in %d attempt(s)", operation, address, attempt)
            return
        raise OperationTimeout(operation, str(address), self.max_attempts)

    def block(self, address: IPAddress | str) -> None:
        """Install a reject route for *address*; no-op if one is there."""
        address = ip_address(address)
        if address in self.current_table():
            return
        self._with_retry("block", self._add, address)

    def unblock(self, address: IPAddress | str) -> None:
        """Remove the reject route for *address*; no-op if it is absent."""
        address = ip_address(address)
        if address not in self.current_table():
            return
        self._with_retry("unblock", self._delete, address)
