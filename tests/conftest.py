"""In-process stand-ins for the clock, the ``route`` tool and DNS."""

import socket
import subprocess
from datetime import datetime, timedelta, timezone

import pytest

from booksafe.clock import Clock


# ── clock ────────────────────────────────────────────────────────────────────


class FakeClock(Clock):
    """Time only moves when someone sleeps (or a test moves it)."""

    def __init__(self, start: datetime = datetime(2026, 10, 19, 22, 0, tzinfo=timezone.utc)):
        self.start = start
        self.elapsed = 0.0
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def monotonic(self) -> float:
        return self.elapsed

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.elapsed += seconds


# ── route tool ───────────────────────────────────────────────────────────────

_HEADER = (
    "Kernel IP routing table\n"
    "Destination     Gateway         Genmask         Flags Metric Ref    Use Iface\n"
    "0.0.0.0         10.11.99.1      0.0.0.0         UG    0      0        0 wlan0\n"
)


class FakeRouteTool:
    """Behaves like ``route`` with an in-memory table.

    ``ignore`` makes the next N add/delete calls exit 0 without doing
    anything, like the real tool right after wake.
    """

    def __init__(self, routes: set[str] | None = None) -> None:
        self.routes: set[str] = set(routes or ())
        self.calls: list[list[str]] = []
        self.ignore = 0
        self.fail: tuple[int, str, str] | None = None

    def _done(self, command, returncode=0, stdout="", stderr=""):
        return subprocess.CompletedProcess(command, returncode, stdout=stdout, stderr=stderr)

    def __call__(self, command, capture_output=True, text=True, check=False):
        self.calls.append(list(command))
        args = list(command[1:])

        if args == ["-n"]:
            rows = "".join(
                f"{r:<16}-               255.255.255.255 !H    0      -        0 -\n"
                for r in sorted(self.routes)
            )
            return self._done(command, stdout=_HEADER + rows)

        if self.fail is not None:
            returncode, stdout, stderr = self.fail
            return self._done(command, returncode, stdout, stderr)

        verb, _host, address, _reject = args
        if self.ignore:
            self.ignore -= 1
            return self._done(command)

        if verb == "add":
            if address in self.routes:
                return self._done(command, 7, stderr="SIOCADDRT: File exists\n")
            self.routes.add(address)
        elif verb == "delete":
            if address not in self.routes:
                return self._done(command, 3, stderr="SIOCDELRT: No such process\n")
            self.routes.discard(address)
        return self._done(command)

    def verbs(self) -> list[str]:
        return [c[1] for c in self.calls if c[1] != "-n"]


# ── DNS ──────────────────────────────────────────────────────────────────────


class FakeDns:
    """``getaddrinfo`` replacement answering from a dict.

    Unknown names raise EAI_NONAME. The first ``offline`` lookups raise
    EAI_AGAIN as if no resolver were reachable.
    """

    def __init__(self, answers: dict[str, list[str]], offline: int = 0) -> None:
        self.answers = answers
        self.offline = offline
        self.calls: list[str] = []

    def __call__(self, host, port, family=0, type=0, proto=0, flags=0):
        self.calls.append(host)
        if self.offline:
            self.offline -= 1
            raise socket.gaierror(socket.EAI_AGAIN, "Temporary failure in name resolution")
        if host not in self.answers:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", (ip, 0))
            for ip in self.answers[host]
        ]


# ── fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def route_tool() -> FakeRouteTool:
    return FakeRouteTool()
