"""Error kinds raised by book-safe.

Everything derives from ``BookSafeError``.

MetadataError       – one metadata record could not be parsed (collected).
FolderNotFound      – requested folder path(s) missing from the tree.
CommandFailure      – routing tool failed in a way we do not retry.
OperationTimeout    – retry budget for a route operation exhausted.
PersistenceFailure  – route cache could not be read or written.
NoSyncRoutes        – nothing resolved and nothing cached; cannot block.
"""

from collections.abc import Sequence
from pathlib import Path


class BookSafeError(Exception):
    """Base class for every error book-safe raises on purpose."""


# ── document tree ────────────────────────────────────────────────────────────


class MetadataError(BookSafeError):
    def __init__(self, item_id: str, reason: str) -> None:
        self.item_id = item_id
        self.reason = reason
        super().__init__(f"{item_id}: {reason}")


class FolderNotFound(BookSafeError):
    """One or more folder paths did not resolve.

    ``available`` lists the folder names that *do* exist at the top of the
    library so the message can point the user at what they probably meant.
    """

    def __init__(self, paths: Sequence[str], available: Sequence[str] = ()) -> None:
        self.paths = list(paths)
        self.available = list(available)
        message = "folder(s) not found: " + ", ".join(repr(p) for p in self.paths)
        if self.available:
            message += "; available: " + ", ".join(repr(a) for a in self.available)
        super().__init__(message)


# ── route table ──────────────────────────────────────────────────────────────


class CommandFailure(BookSafeError):
    """The routing tool could not run, or failed without a known no-op cause."""

    def __init__(
        self,
        command: Sequence[str],
        reason: str,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.reason = reason
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(self._format())

    def _format(self) -> str:
        lines = [f"{self.reason}: {' '.join(self.command)}"]
        if self.returncode is not None:
            lines.append(f"exit status: {self.returncode}")
        if self.stdout.strip():
            lines.append(f"stdout: {self.stdout.strip()}")
        if self.stderr.strip():
            lines.append(f"stderr: {self.stderr.strip()}")
        return "\n".join(lines)


class OperationTimeout(BookSafeError):
    def __init__(self, operation: str, address: str, attempts: int) -> None:
        self.operation = operation
        self.address = address
        self.attempts = attempts
        super().__init__(
            f"timed out trying to {operation} {address} after {attempts} attempts"
        )


class MultipleTimeouts(OperationTimeout):
    """Several addresses timed out in the same block/unblock run."""

    def __init__(self, failures: Sequence[OperationTimeout]) -> None:
        self.failures = list(failures)
        first = self.failures[0]
        BookSafeError.__init__(
            self,
            "timed out on {} addresses: {}".format(
                len(self.failures),
                "; ".join(str(f) for f in self.failures),
            ),
        )
        self.operation = first.operation
        self.address = first.address
        self.attempts = first.attempts


# ── route cache ──────────────────────────────────────────────────────────────


class PersistenceFailure(BookSafeError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"route cache {path}: {reason}")


class NoSyncRoutes(BookSafeError):
    def __init__(self) -> None:
        super().__init__(
            "no sync routes resolved in time and the route cache is empty"
        )
