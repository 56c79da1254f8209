"""Centralised runtime configuration with fail-fast validation.

Usage
-----
    from booksafe import config

    # once, at startup:
    settings = config.load()   # prints diagnostics, sys.exit(1) on error

    # anywhere else:
    settings = config.get()    # returns cached Settings; raises if not loaded
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

# honour a .env file in the working directory (handy when testing off-device)
from dotenv import load_dotenv

load_dotenv()  # no-op when .env doesn't exist


DEFAULT_METADATA_DIR = "/home/root/.local/share/remarkable/xochitl"
DEFAULT_DATA_DIR = "/home/root/.local/share/book-safe"
DEFAULT_ROUTE_TOOL = "route"
DEFAULT_DNS_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "INFO"

_LOG_LEVELS: frozenset[str] = frozenset(
    {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
)


# ── public data class ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Settings:
    """Immutable, process-wide settings."""

    metadata_dir: Path  # the appliance's document store (read-only for us)
    data_dir: Path  # writable dir for the route cache
    route_tool: str = DEFAULT_ROUTE_TOOL
    dns_timeout: float = DEFAULT_DNS_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def route_cache(self) -> Path:
        return self.data_dir / "routes.json"


# ── module-level singleton ───────────────────────────────────────────────────

_settings: Settings | None = None


def load() -> Settings:
    """Read env vars, validate, cache, and return Settings.

    * Creates BOOKSAFE_DATA_DIR if it doesn't exist (errors if it can't).
    * Prints a clear summary on success; prints every error and calls
      sys.exit(1) on failure.
    * Idempotent: returns the cached singleton on subsequent calls.
    """
    global _settings
    if _settings is not None:
        return _settings

    errors: list[str] = []

    # ── XOCHITL_DIR ──────────────────────────────────────────────────────
    metadata_raw = os.environ.get("XOCHITL_DIR", "").strip() or DEFAULT_METADATA_DIR
    metadata_path: Path | None = Path(metadata_raw)
    if not metadata_path.exists():
        errors.append(
            f"XOCHITL_DIR={metadata_raw} does not exist. "
            "Point it at the directory holding the *.metadata files."
        )
        metadata_path = None
    elif not metadata_path.is_dir():
        errors.append(f"XOCHITL_DIR={metadata_raw} exists but is not a directory.")
        metadata_path = None

    # ── BOOKSAFE_DATA_DIR ────────────────────────────────────────────────
    data_raw = os.environ.get("BOOKSAFE_DATA_DIR", "").strip() or DEFAULT_DATA_DIR
    data_path: Path | None = Path(data_raw)
    if not data_path.exists():
        try:
            data_path.mkdir(parents=True, exist_ok=True)
            print(f"  ℹ  Created BOOKSAFE_DATA_DIR: {data_path}")
        except OSError as exc:
            errors.append(
                f"BOOKSAFE_DATA_DIR={data_raw} does not exist and could not be created: {exc}"
            )
            data_path = None
    if data_path is not None and not data_path.is_dir():
        errors.append(f"BOOKSAFE_DATA_DIR={data_raw} exists but is not a directory.")
        data_path = None

    # ── ROUTE_TOOL ───────────────────────────────────────────────────────
    route_tool = os.environ.get("ROUTE_TOOL", "").strip() or DEFAULT_ROUTE_TOOL

    # ── DNS_TIMEOUT_SECONDS ──────────────────────────────────────────────
    dns_timeout = DEFAULT_DNS_TIMEOUT
    timeout_raw = os.environ.get("DNS_TIMEOUT_SECONDS", "").strip()
    if timeout_raw:
        try:
            dns_timeout = float(timeout_raw)
        except ValueError:
            errors.append(f"DNS_TIMEOUT_SECONDS={timeout_raw} is not a number.")
        else:
            if dns_timeout <= 0:
                errors.append(f"DNS_TIMEOUT_SECONDS={timeout_raw} must be positive.")

    # ── LOG_LEVEL ────────────────────────────────────────────────────────
    log_level = os.environ.get("LOG_LEVEL", "").strip().upper() or DEFAULT_LOG_LEVEL
    if log_level not in _LOG_LEVELS:
        errors.append(
            f"LOG_LEVEL={log_level} is not one of: {', '.join(sorted(_LOG_LEVELS))}."
        )

    # ── Abort on any error ───────────────────────────────────────────────
    if errors:
        print("\n❌  book-safe — configuration error\n", file=sys.stderr)
        for e in errors:
            print(f"     • {e}", file=sys.stderr)
        print("", file=sys.stderr)
        sys.exit(1)

    assert metadata_path is not None and data_path is not None

    _settings = Settings(
        metadata_dir=metadata_path.resolve(),
        data_dir=data_path.resolve(),
        route_tool=route_tool,
        dns_timeout=dns_timeout,
        log_level=log_level,
    )

    print("✅  book-safe — config loaded")
    print(f"     XOCHITL_DIR       = {_settings.metadata_dir}")
    print(f"     BOOKSAFE_DATA_DIR = {_settings.data_dir}")
    print(f"     ROUTE_TOOL        = {_settings.route_tool}")
    logging.getLogger(__name__).debug("settings: %s", _settings)
    return _settings


def get() -> Settings:
    """Return the already-loaded Settings.  Raises if load() hasn't run."""
    if _settings is None:
        raise RuntimeError("Config not initialised — call config.load() at startup.")
    return _settings
