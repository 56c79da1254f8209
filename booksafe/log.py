"""Root logger setup for the lock/unlock entry points."""

import logging
import sys

_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
_handler: logging.Handler | None = None


def setup_logging(level: int | str = logging.INFO) -> None:
    """Send everything at *level* and above to stdout.

    Safe to call more than once; the handler is installed only the first
    time, later calls just adjust the level.
    """
    global _handler
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if _handler is not None:
        return

    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    root_logger.addHandler(_handler)
