"""book-safe — lock and unlock entry points.

The argument parser and the step that moves document files out of the
library live outside this package; these functions are what they call.
"""

import logging
from datetime import time

from booksafe import log
from booksafe.blocker import SyncBlocker
from booksafe.config import Settings
from booksafe.metadata import load_records
from booksafe.planner import plan_lock
from booksafe.tree import DocumentTree

logger = logging.getLogger(__name__)


def should_lock(now: time, start: time, end: time) -> bool:
    """True if *now* is inside the lock window; windows may wrap midnight."""
    if start <= end:
        return start <= now <= end
    return now >= start or now <= end


def lock_now(
    settings: Settings,
    folders: list[str],
    blocker: SyncBlocker | None = None,
) -> list[str]:
    """Block sync, then return the ids of every document to hide.

    Folder problems are reported before sync is touched, so a typo never
    leaves the device blocked with nothing hidden.
    """
    log.setup_logging(settings.log_level)

    records, errors = load_records(settings.metadata_dir)
    if errors:
        logger.warning("%d metadata record(s) could not be read", len(errors))
    tree = DocumentTree.build(records)
    documents = plan_lock(tree, folders)

    (blocker or SyncBlocker.from_settings(settings)).block()
    return documents


def unlock_now(settings: Settings, blocker: SyncBlocker | None = None) -> None:
    log.setup_logging(settings.log_level)
    (blocker or SyncBlocker.from_settings(settings)).unblock()
