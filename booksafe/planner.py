"""Turn the user's list of folders to hide into a list of documents.

Overlap
-------
Requesting ``Books`` and ``Books/Stories`` would otherwise process the
stories twice. ``without_overlapping`` drops any path that lies inside
another requested path. Containment is decided per path segment:
``Books`` covers ``Books/Stories`` but not ``BooksArchive``.
"""

import logging
from collections.abc import Iterable

from booksafe.errors import FolderNotFound
from booksafe.tree import DocumentTree

logger = logging.getLogger(__name__)


def _contains(outer: str, inner: str) -> bool:
    return inner == outer or inner.startswith(outer + "/")


def without_overlapping(paths: Iterable[str]) -> list[str]:
    """Shortest paths first, keeping only those not nested in a kept path."""
    kept: list[str] = []
    for path in sorted(paths, key=len):
        if not any(_contains(outer, path) for outer in kept):
            kept.append(path)
    return kept


def plan_lock(tree: DocumentTree, paths: Iterable[str]) -> list[str]:
    """Ids of every document below the requested folders.

    Every path is resolved before anything is reported, so a typo in one
    folder name is shown together with any others. Raises FolderNotFound.
    """
    missing: list[str] = []
    handles: list[int] = []
    for path in without_overlapping(p.strip("/") for p in paths):
        try:
            handles.append(tree.resolve(path))
        except FolderNotFound:
            missing.append(path)

    if missing:
        raise FolderNotFound(missing, tree.top_level_names())

    planned: list[str] = []
    seen: set[str] = set()
    for handle in handles:
        for item_id in sorted(tree.descendant_files(handle) - seen):
            planned.append(item_id)
            seen.add(item_id)
        logger.debug(
            "Folder %r: %d folder(s) covered", tree.path_of(handle),
            len(tree.folders_under(handle)),
        )
    logger.info("Planned %d document(s) in %d folder(s)", len(planned), len(handles))
    return planned
