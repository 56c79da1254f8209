"""Library tree rebuilt from the flat metadata records.

The appliance stores every document and folder as an independent record
that only names its parent by id. ``DocumentTree.build`` turns that flat
list back into a folder hierarchy which can then be queried by path.

Storage
-------
Nodes live in a list and refer to each other by integer handle (their index
in that list), never by object reference. ``_index`` maps item id to handle.
Two permanent roots exist from construction on: the library root and the
trash root, with ids given to the constructor (``""`` and ``"trash"`` on the
device).

Building
--------
Two passes. First every record is bucketed under its parent id, then the
buckets are drained breadth-first starting at the two roots. A folder node
is only created once its parent node exists, so each node gets exactly one
parent, exactly once, and no cycle can ever be formed. Records that are
never reached this way (parent missing, or parents forming a loop) are kept
in ``unreachable`` for reporting and otherwise ignored.

Ordering
--------
Children and files of a folder are sorted by ``(display_name, id)``, which
makes the tree independent of the order the records arrived in. Duplicate
sibling names are *not* disambiguated: ``resolve`` takes the first match.
"""

import logging
from collections import defaultdict, deque
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from booksafe.errors import FolderNotFound
from booksafe.metadata import ItemKind, ItemRecord

logger = logging.getLogger(__name__)

DEFAULT_ROOT_ID = ""
DEFAULT_TRASH_ID = "trash"

_INDENT = "    "


@dataclass(frozen=True)
class Document:
    id: str
    display_name: str


@dataclass
class Node:
    """A folder.  ``parent`` and ``children`` hold handles, not nodes."""

    id: str
    display_name: str
    parent: int | None
    children: list[int] = field(default_factory=list)
    files: list[Document] = field(default_factory=list)


def _sort_key(record: ItemRecord) -> tuple[str, str]:
    return record.display_name, record.id


def _segments(path: str | Sequence[str]) -> list[str]:
    if isinstance(path, str):
        return [seg for seg in path.split("/") if seg]
    return list(path)


class DocumentTree:
    def __init__(
        self,
        root_id: str = DEFAULT_ROOT_ID,
        trash_id: str = DEFAULT_TRASH_ID,
    ) -> None:
        if root_id == trash_id:
            raise ValueError("root and trash need distinct ids")
        self._nodes: list[Node] = []
        self._index: dict[str, int] = {}
        self.unreachable: list[ItemRecord] = []
        self.root = self._add_node(root_id, "", None)
        self.trash = self._add_node(trash_id, "trash", None)

    # ── construction ─────────────────────────────────────────────────────

    @classmethod
    def build(
        cls,
        records: Iterable[ItemRecord],
        root_id: str = DEFAULT_ROOT_ID,
        trash_id: str = DEFAULT_TRASH_ID,
    ) -> "DocumentTree":
        tree = cls(root_id, trash_id)

        by_parent: dict[str, list[ItemRecord]] = defaultdict(list)
        for record in records:
            by_parent[record.parent or root_id].append(record)

        pending = deque([tree.root, tree.trash])
        while pending:
            handle = pending.popleft()
            node = tree._nodes[handle]
            for record in sorted(by_parent.pop(node.id, ()), key=_sort_key):
                if record.kind is ItemKind.DOCUMENT:
                    node.files.append(Document(record.id, record.display_name))
                elif record.id in tree._index:
                    # same id seen twice; the first placement stands
                    tree.unreachable.append(record)
                else:
                    child = tree._add_node(record.id, record.display_name, handle)
                    node.children.append(child)
                    pending.append(child)

        for orphans in by_parent.values():
            tree.unreachable.extend(orphans)
        if tree.unreachable:
            logger.warning(
                "%d metadata record(s) not reachable from the library root: %s",
                len(tree.unreachable),
                ", ".join(r.id for r in tree.unreachable),
            )
        return tree

    def _add_node(self, item_id: str, display_name: str, parent: int | None) -> int:
        handle = len(self._nodes)
        self._nodes.append(Node(item_id, display_name, parent))
        self._index[item_id] = handle
        return handle

    # ── lookup ───────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, handle: int) -> Node:
        return self._nodes[handle]

    def find(self, item_id: str) -> int | None:
        """Handle of the folder with *item_id*, or None."""
        return self._index.get(item_id)

    def top_level_names(self) -> list[str]:
        return [self._nodes[c].display_name for c in self._nodes[self.root].children]

    def resolve(self, path: str | Sequence[str]) -> int:
        """Walk *path* down from the library root, matching display names.

        *path* is either ``"Books/Stories"`` or ``["Books", "Stories"]``; an
        empty path is the root itself. Raises FolderNotFound.
        """
        handle = self.root
        for segment in _segments(path):
            handle = next(
                (c for c in self._nodes[handle].children
                 if self._nodes[c].display_name == segment),
                -1,
            )
            if handle == -1:
                shown = path if isinstance(path, str) else "/".join(path)
                raise FolderNotFound([shown], self.top_level_names())
        return handle

    def path_of(self, handle: int) -> str:
        parts: list[str] = []
        current: int | None = handle
        while current is not None and current not in (self.root, self.trash):
            node = self._nodes[current]
            parts.append(node.display_name)
            current = node.parent
        return "/".join(reversed(parts))

    # ── traversal ────────────────────────────────────────────────────────

    def descendants(self, handle: int) -> Iterator[int]:
        """Yield *handle* and every folder below it, depth first, pre-order."""
        stack = [handle]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self._nodes[current].children))

    def descendant_files(self, handle: int) -> set[str]:
        """Ids of every document in the folder at *handle* or below it."""
        return {
            doc.id
            for folder in self.descendants(handle)
            for doc in self._nodes[folder].files
        }

    def folders_under(self, handle: int) -> list[str]:
        """Display names of the folder at *handle* and all its sub-folders."""
        return [self._nodes[h].display_name for h in self.descendants(handle)]

    # ── reporting ────────────────────────────────────────────────────────

    def render(self, handle: int | None = None) -> str:
        """Indented listing of the subtree at *handle* (default: root).

        Each folder is followed by its own files (sorted by name), then by
        its sub-folders.
        """
        start = self.root if handle is None else handle
        lines: list[str] = []

        def _render(current: int, depth: int) -> None:
            node = self._nodes[current]
            label = node.display_name or "/"
            if depth == 0:
                lines.append(label)
            else:
                lines.append(_INDENT * (depth - 1) + "|-- " + label)
            for doc in sorted(node.files, key=lambda d: (d.display_name, d.id)):
                lines.append(_INDENT * depth + "|-- " + doc.display_name)
            for child in node.children:
                _render(child, depth + 1)

        _render(start, 0)
        return "\n".join(lines) + "\n"
