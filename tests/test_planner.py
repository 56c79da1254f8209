"""Tests for booksafe.planner — overlap removal and lock planning."""

import pytest

from booksafe.errors import FolderNotFound
from booksafe.metadata import ItemKind, ItemRecord
from booksafe.planner import plan_lock, without_overlapping
from booksafe.tree import DocumentTree


@pytest.fixture()
def tree() -> DocumentTree:
    records = [
        ItemRecord("books", "", "Books", ItemKind.COLLECTION),
        ItemRecord("stories", "books", "Stories", ItemKind.COLLECTION),
        ItemRecord("archive", "", "BooksArchive", ItemKind.COLLECTION),
        ItemRecord("work", "", "Work", ItemKind.COLLECTION),
        ItemRecord("dune", "books", "Dune", ItemKind.DOCUMENT),
        ItemRecord("grimm", "stories", "Grimm", ItemKind.DOCUMENT),
        ItemRecord("old", "archive", "Old", ItemKind.DOCUMENT),
        ItemRecord("notes", "work", "Notes", ItemKind.DOCUMENT),
        ItemRecord("loose", "", "Loose", ItemKind.DOCUMENT),
    ]
    return DocumentTree.build(records)


# ════════════════════════════════════════════════════════════════════════════════
# without_overlapping
# ════════════════════════════════════════════════════════════════════════════════


class TestWithoutOverlapping:
    def test_disjoint_paths_shortest_first(self):
        paths = ["a/aa/aaa", "b/bb", "a/aa/aab", "b/ba"]
        assert without_overlapping(paths) == ["b/bb", "b/ba", "a/aa/aaa", "a/aa/aab"]

    def test_nested_dropped(self):
        paths = ["a/aa", "b/bb", "a/aa/aab", "b/ba"]
        assert without_overlapping(paths) == ["a/aa", "b/bb", "b/ba"]

    def test_child_of_requested(self):
        assert without_overlapping(["Books", "Books/Stories"]) == ["Books"]

    def test_shared_name_prefix_is_not_nesting(self):
        assert without_overlapping(["Books", "BooksArchive"]) == ["Books", "BooksArchive"]

    def test_duplicates_collapse(self):
        assert without_overlapping(["Books", "Books"]) == ["Books"]

    def test_idempotent(self):
        for paths in (
            ["a/aa/aaa", "b/bb", "a/aa/aab", "b/ba"],
            ["a/aa", "b/bb", "a/aa/aab", "b/ba"],
            ["x", "x/y", "x/y/z", "xy", "w"],
        ):
            once = without_overlapping(paths)
            assert without_overlapping(once) == once

    def test_empty(self):
        assert without_overlapping([]) == []


# ════════════════════════════════════════════════════════════════════════════════
# plan_lock
# ════════════════════════════════════════════════════════════════════════════════


class TestPlanLock:
    def test_documents_below_folder(self, tree: DocumentTree):
        assert plan_lock(tree, ["Books"]) == ["dune", "grimm"]

    def test_nested_request_counted_once(self, tree: DocumentTree):
        assert plan_lock(tree, ["Books/Stories", "Books"]) == ["dune", "grimm"]

    def test_several_folders(self, tree: DocumentTree):
        assert plan_lock(tree, ["Work", "BooksArchive"]) == ["notes", "old"]

    def test_trailing_slash_tolerated(self, tree: DocumentTree):
        assert plan_lock(tree, ["Books/Stories/"]) == ["grimm"]

    def test_all_missing_paths_reported_together(self, tree: DocumentTree):
        with pytest.raises(FolderNotFound) as exc_info:
            plan_lock(tree, ["Books", "Bokos", "Work/Nope"])
        err = exc_info.value
        assert sorted(err.paths) == ["Bokos", "Work/Nope"]
        assert err.available == ["Books", "BooksArchive", "Work"]
        assert "Bokos" in str(err)

    def test_nothing_requested(self, tree: DocumentTree):
        assert plan_lock(tree, []) == []
