"""Unit tests for display ordering and tree building."""

from __future__ import annotations

import pytest

from forgeline.files.models import ProjectFile
from forgeline.files.tree import build_tree, group_by_directory, sort_for_display


def _files(*paths: str) -> list[ProjectFile]:
    return [ProjectFile(path=path, content="") for path in paths]


@pytest.mark.unit
def test_sort_for_display_is_stable_across_input_orders() -> None:
    """Same file set yields the same order regardless of insertion order."""
    paths = ["src/b.js", "index.html", "src/components/Nav.js", "src/a.js"]

    forward = [f.path for f in sort_for_display(_files(*paths))]
    backward = [f.path for f in sort_for_display(_files(*reversed(paths)))]

    assert forward == backward
    assert forward == [
        "index.html",
        "src/a.js",
        "src/b.js",
        "src/components/Nav.js",
    ]


@pytest.mark.unit
def test_group_by_directory_keeps_root_group_first() -> None:
    """Root-level files form the first group."""
    groups = group_by_directory(_files("src/App.js", "package.json", "public/x.html"))

    assert list(groups) == ["", "public", "src"]
    assert [f.name for f in groups["src"]] == ["App.js"]


@pytest.mark.unit
def test_build_tree_nests_directories_before_files() -> None:
    """Tree puts directories first, alphabetical, with icons on files."""
    # Act - build from unordered paths
    root = build_tree(["src/index.css", "README.md", "src/App.js", "src/ui/Button.tsx"])

    # Assert - top level: src dir then README
    assert [(c.name, c.is_dir) for c in root.children] == [
        ("src", True),
        ("README.md", False),
    ]
    src = root.children[0]
    assert [c.name for c in src.children] == ["ui", "App.js", "index.css"]
    assert src.children[0].path == "src/ui"
    assert src.children[0].children[0].icon == "typescript"
    assert src.children[1].icon == "react"
    assert root.children[1].icon == "docs"
