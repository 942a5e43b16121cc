"""Display ordering and directory tree derived from a file snapshot."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from forgeline.files.languages import icon_for_path
from forgeline.files.models import ProjectFile


class TreeNode(BaseModel):
    """One directory or file node of the project tree."""

    model_config = ConfigDict(extra="forbid")

    name: str
    path: str
    is_dir: bool
    icon: str = "folder"
    children: list[TreeNode] = Field(default_factory=list)


def display_key(path: str) -> tuple[int, str, str]:
    """Sort key grouping by directory, root-level files first.

    Args:
        path: Normalized file path.

    Returns:
        Tuple of (group rank, directory, basename).
    """
    directory, _, name = path.rpartition("/")
    return (0 if not directory else 1, directory, name)


def sort_for_display(files: Iterable[ProjectFile]) -> tuple[ProjectFile, ...]:
    """Order files by directory group, alphabetically within each group.

    Args:
        files: Files in any order.

    Returns:
        Files in stable display order.
    """
    return tuple(sorted(files, key=lambda item: display_key(item.path)))


def group_by_directory(
    files: Iterable[ProjectFile],
) -> dict[str, tuple[ProjectFile, ...]]:
    """Group files by parent directory in display order.

    Args:
        files: Files in any order.

    Returns:
        Mapping of directory (empty string for root) to ordered files.
    """
    groups: dict[str, list[ProjectFile]] = {}
    for item in sort_for_display(files):
        groups.setdefault(item.directory, []).append(item)
    return {directory: tuple(items) for directory, items in groups.items()}


def build_tree(paths: Sequence[str]) -> TreeNode:
    """Build nested directory tree with directories before files.

    Args:
        paths: Normalized file paths.

    Returns:
        Root directory node (empty name and path).
    """
    root = TreeNode(name="", path="", is_dir=True)
    for path in paths:
        parts = path.split("/")
        node = root
        for index, part in enumerate(parts[:-1]):
            dir_path = "/".join(parts[: index + 1])
            child = next(
                (c for c in node.children if c.is_dir and c.name == part), None
            )
            if child is None:
                child = TreeNode(name=part, path=dir_path, is_dir=True)
                node.children.append(child)
            node = child
        node.children.append(
            TreeNode(
                name=parts[-1],
                path=path,
                is_dir=False,
                icon=icon_for_path(path),
            )
        )
    _sort_children(root)
    return root


def _sort_children(node: TreeNode) -> None:
    node.children.sort(key=lambda child: (not child.is_dir, child.name))
    for child in node.children:
        if child.is_dir:
            _sort_children(child)
