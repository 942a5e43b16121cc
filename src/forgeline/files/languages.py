"""Path classification helpers shared by file tree, editor, and preview."""

from __future__ import annotations

_LANGUAGE_BY_EXTENSION = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "html": "html",
    "htm": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "json": "json",
    "md": "markdown",
    "py": "python",
    "php": "php",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "xml": "xml",
    "yml": "yaml",
    "yaml": "yaml",
}

_ICON_BY_EXTENSION = {
    "js": "react",
    "jsx": "react",
    "ts": "typescript",
    "tsx": "typescript",
    "css": "style",
    "scss": "style",
    "sass": "style",
    "html": "markup",
    "htm": "markup",
    "json": "data",
    "md": "docs",
}

_SIZE_UNITS = ("B", "KB", "MB", "GB")

DEFAULT_LANGUAGE = "plaintext"


def extension_of(path: str) -> str:
    """Return lower-cased extension of the path basename, or empty string.

    Args:
        path: File path.

    Returns:
        Extension without the dot.
    """
    name = path.rpartition("/")[2]
    if "." not in name:
        return ""
    return name.rpartition(".")[2].lower()


def language_for_path(path: str) -> str:
    """Derive editor language id from a path extension.

    Args:
        path: File path.

    Returns:
        Language id, `plaintext` when the extension is unknown.
    """
    return _LANGUAGE_BY_EXTENSION.get(extension_of(path), DEFAULT_LANGUAGE)


def icon_for_path(path: str) -> str:
    """Classify a path into a file-tree icon category."""
    return _ICON_BY_EXTENSION.get(extension_of(path), "file")


def format_file_size(size: int | None) -> str:
    """Render byte size for display.

    Args:
        size: Byte size, or None when unknown.

    Returns:
        Human-readable size such as `1.5 KB`; empty string when unknown.
    """
    if size is None:
        return ""
    value = float(size)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS:
        if value < 1024 or unit == _SIZE_UNITS[-1]:
            break
        value /= 1024
    if unit == "B":
        return f"{int(value)} B"
    return f"{value:.2f}".rstrip("0").rstrip(".") + f" {unit}"
