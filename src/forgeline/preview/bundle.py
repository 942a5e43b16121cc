"""Convert a file snapshot into the bundle consumed by the preview sandbox."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping

from forgeline.files.models import ProjectFile, normalize_path

DEFAULT_PACKAGE_JSON = {
    "name": "react-app",
    "version": "1.0.0",
    "dependencies": {
        "react": "^18.2.0",
        "react-dom": "^18.2.0",
        "react-router-dom": "",
    },
}

DEFAULT_PUBLIC_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>React App</title>
    <script src="https://cdn.tailwindcss.com"></script>
  </head>
  <body>
    <div id="root"></div>
  </body>
</html>"""

DEFAULT_INDEX_JS = """import React from 'react';
import ReactDOM from 'react-dom/client';
import App from './App';
import './index.css';

const root = ReactDOM.createRoot(document.getElementById('root'));
root.render(
  <React.StrictMode>
    <App />
  </React.StrictMode>
);"""

DEFAULT_INDEX_CSS = """@tailwind base;
@tailwind components;
@tailwind utilities;

html, body, #root {
  height: 100%;
}"""

DEFAULT_APP_JS = """import React from 'react';
import './index.css';

export default function App() {
  return (
    <div className="min-h-screen">
      <h1>Welcome to Your App</h1>
      <p>Start editing to see your changes live!</p>
    </div>
  );
}"""

# (bundle path, basenames that satisfy it, default code)
_REQUIRED_ENTRIES: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("/package.json", ("package.json",), json.dumps(DEFAULT_PACKAGE_JSON, indent=2)),
    ("/public/index.html", ("index.html",), DEFAULT_PUBLIC_HTML),
    ("/src/index.js", ("index.js", "index.jsx"), DEFAULT_INDEX_JS),
    ("/src/App.js", ("App.js", "App.jsx"), DEFAULT_APP_JS),
    ("/src/index.css", ("index.css",), DEFAULT_INDEX_CSS),
)

_HIDDEN_PREFIXES = (
    "package-lock.json",
    "node_modules",
    ".git",
    ".env",
    "build",
    "dist",
)

PreviewBundle = dict[str, dict[str, str]]


def is_hidden_path(path: str) -> bool:
    """Return whether a path is excluded from editor and preview views.

    Args:
        path: File path.

    Returns:
        True for lockfiles, VCS, env, and build output paths.
    """
    normalized = normalize_path(path)
    return any(
        normalized == prefix or normalized.startswith(f"{prefix}/")
        for prefix in _HIDDEN_PREFIXES
    )


def to_preview_bundle(files: Iterable[ProjectFile]) -> PreviewBundle:
    """Build `{"/path": {"code": ...}}` bundle with default entry files.

    Args:
        files: Snapshot files.

    Returns:
        Preview bundle keyed by leading-slash paths.
    """
    bundle: PreviewBundle = {}
    for item in files:
        if is_hidden_path(item.path):
            continue
        bundle[f"/{item.path}"] = {"code": item.content}
    basenames = {path.rpartition("/")[2] for path in bundle}
    for bundle_path, names, code in _REQUIRED_ENTRIES:
        if not basenames.intersection(names):
            bundle[bundle_path] = {"code": code}
    return bundle


def preview_warnings(files: Iterable[ProjectFile]) -> tuple[str, ...]:
    """List the entry files that the preview bundle will fill with defaults.

    Args:
        files: Snapshot files.

    Returns:
        Human-readable warnings, one per defaulted entry.
    """
    basenames = {item.name for item in files if not is_hidden_path(item.path)}
    return tuple(
        f"Missing {bundle_path.lstrip('/')} - using default"
        for bundle_path, names, _ in _REQUIRED_ENTRIES
        if not basenames.intersection(names)
    )


def bundle_to_records(bundle: Mapping[str, Mapping[str, str]]) -> list[dict[str, str]]:
    """Convert a preview bundle back to `{path, content}` records.

    Args:
        bundle: Preview bundle mapping.

    Returns:
        File records with normalized paths, in bundle order.
    """
    return [
        {
            "path": normalize_path(path),
            "content": entry.get("code") or entry.get("content") or "",
        }
        for path, entry in bundle.items()
    ]
