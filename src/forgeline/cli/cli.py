"""Typer CLI entrypoint for forgeline."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated
from uuid import uuid4

import typer
from rich.console import Console
from rich.json import JSON
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from forgeline.config import (
    ConfigError,
    ForgelineConfig,
    dump_default_config,
    load_config,
)
from forgeline.files.errors import StoreError
from forgeline.files.languages import format_file_size
from forgeline.files.models import GenerationResult, Project, ProjectType
from forgeline.files.store import ProjectFileStore, StoreSnapshot
from forgeline.files.tree import TreeNode, build_tree
from forgeline.preview.bundle import preview_warnings, to_preview_bundle
from forgeline.session.snapshot import (
    SnapshotDecodeError,
    SnapshotSchemaVersionError,
    load_snapshot,
    recover_corrupt_snapshot,
    restore_store,
    save_snapshot,
)

app = typer.Typer(help="forgeline project file state CLI")
_CONSOLE = Console()
_LOGGER = logging.getLogger(__name__)
_LOGGING_CONFIGURED = False

SnapshotArg = Annotated[
    Path,
    typer.Argument(file_okay=True, dir_okay=False, help="Project snapshot JSON file."),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config-file",
        file_okay=True,
        dir_okay=False,
        help="Path to forgeline config YAML/JSON file.",
    ),
]


def _configure_logging() -> None:
    """Configure Rich-backed logging once for CLI commands."""
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
    )
    _LOGGING_CONFIGURED = True


def _default_config_file() -> Path:
    """Return default config path under the current directory.

    Returns:
        Config file path (YAML preferred, JSON when only that exists).
    """
    root = Path.cwd() / ".forgeline"
    yaml_path = root / "config.yaml"
    json_path = root / "config.json"
    if not yaml_path.exists() and json_path.exists():
        return json_path
    return yaml_path


def _load_effective_config(config_file: Path | None) -> ForgelineConfig:
    """Load config, falling back to defaults with a warning when invalid.

    Args:
        config_file: Optional config path override.

    Returns:
        Effective config.
    """
    path = config_file or _default_config_file()
    try:
        return load_config(path)
    except ConfigError as exc:
        _CONSOLE.print(
            f"[yellow]Config at {path} is invalid; falling back to defaults.[/yellow]"
        )
        _CONSOLE.print(f"[yellow]Reason: {exc}[/yellow]")
        return ForgelineConfig()


def _fail(message: str) -> typer.Exit:
    """Print an error and build the exit signal.

    Args:
        message: Error text.

    Returns:
        Exit exception with code 1.
    """
    _CONSOLE.print(f"[bold red]{message}[/bold red]")
    return typer.Exit(code=1)


def _read_snapshot(path: Path) -> StoreSnapshot:
    """Load a snapshot or exit with a readable error.

    Invalid snapshots are moved aside so the next `new` can reuse the path.

    Args:
        path: Snapshot file path.

    Returns:
        Loaded snapshot.

    Raises:
        typer.Exit: If the snapshot is missing or invalid.
    """
    try:
        return load_snapshot(path)
    except FileNotFoundError as exc:
        raise _fail(f"Snapshot not found: {path}") from exc
    except (SnapshotDecodeError, SnapshotSchemaVersionError) as exc:
        backup = recover_corrupt_snapshot(path)
        if backup is not None:
            _CONSOLE.print(
                f"[yellow]Snapshot file was invalid. Moved to {backup}.[/yellow]"
            )
        _CONSOLE.print(f"[yellow]Reason: {exc}[/yellow]")
        raise _fail("Snapshot could not be loaded.") from exc


def _render_tree(node: TreeNode, branch: Tree, active_path: str | None) -> None:
    for child in node.children:
        if child.is_dir:
            sub = branch.add(f"[bold blue]{child.name}/[/bold blue]")
            _render_tree(child, sub, active_path)
            continue
        label = f"{child.name} [dim]({child.icon})[/dim]"
        if child.path == active_path:
            label = f"[reverse]{label}[/reverse]"
        branch.add(label)


def _render_snapshot(snapshot: StoreSnapshot) -> None:
    project = snapshot.project
    title = project.name if project is not None else "(no project)"
    tree = Tree(f"[bold]{title}[/bold]")
    _render_tree(
        build_tree([item.path for item in snapshot.files]), tree, snapshot.active_path
    )
    _CONSOLE.print(tree)
    table = Table(title="Files", show_header=True, header_style="bold cyan")
    table.add_column("Path", style="bold")
    table.add_column("Language")
    table.add_column("Size", justify="right")
    table.add_column("Origin")
    table.add_column("Saved")
    for item in snapshot.files:
        table.add_row(
            item.path,
            item.language,
            format_file_size(item.size),
            item.origin.value,
            "[red]unsaved[/red]" if item.is_dirty else "[green]yes[/green]",
        )
    _CONSOLE.print(table)
    active = snapshot.active_path or "-"
    _CONSOLE.print(f"{snapshot.file_count} file(s); active: {active}")


@app.command("init-config")
def init_config_command(
    config_file: ConfigOption = None,
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", help="Overwrite existing config with defaults."),
    ] = False,
) -> None:
    """Write the default config file.

    Args:
        config_file: Optional config path override.
        overwrite: Whether to replace an existing file.
    """
    _configure_logging()
    path = config_file or _default_config_file()
    written = dump_default_config(path, overwrite=overwrite)
    status = "written" if written else "exists"
    _CONSOLE.print(Panel(f"Config: {path}\nStatus: {status}", title="forgeline"))


@app.command("new")
def new_command(
    snapshot_file: SnapshotArg,
    name: Annotated[str, typer.Option("--name", help="Project name.")],
    project_type: Annotated[
        ProjectType, typer.Option("--type", help="Project type.")
    ] = ProjectType.REACT_APP,
    description: Annotated[str, typer.Option(help="Project description.")] = "",
    project_id: Annotated[
        str | None, typer.Option("--id", help="Project id; random when omitted.")
    ] = None,
) -> None:
    """Create an empty project snapshot.

    Args:
        snapshot_file: Snapshot path to create.
        name: Project name.
        project_type: Project type.
        description: Project description.
        project_id: Optional explicit project id.
    """
    _configure_logging()
    if snapshot_file.exists():
        raise _fail(f"Snapshot already exists: {snapshot_file}")
    store = ProjectFileStore()
    store.replace_project(
        Project(
            id=project_id or str(uuid4()),
            name=name,
            description=description,
            type=project_type,
        )
    )
    save_snapshot(store.snapshot(), snapshot_file)
    _CONSOLE.print(f"[green]Created project snapshot {snapshot_file}[/green]")


@app.command("show")
def show_command(snapshot_file: SnapshotArg) -> None:
    """Render the file tree and file table of a snapshot.

    Args:
        snapshot_file: Snapshot path.
    """
    _configure_logging()
    _render_snapshot(_read_snapshot(snapshot_file))


@app.command("apply")
def apply_command(
    snapshot_file: SnapshotArg,
    result_file: Annotated[
        Path,
        typer.Argument(
            file_okay=True, dir_okay=False, help="Generation result JSON file."
        ),
    ],
    config_file: ConfigOption = None,
) -> None:
    """Merge a generation result into a snapshot and save it.

    Args:
        snapshot_file: Snapshot path.
        result_file: Generation response JSON (`{explanation, files}`).
        config_file: Optional config path override.
    """
    _configure_logging()
    config = _load_effective_config(config_file)
    snapshot = _read_snapshot(snapshot_file)
    try:
        payload = json.loads(result_file.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise _fail(f"Generation result not found: {result_file}") from exc
    except json.JSONDecodeError as exc:
        raise _fail(f"Invalid generation result JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise _fail("Invalid generation result: root must be an object")

    store = ProjectFileStore(
        navigate_to_first_file=config.generation.navigate_to_first_file
    )
    try:
        restore_store(snapshot, store)
        report = store.apply_generation_result(GenerationResult.from_payload(payload))
    except (SnapshotDecodeError, StoreError) as exc:
        raise _fail(str(exc)) from exc
    save_snapshot(store.snapshot(), snapshot_file)

    table = Table(title="Generation Merge", show_header=True, header_style="bold cyan")
    table.add_column("Path", style="bold")
    table.add_column("Action")
    for path in report.created:
        table.add_row(path, "[green]created[/green]")
    for path in report.updated:
        table.add_row(path, "[cyan]updated[/cyan]")
    for skip in report.skipped:
        table.add_row(
            skip.path or f"#{skip.index}",
            f"[yellow]skipped: {skip.reason}[/yellow]",
        )
    _CONSOLE.print(table)
    if report.navigated_to:
        _CONSOLE.print(f"Active file: {report.navigated_to}")


@app.command("bundle")
def bundle_command(
    snapshot_file: SnapshotArg,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write bundle JSON to this file."),
    ] = None,
) -> None:
    """Emit the preview bundle for a snapshot.

    Args:
        snapshot_file: Snapshot path.
        output: Optional output file; stdout when omitted.
    """
    _configure_logging()
    snapshot = _read_snapshot(snapshot_file)
    bundle = to_preview_bundle(snapshot.files)
    for warning in preview_warnings(snapshot.files):
        _LOGGER.warning(warning)
    rendered = json.dumps(bundle, indent=2)
    if output is None:
        _CONSOLE.print(JSON(rendered))
        return
    output.write_text(rendered + "\n", encoding="utf-8")
    _CONSOLE.print(f"[green]Wrote preview bundle to {output}[/green]")


def main() -> None:
    """Run the forgeline CLI."""
    app()
