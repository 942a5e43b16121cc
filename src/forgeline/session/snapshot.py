"""Store snapshot persistence and reload helpers."""

from __future__ import annotations

import json
import time
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from forgeline.files.store import ProjectFileStore, StoreSnapshot

SNAPSHOT_SCHEMA_VERSION = 1


class SnapshotStoreError(RuntimeError):
    """Base persistence error for snapshot operations."""


class SnapshotSchemaVersionError(SnapshotStoreError):
    """Raised when persisted payload schema version is unsupported."""


class SnapshotDecodeError(SnapshotStoreError):
    """Raised when persisted payload cannot be decoded/validated."""


class PersistedSnapshotV1(BaseModel):
    """Versioned persisted snapshot payload."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = SNAPSHOT_SCHEMA_VERSION
    snapshot: StoreSnapshot


def save_snapshot(snapshot: StoreSnapshot, path: Path) -> None:
    """Persist full snapshot payload atomically.

    Args:
        snapshot: Snapshot to persist.
        path: Target file path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = PersistedSnapshotV1(snapshot=snapshot)
    temp_path = path.with_name(f"{path.name}.tmp")
    temp_path.write_text(payload.model_dump_json(indent=2), encoding="utf-8")
    temp_path.replace(path)


def load_snapshot(path: Path) -> StoreSnapshot:
    """Load persisted snapshot payload from disk.

    Args:
        path: Snapshot file path.

    Returns:
        Loaded snapshot.

    Raises:
        SnapshotDecodeError: If JSON decode or payload validation fails.
    """
    raw = path.read_text(encoding="utf-8")
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SnapshotDecodeError(f"Invalid snapshot JSON: {exc}") from exc

    migrated = _migrate_payload(decoded)
    try:
        payload = PersistedSnapshotV1.model_validate(migrated)
    except ValidationError as exc:
        raise SnapshotDecodeError(f"Invalid snapshot payload: {exc}") from exc
    return payload.snapshot


def restore_store(snapshot: StoreSnapshot, store: ProjectFileStore) -> None:
    """Install a persisted snapshot into a store.

    Files keep their recorded origin and confirmed content; the chat log and
    active selection are restored through the store's own operations.

    Args:
        snapshot: Snapshot to restore.
        store: Target store.

    Raises:
        SnapshotDecodeError: If the snapshot has no project.
    """
    if snapshot.project is None:
        raise SnapshotDecodeError("Snapshot has no project to restore.")
    store.replace_project(snapshot.project, snapshot.files)
    for message in snapshot.chat:
        store.append_chat(message)
    store.set_active_file(snapshot.active_path)


def recover_corrupt_snapshot(path: Path) -> Path | None:
    """Move unreadable/invalid snapshot aside and return backup path.

    Args:
        path: Snapshot file path.

    Returns:
        Backup path when source exists, else None.
    """
    if not path.exists():
        return None
    timestamp = int(time.time())
    backup = path.with_name(f"{path.name}.corrupt-{timestamp}")
    path.replace(backup)
    return backup


def _migrate_payload(payload: object) -> dict[str, object]:
    """Migrate persisted payload into latest schema.

    Args:
        payload: Decoded JSON payload object.

    Returns:
        Migrated payload matching latest schema.

    Raises:
        SnapshotDecodeError: If payload is not a JSON object.
        SnapshotSchemaVersionError: If schema version is unsupported.
    """
    if not isinstance(payload, dict):
        raise SnapshotDecodeError("Invalid snapshot payload: expected JSON object.")
    version = payload.get("schema_version")
    if version == SNAPSHOT_SCHEMA_VERSION:
        return payload
    raise SnapshotSchemaVersionError(
        f"Unsupported snapshot schema version: {version!r}. "
        f"Expected {SNAPSHOT_SCHEMA_VERSION}."
    )
