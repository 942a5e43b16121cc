"""Authoritative in-memory file state for the currently open project.

Every mutation goes through `ProjectFileStore`; consumers read immutable
`StoreSnapshot` values and never touch the internal path map.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from forgeline.files.errors import StoreError, StoreErrorCode
from forgeline.files.models import (
    ChatMessage,
    ChatRole,
    FileOrigin,
    GeneratedFile,
    GenerationResult,
    Project,
    ProjectFile,
    ServerFileRecord,
    coerce_generated_file,
    normalize_path,
    utc_now,
)
from forgeline.files.tree import sort_for_display

_LOGGER = logging.getLogger(__name__)


class RequestTicket(BaseModel):
    """Identity tag carried by an in-flight load or generation request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    project_id: str | None
    epoch: int


class SkippedEntry(BaseModel):
    """Batch entry rejected during a generation merge."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int
    path: str | None
    reason: str


class BatchReport(BaseModel):
    """Outcome of one generation batch merge."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    created: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    skipped: tuple[SkippedEntry, ...] = ()
    applied: tuple[str, ...] = ()
    navigated_to: str | None = None
    stale: bool = False


class StoreSnapshot(BaseModel):
    """Immutable read view of the store at one point in time."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    project: Project | None
    files: tuple[ProjectFile, ...]
    active_path: str | None
    chat: tuple[ChatMessage, ...]
    epoch: int

    @property
    def file_count(self) -> int:
        """Number of files in the snapshot."""
        return len(self.files)

    @property
    def active_file(self) -> ProjectFile | None:
        """Currently active file, if any."""
        for item in self.files:
            if item.path == self.active_path:
                return item
        return None


StoreListener = Callable[[StoreSnapshot], None]


def _require_path(path: str) -> str:
    """Normalize a caller-supplied path and reject empty values.

    Args:
        path: Raw path.

    Returns:
        Normalized path.

    Raises:
        StoreError: If the path is empty after normalization.
    """
    if not isinstance(path, str):
        raise StoreError(
            StoreErrorCode.INVALID_PATH,
            f"Invalid file path: {path!r}",
            data={"path": path},
        )
    normalized = normalize_path(path)
    if not normalized:
        raise StoreError(
            StoreErrorCode.INVALID_PATH,
            "File path must be non-empty.",
            data={"path": path},
        )
    return normalized


class ProjectFileStore:
    """Single-writer store reconciling generation, edit, and persistence events."""

    def __init__(self, *, navigate_to_first_file: bool = True) -> None:
        """Create an empty store with no current project.

        Args:
            navigate_to_first_file: Whether a non-empty generation batch moves
                the active file to the batch's first entry.
        """
        self._navigate_to_first_file = navigate_to_first_file
        self._project: Project | None = None
        self._files: dict[str, ProjectFile] = {}
        self._active_path: str | None = None
        self._chat: list[ChatMessage] = []
        self._epoch = 0
        self._listeners: list[StoreListener] = []

    # Requests and lifecycle

    @property
    def current_project(self) -> Project | None:
        """Project currently installed in the store."""
        return self._project

    @property
    def epoch(self) -> int:
        """Counter bumped on every project switch."""
        return self._epoch

    def begin_request(self) -> RequestTicket:
        """Tag a request issued against the current project.

        Returns:
            Ticket that stays current until the project changes.
        """
        project_id = self._project.id if self._project is not None else None
        return RequestTicket(project_id=project_id, epoch=self._epoch)

    def begin_project_load(self, project_id: str) -> RequestTicket:
        """Mark the start of a project switch and invalidate earlier requests.

        Args:
            project_id: Identifier of the project being loaded.

        Returns:
            Ticket that `replace_project` must present for the load result.
        """
        self._epoch += 1
        _LOGGER.debug("Project load started: %s (epoch %d)", project_id, self._epoch)
        return RequestTicket(project_id=project_id, epoch=self._epoch)

    def is_current(self, ticket: RequestTicket) -> bool:
        """Return whether a request ticket still matches the store identity.

        Args:
            ticket: Ticket issued by `begin_request`.

        Returns:
            True when neither the epoch nor the project changed since issue.
        """
        project_id = self._project.id if self._project is not None else None
        return ticket.epoch == self._epoch and ticket.project_id == project_id

    def replace_project(
        self,
        project: Project,
        files: Iterable[ProjectFile | ServerFileRecord | Mapping[str, Any]] = (),
        *,
        ticket: RequestTicket | None = None,
    ) -> bool:
        """Install a project and its files, discarding all prior state.

        Installing always advances the epoch, so requests issued before the
        install (including during the load itself) become stale.

        Args:
            project: Project to install.
            files: Backend file records for the project.
            ticket: Ticket from `begin_project_load`; stale tickets are dropped.

        Returns:
            True when applied, False when the load result was stale.

        Raises:
            StoreError: If any file record is structurally invalid.
        """
        if ticket is not None and (
            ticket.epoch != self._epoch or ticket.project_id != project.id
        ):
            _LOGGER.warning(
                "Dropping stale load result for project %s (epoch %d, now %d)",
                project.id,
                ticket.epoch,
                self._epoch,
            )
            return False
        loaded: dict[str, ProjectFile] = {}
        for record in files:
            item = self._confirmed_file(record)
            loaded[item.path] = item
        self._epoch += 1
        self._project = project
        self._files = loaded
        self._active_path = None
        self._chat = []
        _LOGGER.info("Loaded project %s with %d file(s)", project.id, len(loaded))
        self._notify()
        return True

    def update_project(self, project: Project) -> None:
        """Refresh attributes of the current project without touching files.

        Args:
            project: Updated project record.

        Raises:
            StoreError: If it is not the current project.
        """
        if self._project is None or self._project.id != project.id:
            raise StoreError(
                StoreErrorCode.NO_PROJECT,
                f"Project {project.id!r} is not the current project.",
                data={"project_id": project.id},
            )
        self._project = project
        self._notify()

    def close(self) -> None:
        """Tear down session state, drop listeners, and stale every request."""
        self._epoch += 1
        self._project = None
        self._files = {}
        self._active_path = None
        self._chat = []
        self._listeners = []

    # Generation merge

    def apply_generation_batch(
        self,
        files: Sequence[GeneratedFile | Mapping[str, Any]],
        *,
        ticket: RequestTicket | None = None,
    ) -> BatchReport:
        """Merge an AI-generated batch using whole-file last-writer-wins.

        Args:
            files: Batch entries in wire order.
            ticket: Ticket from `begin_request`; stale tickets are dropped.

        Returns:
            Report of created, updated, and skipped entries.
        """
        if ticket is not None and not self.is_current(ticket):
            _LOGGER.warning(
                "Dropping stale generation batch of %d file(s)", len(files)
            )
            return BatchReport(stale=True)

        accepted: list[tuple[str, GeneratedFile]] = []
        skipped: list[SkippedEntry] = []
        for index, raw in enumerate(files):
            entry = coerce_generated_file(raw)
            if not isinstance(entry, GeneratedFile):
                raw_path = entry.get("path")
                path = raw_path if isinstance(raw_path, str) else None
                reason = "missing content" if path else "missing path"
                skipped.append(SkippedEntry(index=index, path=path, reason=reason))
                continue
            path = normalize_path(entry.path)
            if not path:
                skipped.append(
                    SkippedEntry(index=index, path=entry.path, reason="empty path")
                )
                continue
            accepted.append((path, entry))

        for skip in skipped:
            _LOGGER.warning(
                "Skipped generated entry #%d (%s): %s",
                skip.index,
                skip.path or "<no path>",
                skip.reason,
            )
        if not accepted:
            return BatchReport(skipped=tuple(skipped))

        existing = [(p, e) for p, e in accepted if p in self._files]
        new = [(p, e) for p, e in accepted if p not in self._files]
        now = utc_now()
        for path, entry in existing:
            previous = self._files[path]
            self._files[path] = ProjectFile(
                path=path,
                content=entry.content,
                language=entry.language or "",
                last_modified=now,
                origin=FileOrigin.GENERATED,
                confirmed_content=previous.confirmed_content,
                file_id=previous.file_id,
            )
        for path, entry in new:
            self._files[path] = ProjectFile(
                path=path,
                content=entry.content,
                language=entry.language or "",
                last_modified=now,
                origin=FileOrigin.GENERATED,
            )

        navigated_to = None
        if self._navigate_to_first_file:
            navigated_to = accepted[0][0]
            self._active_path = navigated_to
        _LOGGER.debug(
            "Applied generation batch: %d new, %d updated, %d skipped",
            len(new),
            len(existing),
            len(skipped),
        )
        self._notify()
        return BatchReport(
            created=tuple(dict.fromkeys(p for p, _ in new)),
            updated=tuple(dict.fromkeys(p for p, _ in existing)),
            skipped=tuple(skipped),
            applied=tuple(dict.fromkeys(p for p, _ in accepted)),
            navigated_to=navigated_to,
        )

    def apply_generation_result(
        self,
        result: GenerationResult,
        *,
        ticket: RequestTicket | None = None,
    ) -> BatchReport:
        """Merge a generation result and record its explanation in chat.

        The assistant message is appended even when the batch is empty.

        Args:
            result: Backend generation result.
            ticket: Ticket from `begin_request`; stale tickets are dropped.

        Returns:
            Batch merge report.
        """
        if ticket is not None and not self.is_current(ticket):
            _LOGGER.warning("Dropping stale generation result")
            return BatchReport(stale=True)
        report = self.apply_generation_batch(result.files)
        self.add_chat_message(ChatRole.ASSISTANT, result.explanation, report.applied)
        return report

    def record_generation_failure(
        self, message: str, *, ticket: RequestTicket | None = None
    ) -> ChatMessage | None:
        """Append an inline error message for a failed generation.

        Args:
            message: Human-readable failure description.
            ticket: Ticket of the failed request.

        Returns:
            Appended message, or None when the request was stale.
        """
        if ticket is not None and not self.is_current(ticket):
            return None
        return self.add_chat_message(ChatRole.ERROR, message)

    # User edits

    def create_file(
        self, path: str, content: str = "", language: str | None = None
    ) -> ProjectFile:
        """Create a file from an explicit user action and make it active.

        An existing path is updated in place instead of duplicated.

        Args:
            path: File path.
            content: Initial content.
            language: Optional language id; derived from path when absent.

        Returns:
            Stored file.
        """
        key = _require_path(path)
        previous = self._files.get(key)
        item = ProjectFile(
            path=key,
            content=content,
            language=language or "",
            origin=FileOrigin.LOCAL,
            confirmed_content=previous.confirmed_content if previous else None,
            file_id=previous.file_id if previous else None,
        )
        self._files[key] = item
        self._active_path = key
        self._notify()
        return item

    def set_file_content(self, path: str, content: str) -> ProjectFile:
        """Apply a user edit to an existing file.

        Safe to call on every keystroke; debouncing belongs to the caller.

        Args:
            path: File path.
            content: New full content.

        Returns:
            Updated file.

        Raises:
            StoreError: If the path is invalid or not present.
        """
        key = _require_path(path)
        current = self._files.get(key)
        if current is None:
            raise StoreError(
                StoreErrorCode.FILE_NOT_FOUND,
                f"File not found: {key}",
                data={"path": key},
            )
        if current.content == content:
            return current
        origin = (
            FileOrigin.CONFIRMED
            if content == current.confirmed_content
            else FileOrigin.LOCAL
        )
        updated = ProjectFile(
            path=key,
            content=content,
            language=current.language,
            origin=origin,
            confirmed_content=current.confirmed_content,
            file_id=current.file_id,
        )
        self._files[key] = updated
        self._notify()
        return updated

    def confirm_persisted(
        self,
        path: str,
        server_file: ServerFileRecord,
        *,
        sent_content: str | None = None,
    ) -> ProjectFile | None:
        """Merge a successful backend write into the stored entry.

        When a newer local edit raced the write, the local content is kept and
        only the server's metadata (id, language, size, timestamp) is adopted.

        Args:
            path: File path that was written.
            server_file: Record returned by the backend.
            sent_content: Content that was sent; defaults to the server's echo.

        Returns:
            Updated file, or None when the file no longer exists.

        Raises:
            StoreError: If neither sent content nor server content is known.
        """
        key = _require_path(path)
        sent = sent_content if sent_content is not None else server_file.content
        if sent is None:
            raise StoreError(
                StoreErrorCode.INVALID_INPUT,
                "Cannot confirm a write without knowing the content that was sent.",
                data={"path": key},
            )
        current = self._files.get(key)
        if current is None:
            _LOGGER.warning("Persistence ack for missing file %s ignored", key)
            return None

        if current.content != sent:
            _LOGGER.debug("Local edit raced persistence of %s; keeping local", key)
            confirmed = ProjectFile(
                path=key,
                content=current.content,
                language=server_file.language or current.language,
                last_modified=server_file.last_modified or current.last_modified,
                origin=FileOrigin.LOCAL,
                confirmed_content=sent,
                size=(
                    server_file.size if server_file.size is not None else current.size
                ),
                file_id=server_file.file_id or current.file_id,
            )
        else:
            content = (
                server_file.content if server_file.content is not None else sent
            )
            confirmed = ProjectFile(
                path=key,
                content=content,
                language=server_file.language or current.language,
                last_modified=server_file.last_modified or utc_now(),
                origin=FileOrigin.CONFIRMED,
                confirmed_content=content,
                size=server_file.size,
                file_id=server_file.file_id or current.file_id,
            )
        self._files[key] = confirmed
        self._notify()
        return confirmed

    def revert_file(self, path: str) -> ProjectFile | None:
        """Restore the last confirmed content of a file.

        Args:
            path: File path.

        Returns:
            Reverted file, or None when missing or never confirmed.
        """
        key = _require_path(path)
        current = self._files.get(key)
        if current is None or current.confirmed_content is None:
            return None
        reverted = ProjectFile(
            path=key,
            content=current.confirmed_content,
            language=current.language,
            origin=FileOrigin.CONFIRMED,
            confirmed_content=current.confirmed_content,
            file_id=current.file_id,
        )
        self._files[key] = reverted
        self._notify()
        return reverted

    def delete_file(self, path: str) -> bool:
        """Remove a file and clear the active path if it pointed there.

        Args:
            path: File path.

        Returns:
            True when a file was removed.
        """
        key = _require_path(path)
        if self._files.pop(key, None) is None:
            return False
        if self._active_path == key:
            self._active_path = None
        self._notify()
        return True

    def rename_file(self, old_path: str, new_path: str) -> ProjectFile:
        """Move a file to a new path, carrying the active pointer with it.

        The move is local; the result is unconfirmed until persisted under the
        new path.

        Args:
            old_path: Existing path.
            new_path: Target path.

        Returns:
            File stored under the new path.

        Raises:
            StoreError: If the source is missing or the target exists.
        """
        source = _require_path(old_path)
        target = _require_path(new_path)
        current = self._files.get(source)
        if current is None:
            raise StoreError(
                StoreErrorCode.FILE_NOT_FOUND,
                f"File not found: {source}",
                data={"path": source},
            )
        if source == target:
            return current
        if target in self._files:
            raise StoreError(
                StoreErrorCode.PATH_CONFLICT,
                f"File already exists: {target}",
                data={"path": target},
            )
        moved = ProjectFile(
            path=target,
            content=current.content,
            language="",
            origin=FileOrigin.LOCAL,
        )
        del self._files[source]
        self._files[target] = moved
        if self._active_path == source:
            self._active_path = target
        self._notify()
        return moved

    def set_active_file(self, path: str | None) -> bool:
        """Select the active file; unknown paths are ignored.

        Args:
            path: File path, or None to clear the selection.

        Returns:
            True when the active path changed to the requested value.
        """
        if path is None:
            if self._active_path is None:
                return False
            self._active_path = None
            self._notify()
            return True
        key = normalize_path(path)
        if key not in self._files:
            return False
        self._active_path = key
        self._notify()
        return True

    # Chat log

    def add_chat_message(
        self, role: ChatRole, content: str, files: Iterable[str] = ()
    ) -> ChatMessage:
        """Append a chat message to the current project session.

        Args:
            role: Message role.
            content: Message text.
            files: Paths produced by this turn.

        Returns:
            Appended message.
        """
        return self.append_chat(
            ChatMessage(role=role, content=content, files=tuple(files))
        )

    def append_chat(self, message: ChatMessage) -> ChatMessage:
        """Append an already-built chat message (e.g. restored from disk).

        Args:
            message: Message to append.

        Returns:
            The appended message.
        """
        self._chat.append(message)
        self._notify()
        return message

    def chat_messages(self) -> tuple[ChatMessage, ...]:
        """Return chat log in append order."""
        return tuple(self._chat)

    def clear_chat(self) -> None:
        """Drop all chat messages of the current session."""
        self._chat = []
        self._notify()

    # Queries

    def list_files(self) -> tuple[ProjectFile, ...]:
        """Return files in display order (directory groups, then by name)."""
        return sort_for_display(self._files.values())

    def get_file(self, path: str) -> ProjectFile | None:
        """Return the file stored at a path, or None.

        Args:
            path: File path.

        Returns:
            Stored file when present.
        """
        if not isinstance(path, str):
            return None
        return self._files.get(normalize_path(path))

    def get_active_file(self) -> ProjectFile | None:
        """Return the active file, or None when nothing is selected."""
        if self._active_path is None:
            return None
        return self._files.get(self._active_path)

    def file_count(self) -> int:
        """Return number of files in the current project."""
        return len(self._files)

    def dirty_files(self) -> tuple[ProjectFile, ...]:
        """Return files whose content is not yet confirmed by the backend."""
        return tuple(item for item in self.list_files() if item.is_dirty)

    def snapshot(self) -> StoreSnapshot:
        """Return an immutable view of the current state."""
        return StoreSnapshot(
            project=self._project,
            files=self.list_files(),
            active_path=self._active_path,
            chat=tuple(self._chat),
            epoch=self._epoch,
        )

    # Subscriptions

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after each mutation.

        Args:
            listener: Callable receiving the new snapshot.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in tuple(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # listener boundary
                _LOGGER.exception("Store listener failed")

    @staticmethod
    def _confirmed_file(
        record: ProjectFile | ServerFileRecord | Mapping[str, Any],
    ) -> ProjectFile:
        """Convert a loaded record to a confirmed `ProjectFile`.

        Args:
            record: Backend or already-typed file record.

        Returns:
            Confirmed file.

        Raises:
            StoreError: If the record cannot be validated.
        """
        if isinstance(record, ProjectFile):
            return record
        try:
            server = (
                record
                if isinstance(record, ServerFileRecord)
                else ServerFileRecord.model_validate(record)
            )
            content = server.content or ""
            return ProjectFile(
                path=server.path,
                content=content,
                language=server.language or "",
                last_modified=server.last_modified or utc_now(),
                origin=FileOrigin.CONFIRMED,
                confirmed_content=content,
                size=server.size,
                file_id=server.file_id,
            )
        except ValidationError as exc:
            raise StoreError(
                StoreErrorCode.INVALID_INPUT,
                f"Invalid file record: {exc}",
            ) from exc
