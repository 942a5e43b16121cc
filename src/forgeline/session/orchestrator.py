"""Project session: drives backend calls and feeds results into the store."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from forgeline.config import ForgelineConfig
from forgeline.files.errors import StoreError, StoreErrorCode
from forgeline.files.models import (
    ChatMessage,
    ChatRole,
    Project,
    ProjectFile,
    ProjectType,
    ServerFileRecord,
    normalize_path,
)
from forgeline.files.store import BatchReport, ProjectFileStore
from forgeline.session.backend import (
    BackendError,
    ChatArchive,
    GenerateContext,
    GenerateRequest,
    ProjectBackend,
)

_LOGGER = logging.getLogger(__name__)


class ProjectSession:
    """One logical user session owning a store and talking to the backend.

    Validation happens before any backend call. Load and generation results
    are tagged with a request ticket and dropped when the store has moved on.
    """

    def __init__(
        self,
        *,
        backend: ProjectBackend,
        store: ProjectFileStore | None = None,
        config: ForgelineConfig | None = None,
        chat_archive: ChatArchive | None = None,
    ) -> None:
        """Wire backend, store, and config.

        Args:
            backend: Backend implementation.
            store: Store instance; a new one is built from config when omitted.
            config: Effective config; defaults when omitted.
            chat_archive: Optional best-effort chat persistence.
        """
        self._config = config or ForgelineConfig()
        self._backend = backend
        self._store = store or ProjectFileStore(
            navigate_to_first_file=self._config.generation.navigate_to_first_file
        )
        self._chat_archive = chat_archive
        self._projects: list[Project] = []

    @property
    def store(self) -> ProjectFileStore:
        """Store owned by this session."""
        return self._store

    @property
    def projects(self) -> tuple[Project, ...]:
        """Projects known to this session, in listing order."""
        return tuple(self._projects)

    def list_projects(self) -> tuple[Project, ...]:
        """Fetch the project list from the backend and keep it.

        Returns:
            Listed projects.

        Raises:
            BackendError: If the backend call fails.
        """
        self._projects = [item.to_project() for item in self._backend.list_projects()]
        return self.projects

    def open_project(self, project_id: str) -> bool:
        """Load a project by id and install it in the store.

        Args:
            project_id: Project identifier.

        Returns:
            True when installed, False when a newer switch superseded it.

        Raises:
            StoreError: If the id is empty.
            BackendError: If the backend call fails.
        """
        if not project_id or not project_id.strip():
            raise StoreError(StoreErrorCode.INVALID_INPUT, "Project id is required.")
        ticket = self._store.begin_project_load(project_id)
        bundle = self._backend.get_project(project_id)
        return self._store.replace_project(
            bundle.project.to_project(), bundle.files, ticket=ticket
        )

    def create_project(
        self,
        name: str,
        *,
        description: str = "",
        type: ProjectType | None = None,
    ) -> Project:
        """Create a project on the backend and make it current.

        Args:
            name: Project name.
            description: Project description.
            type: Project type; config default when omitted.

        Returns:
            Created project.

        Raises:
            StoreError: If the name is empty.
            BackendError: If the backend call fails.
        """
        if not name.strip():
            raise StoreError(StoreErrorCode.INVALID_INPUT, "Project name is required.")
        payload = self._backend.create_project(
            name=name.strip(),
            description=description,
            type=type or self._config.generation.default_project_type,
        )
        project = payload.to_project()
        self._projects.append(project)
        self._store.replace_project(project, ())
        return project

    def update_project(self, fields: Mapping[str, Any]) -> Project:
        """Patch fields of the current project.

        Args:
            fields: Partial project fields.

        Returns:
            Updated project.
        """
        project = self._require_project()
        payload = self._backend.update_project(project.id, dict(fields))
        updated = payload.to_project()
        self._projects = [
            updated if item.id == updated.id else item for item in self._projects
        ]
        self._store.update_project(updated)
        return updated

    def delete_project(self) -> None:
        """Delete the current project on the backend and evict local state."""
        project = self._require_project()
        self._backend.delete_project(project.id)
        self._projects = [item for item in self._projects if item.id != project.id]
        self._store.close()

    def send_prompt(self, prompt: str) -> BatchReport:
        """Send a prompt for generation and merge the result.

        Args:
            prompt: User prompt.

        Returns:
            Merge report; `stale=True` when the project changed meanwhile.

        Raises:
            StoreError: If the prompt is empty.
            BackendError: If generation fails (an error chat message is added).
        """
        if not prompt.strip():
            raise StoreError(StoreErrorCode.INVALID_INPUT, "Prompt is required.")
        project = self._store.current_project
        self._record_chat(self._store.add_chat_message(ChatRole.USER, prompt))
        ticket = self._store.begin_request()
        request = GenerateRequest(
            prompt=prompt,
            context=GenerateContext(
                project_type=(
                    project.type
                    if project is not None
                    else self._config.generation.default_project_type
                ),
                current_files=tuple(
                    ServerFileRecord(
                        path=item.path, content=item.content, language=item.language
                    )
                    for item in self._store.list_files()
                ),
            ),
        )
        try:
            result = self._backend.generate(request)
        except BackendError as exc:
            _LOGGER.warning("Generation failed: %s", exc)
            message = self._store.record_generation_failure(
                f"Error: {exc}", ticket=ticket
            )
            if message is not None:
                self._record_chat(message)
            raise
        report = self._store.apply_generation_result(result, ticket=ticket)
        if not report.stale:
            self._record_chat(self._store.chat_messages()[-1])
        return report

    def create_file(
        self, path: str, content: str = "", language: str | None = None
    ) -> ProjectFile:
        """Create a file on the backend, then insert it as confirmed.

        Args:
            path: File path.
            content: Initial content.
            language: Optional language id.

        Returns:
            Stored file.
        """
        project = self._require_project()
        key = self._require_path(path)
        ticket = self._store.begin_request()
        created = self._store.create_file(key, content, language)
        record = self._backend.create_file(
            project.id, path=key, content=content, language=created.language
        )
        if not self._store.is_current(ticket):
            return created
        confirmed = self._store.confirm_persisted(key, record, sent_content=content)
        return confirmed or created

    def save_file(self, path: str) -> ProjectFile | None:
        """Persist the current content of a file.

        A failed save leaves the file dirty; nothing is reverted.

        Args:
            path: File path.

        Returns:
            Confirmed file, or None when the file vanished or went stale.

        Raises:
            BackendError: If the backend write fails.
        """
        project = self._require_project()
        key = self._require_path(path)
        current = self._store.get_file(key)
        if current is None:
            raise StoreError(
                StoreErrorCode.FILE_NOT_FOUND,
                f"File not found: {key}",
                data={"path": key},
            )
        ticket = self._store.begin_request()
        sent = current.content
        try:
            if current.confirmed_content is None and current.file_id is None:
                record = self._backend.create_file(
                    project.id, path=key, content=sent, language=current.language
                )
            else:
                record = self._backend.update_file(project.id, path=key, content=sent)
        except BackendError as exc:
            _LOGGER.warning("Saving %s failed; file stays unsaved: %s", key, exc)
            raise
        if not self._store.is_current(ticket):
            _LOGGER.warning("Dropping stale save acknowledgement for %s", key)
            return None
        return self._store.confirm_persisted(key, record, sent_content=sent)

    def save_dirty_files(self) -> tuple[str, ...]:
        """Persist every unconfirmed file, continuing past failures.

        Returns:
            Paths that failed to save.
        """
        failed: list[str] = []
        for item in self._store.dirty_files():
            try:
                self.save_file(item.path)
            except BackendError:
                failed.append(item.path)
        return tuple(failed)

    def delete_file(self, path: str) -> bool:
        """Delete a file on the backend, then evict it from the store.

        Args:
            path: File path.

        Returns:
            True when the store removed the file.
        """
        project = self._require_project()
        key = self._require_path(path)
        ticket = self._store.begin_request()
        existing = self._store.get_file(key)
        if existing is not None and existing.confirmed_content is not None:
            self._backend.delete_file(project.id, path=key)
        if not self._store.is_current(ticket):
            return False
        return self._store.delete_file(key)

    def rename_file(self, old_path: str, new_path: str) -> ProjectFile:
        """Move a file, recreating it on the backend under the new path.

        The old backend path is deleted once the new one exists.

        Args:
            old_path: Existing path.
            new_path: Target path.

        Returns:
            File stored under the new path.

        Raises:
            StoreError: If the source is missing or the target exists.
            BackendError: If a backend call fails; the local move is kept.
        """
        project = self._require_project()
        source = self._require_path(old_path)
        previous = self._store.get_file(source)
        ticket = self._store.begin_request()
        moved = self._store.rename_file(source, new_path)
        if previous is None or moved.path == source:
            return moved
        record = self._backend.create_file(
            project.id, path=moved.path, content=moved.content, language=moved.language
        )
        if previous.confirmed_content is not None or previous.file_id is not None:
            self._backend.delete_file(project.id, path=source)
        if not self._store.is_current(ticket):
            return moved
        confirmed = self._store.confirm_persisted(
            moved.path, record, sent_content=moved.content
        )
        return confirmed or moved

    def _record_chat(self, message: ChatMessage) -> None:
        if self._chat_archive is None or not self._config.chat.persist_messages:
            return
        project = self._store.current_project
        if project is None:
            return
        try:
            self._chat_archive.append_message(project.id, message)
        except BackendError as exc:
            _LOGGER.warning("Chat message not persisted: %s", exc)

    def _require_project(self) -> Project:
        project = self._store.current_project
        if project is None:
            raise StoreError(StoreErrorCode.NO_PROJECT, "No project is open.")
        return project

    @staticmethod
    def _require_path(path: str) -> str:
        key = normalize_path(path)
        if not key:
            raise StoreError(
                StoreErrorCode.INVALID_PATH, "File path must be non-empty."
            )
        return key
