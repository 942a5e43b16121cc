"""Test-only helpers for unit tests. Not part of the forgeline API."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from forgeline.files.models import (
    ChatMessage,
    GenerationResult,
    ProjectType,
    ServerFileRecord,
)
from forgeline.session.backend import (
    BackendError,
    GenerateRequest,
    ProjectBundle,
    ProjectPayload,
)


class FakeBackend:
    """In-memory `ProjectBackend` recording calls.

    `on_generate` / `on_get_project` hooks run before the response is returned,
    which lets tests interleave store changes with an in-flight request.
    """

    def __init__(self) -> None:
        self.projects: dict[str, ProjectPayload] = {}
        self.files: dict[str, dict[str, ServerFileRecord]] = {}
        self.calls: list[tuple[str, object]] = []
        self.generation: GenerationResult = GenerationResult()
        self.generate_error: BackendError | None = None
        self.update_error: BackendError | None = None
        self.on_generate: Callable[[], None] | None = None
        self.on_get_project: Callable[[str], None] | None = None
        self.on_update_file: Callable[[], None] | None = None
        self._next_id = 0

    def add_project(
        self,
        project_id: str,
        name: str,
        files: Mapping[str, str] | None = None,
    ) -> None:
        self.projects[project_id] = ProjectPayload(id=project_id, name=name)
        self.files[project_id] = {
            path: ServerFileRecord(path=path, content=content, file_id=f"f-{path}")
            for path, content in (files or {}).items()
        }

    def create_project(
        self, *, name: str, description: str, type: ProjectType
    ) -> ProjectPayload:
        self._next_id += 1
        project_id = f"created-{self._next_id:04d}"
        payload = ProjectPayload(
            id=project_id, name=name, description=description, type=type
        )
        self.projects[project_id] = payload
        self.files[project_id] = {}
        self.calls.append(("create_project", name))
        return payload

    def get_project(self, project_id: str) -> ProjectBundle:
        self.calls.append(("get_project", project_id))
        if self.on_get_project is not None:
            self.on_get_project(project_id)
        if project_id not in self.projects:
            raise BackendError.from_status(404)
        return ProjectBundle(
            project=self.projects[project_id],
            files=tuple(self.files[project_id].values()),
        )

    def list_projects(self) -> Sequence[ProjectPayload]:
        return tuple(self.projects.values())

    def update_project(
        self, project_id: str, fields: Mapping[str, Any]
    ) -> ProjectPayload:
        self.calls.append(("update_project", dict(fields)))
        updated = self.projects[project_id].model_copy(update=dict(fields))
        self.projects[project_id] = updated
        return updated

    def delete_project(self, project_id: str) -> None:
        self.calls.append(("delete_project", project_id))
        self.projects.pop(project_id, None)

    def create_file(
        self, project_id: str, *, path: str, content: str, language: str
    ) -> ServerFileRecord:
        self.calls.append(("create_file", path))
        record = ServerFileRecord(
            path=path,
            content=content,
            language=language,
            size=len(content.encode("utf-8")),
            file_id=f"f-{path}",
        )
        self.files[project_id][path] = record
        return record

    def update_file(
        self, project_id: str, *, path: str, content: str
    ) -> ServerFileRecord:
        self.calls.append(("update_file", path))
        if self.on_update_file is not None:
            self.on_update_file()
        if self.update_error is not None:
            raise self.update_error
        record = ServerFileRecord(
            path=path,
            content=content,
            size=len(content.encode("utf-8")),
            file_id=f"f-{path}",
        )
        self.files[project_id][path] = record
        return record

    def delete_file(self, project_id: str, *, path: str) -> None:
        self.calls.append(("delete_file", path))
        self.files[project_id].pop(path, None)

    def generate(self, request: GenerateRequest) -> GenerationResult:
        self.calls.append(("generate", request))
        if self.on_generate is not None:
            self.on_generate()
        if self.generate_error is not None:
            raise self.generate_error
        return self.generation


class RecordingArchive:
    """`ChatArchive` that records messages and can be told to fail."""

    def __init__(self, *, fail: bool = False) -> None:
        self.messages: list[tuple[str, ChatMessage]] = []
        self.fail = fail

    def append_message(self, project_id: str, message: ChatMessage) -> None:
        if self.fail:
            raise BackendError.from_status(503)
        self.messages.append((project_id, message))
