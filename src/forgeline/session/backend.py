"""Backend contract consumed by the session orchestrator."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from forgeline.files.models import (
    ChatMessage,
    GenerationResult,
    Project,
    ProjectStatus,
    ProjectType,
    ServerFileRecord,
    utc_now,
)


class ProjectPayload(BaseModel):
    """Project record as returned by the backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    type: ProjectType = ProjectType.REACT_APP
    status: ProjectStatus = ProjectStatus.ACTIVE
    created_at: datetime | None = Field(default=None, alias="createdAt")
    file_count: int | None = Field(default=None, alias="fileCount", ge=0)

    def to_project(self) -> Project:
        """Convert to the store's project model.

        Returns:
            Project with defaults for missing timestamps.
        """
        return Project(
            id=self.id,
            name=self.name,
            description=self.description,
            type=self.type,
            status=self.status,
            created_at=self.created_at or utc_now(),
            file_count=self.file_count,
        )


class ProjectBundle(BaseModel):
    """`GET /projects/:id` response: project plus its files."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    project: ProjectPayload
    files: tuple[ServerFileRecord, ...] = ()


class GenerateContext(BaseModel):
    """Context block sent with a generation prompt."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    project_type: ProjectType = Field(alias="projectType")
    current_files: tuple[ServerFileRecord, ...] = Field(
        default=(), alias="currentFiles"
    )


class GenerateRequest(BaseModel):
    """`POST /ai/generate` request body."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    prompt: str = Field(min_length=1)
    type: str = "react"
    context: GenerateContext


class BackendErrorCode(StrEnum):
    """Stable transport failure categories."""

    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNAVAILABLE = "unavailable"
    NETWORK = "network"
    TIMEOUT = "timeout"


_STATUS_MESSAGES: dict[int, tuple[BackendErrorCode, str]] = {
    400: (BackendErrorCode.BAD_REQUEST, "Invalid request data"),
    401: (
        BackendErrorCode.UNAUTHORIZED,
        "Authentication required. Please refresh the page.",
    ),
    403: (
        BackendErrorCode.FORBIDDEN,
        "Access denied. You do not have permission for this action.",
    ),
    404: (BackendErrorCode.NOT_FOUND, "The requested resource was not found."),
    429: (
        BackendErrorCode.RATE_LIMITED,
        "Too many requests. Please wait a moment and try again.",
    ),
    500: (BackendErrorCode.SERVER_ERROR, "Server error. Please try again later."),
    503: (
        BackendErrorCode.UNAVAILABLE,
        "Service temporarily unavailable. Please try again later.",
    ),
}


class BackendError(RuntimeError):
    """Transport or server failure with a user-facing message."""

    def __init__(
        self,
        code: BackendErrorCode,
        message: str,
        *,
        status: int | None = None,
    ) -> None:
        """Create backend error.

        Args:
            code: Stable failure category.
            message: Human-readable error message.
            status: HTTP status code when a response was received.
        """
        super().__init__(message)
        self.code = code
        self.status = status

    @classmethod
    def from_status(
        cls, status: int | None, detail: Mapping[str, Any] | None = None
    ) -> BackendError:
        """Derive a typed error from an HTTP status and optional body.

        Args:
            status: HTTP status, or None when no response arrived.
            detail: Decoded error body, if any.

        Returns:
            Backend error with a human-readable message.
        """
        body = detail or {}
        if status is None:
            return cls(
                BackendErrorCode.NETWORK,
                "Network error. Please check your connection and try again.",
            )
        if status == 400:
            message = str(
                body.get("message") or body.get("error") or "Invalid request data"
            )
            details = body.get("details")
            if isinstance(details, Sequence) and not isinstance(details, str):
                parts = [
                    str(item.get("message", ""))
                    for item in details
                    if isinstance(item, Mapping)
                ]
                if parts:
                    message = f"{message}: {', '.join(parts)}"
            return cls(BackendErrorCode.BAD_REQUEST, message, status=status)
        known = _STATUS_MESSAGES.get(status)
        if known is not None:
            code, message = known
            return cls(code, message, status=status)
        fallback = body.get("message") or f"Server error ({status})"
        code = (
            BackendErrorCode.SERVER_ERROR
            if status >= 500
            else BackendErrorCode.BAD_REQUEST
        )
        return cls(code, str(fallback), status=status)

    @classmethod
    def timeout(cls) -> BackendError:
        """Build the request-timeout error.

        Returns:
            Timeout backend error.
        """
        return cls(BackendErrorCode.TIMEOUT, "Request timeout. Please try again.")


class ProjectBackend(Protocol):
    """Project/file CRUD and generation endpoints.

    Implementations normalize wire envelopes into the payload models here and
    raise `BackendError` for transport failures.
    """

    def create_project(
        self, *, name: str, description: str, type: ProjectType
    ) -> ProjectPayload:
        """Create a project (`POST /projects`)."""

    def get_project(self, project_id: str) -> ProjectBundle:
        """Load a project with its files (`GET /projects/:id`)."""

    def list_projects(self) -> Sequence[ProjectPayload]:
        """List projects (`GET /projects`)."""

    def update_project(
        self, project_id: str, fields: Mapping[str, Any]
    ) -> ProjectPayload:
        """Patch project fields (`PUT /projects/:id`)."""

    def delete_project(self, project_id: str) -> None:
        """Delete a project (`DELETE /projects/:id`)."""

    def create_file(
        self, project_id: str, *, path: str, content: str, language: str
    ) -> ServerFileRecord:
        """Create a file (`POST /files/:projectId`)."""

    def update_file(
        self, project_id: str, *, path: str, content: str
    ) -> ServerFileRecord:
        """Update file content (`PUT /files/:projectId`)."""

    def delete_file(self, project_id: str, *, path: str) -> None:
        """Delete a file (`DELETE /files/:projectId`)."""

    def generate(self, request: GenerateRequest) -> GenerationResult:
        """Generate code for a prompt (`POST /ai/generate`)."""


class ChatArchive(Protocol):
    """Optional best-effort chat persistence."""

    def append_message(self, project_id: str, message: ChatMessage) -> None:
        """Persist one chat message."""
