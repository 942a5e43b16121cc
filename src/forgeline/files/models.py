"""Project, file, and chat models shared by the store and its consumers."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from forgeline.files.languages import language_for_path


def utc_now() -> datetime:
    """Return timezone-aware current UTC timestamp.

    Returns:
        Current UTC datetime.
    """
    return datetime.now(UTC)


def normalize_path(path: str) -> str:
    """Normalize a project file path to its canonical key form.

    Args:
        path: Raw path as received from editor or backend.

    Returns:
        Forward-slash path without leading slash or surrounding whitespace.
    """
    return path.strip().replace("\\", "/").lstrip("/")


class ProjectType(StrEnum):
    """Supported project kinds."""

    REACT_APP = "react-app"
    COMPONENT = "component"
    FULLSTACK = "fullstack"


class ProjectStatus(StrEnum):
    """Project lifecycle status."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class FileOrigin(StrEnum):
    """Where the current in-memory content of a file came from."""

    CONFIRMED = "confirmed"
    GENERATED = "generated"
    LOCAL = "local"


class Project(BaseModel):
    """Project identity and descriptive attributes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    type: ProjectType = ProjectType.REACT_APP
    status: ProjectStatus = ProjectStatus.ACTIVE
    created_at: datetime = Field(default_factory=utc_now)
    file_count: int | None = Field(default=None, ge=0)


class ProjectFile(BaseModel):
    """One file of the current project, keyed by its path."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str
    content: str
    language: str = ""
    last_modified: datetime = Field(default_factory=utc_now)
    origin: FileOrigin = FileOrigin.CONFIRMED
    confirmed_content: str | None = None
    size: int | None = Field(default=None, ge=0)
    file_id: str | None = None

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        """Normalize and require a non-empty path.

        Args:
            value: Raw path value.

        Returns:
            Normalized path.

        Raises:
            ValueError: If the path is empty after normalization.
        """
        normalized = normalize_path(value)
        if not normalized:
            raise ValueError("path must be non-empty")
        return normalized

    @model_validator(mode="before")
    @classmethod
    def _derive_defaults(cls, data: Any) -> Any:
        """Fill language from extension and size from content when absent.

        Args:
            data: Raw model input.

        Returns:
            Input with derived fields populated.
        """
        if not isinstance(data, dict):
            return data
        derived = dict(data)
        path = derived.get("path")
        if not derived.get("language") and isinstance(path, str):
            derived["language"] = language_for_path(path)
        content = derived.get("content")
        if derived.get("size") is None and isinstance(content, str):
            derived["size"] = len(content.encode("utf-8"))
        return derived

    @property
    def is_dirty(self) -> bool:
        """Whether in-memory content differs from the last confirmed content."""
        return self.content != self.confirmed_content

    @property
    def directory(self) -> str:
        """Parent directory of the path, empty string for root-level files."""
        head, _, _ = self.path.rpartition("/")
        return head

    @property
    def name(self) -> str:
        """Basename of the path."""
        return self.path.rpartition("/")[2]


class ServerFileRecord(BaseModel):
    """Normalized file record returned by the backend after a read or write."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    path: str
    content: str | None = None
    language: str | None = None
    size: int | None = Field(default=None, ge=0)
    last_modified: datetime | None = None
    file_id: str | None = None


class ChatRole(StrEnum):
    """Chat log roles."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    ERROR = "error"


class ChatMessage(BaseModel):
    """Single chat turn recorded for the current project session."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    role: ChatRole
    content: str
    files: tuple[str, ...] = ()
    timestamp: datetime = Field(default_factory=utc_now)


class GeneratedFile(BaseModel):
    """One `(path, content, language)` entry of a generation batch."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str
    content: str
    language: str | None = None


class GenerationResult(BaseModel):
    """Backend response to a prompt, consumed once by the store.

    `files` keeps wire order. Entries that are not well-formed stay as raw
    mappings so the merge can record them as skips instead of failing the
    whole batch.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    explanation: str = ""
    files: tuple[GeneratedFile | Mapping[str, Any], ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> GenerationResult:
        """Build a result from the backend `{explanation, files}` payload.

        Args:
            payload: Decoded generation response body.

        Returns:
            Generation result with entries in wire order.
        """
        explanation = payload.get("explanation") or payload.get("content") or ""
        entries: list[GeneratedFile | Mapping[str, Any]] = []
        for raw in payload.get("files") or ():
            entries.append(coerce_generated_file(raw))
        return cls(explanation=str(explanation), files=tuple(entries))


def coerce_generated_file(raw: object) -> GeneratedFile | Mapping[str, Any]:
    """Convert one wire entry to `GeneratedFile` when it is well-formed.

    Args:
        raw: Decoded batch entry.

    Returns:
        Parsed entry, or the raw mapping when required fields are missing.
    """
    if isinstance(raw, GeneratedFile):
        return raw
    if not isinstance(raw, Mapping):
        return {"value": raw}
    path = raw.get("path")
    content = raw.get("content")
    if not isinstance(path, str) or not isinstance(content, str):
        return dict(raw)
    language = raw.get("language")
    return GeneratedFile(
        path=path,
        content=content,
        language=language if isinstance(language, str) and language else None,
    )
