"""Deterministic store error contracts."""

from __future__ import annotations

from enum import StrEnum


class StoreErrorCode(StrEnum):
    """Stable file-store error codes."""

    INVALID_PATH = "store_invalid_path"
    INVALID_INPUT = "store_invalid_input"
    FILE_NOT_FOUND = "store_file_not_found"
    PATH_CONFLICT = "store_path_conflict"
    NO_PROJECT = "store_no_project"


class StoreError(RuntimeError):
    """Store failure with stable deterministic code."""

    def __init__(
        self,
        code: StoreErrorCode,
        message: str,
        *,
        data: dict[str, object] | None = None,
    ) -> None:
        """Create store failure.

        Args:
            code: Stable store error code.
            message: Human-readable error message.
            data: Optional structured payload for diagnostics.
        """
        super().__init__(message)
        self.code = code
        self.data = data or {}
