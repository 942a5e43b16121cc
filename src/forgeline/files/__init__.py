"""Project file state: models, store, and shared presentation helpers."""

from forgeline.files.errors import StoreError, StoreErrorCode
from forgeline.files.languages import format_file_size, icon_for_path, language_for_path
from forgeline.files.models import (
    ChatMessage,
    ChatRole,
    FileOrigin,
    GeneratedFile,
    GenerationResult,
    Project,
    ProjectFile,
    ProjectStatus,
    ProjectType,
    ServerFileRecord,
)
from forgeline.files.store import (
    BatchReport,
    ProjectFileStore,
    RequestTicket,
    SkippedEntry,
    StoreListener,
    StoreSnapshot,
)
from forgeline.files.tree import (
    TreeNode,
    build_tree,
    group_by_directory,
    sort_for_display,
)

__all__ = [
    "BatchReport",
    "ChatMessage",
    "ChatRole",
    "FileOrigin",
    "GeneratedFile",
    "GenerationResult",
    "Project",
    "ProjectFile",
    "ProjectFileStore",
    "ProjectStatus",
    "ProjectType",
    "RequestTicket",
    "ServerFileRecord",
    "SkippedEntry",
    "StoreError",
    "StoreErrorCode",
    "StoreListener",
    "StoreSnapshot",
    "TreeNode",
    "build_tree",
    "format_file_size",
    "group_by_directory",
    "icon_for_path",
    "language_for_path",
    "sort_for_display",
]
