"""Unit tests for merging AI generation batches into the store."""

from __future__ import annotations

import pytest

from forgeline.files.models import (
    ChatRole,
    FileOrigin,
    GeneratedFile,
    GenerationResult,
    Project,
)
from forgeline.files.store import ProjectFileStore


@pytest.mark.unit
def test_batch_into_empty_project_creates_files_and_selects_first(
    store: ProjectFileStore,
) -> None:
    """Two-file batch on an empty project yields two files, first active."""
    # Act - apply batch
    report = store.apply_generation_batch(
        [
            {"path": "src/App.js", "content": "App", "language": "javascript"},
            {"path": "src/index.css", "content": ".a{}", "language": "css"},
        ]
    )

    # Assert - counts, selection, origin
    assert len(store.list_files()) == 2
    assert store.file_count() == 2
    active = store.get_active_file()
    assert active is not None
    assert active.path == "src/App.js"
    assert report.created == ("src/App.js", "src/index.css")
    assert report.navigated_to == "src/App.js"
    assert all(item.origin is FileOrigin.GENERATED for item in store.list_files())


@pytest.mark.unit
def test_regeneration_replaces_existing_content(store: ProjectFileStore) -> None:
    """Existing path is replaced in place, never duplicated."""
    # Arrange - existing file with v1
    store.create_file("src/App.js", "v1")

    # Act - batch touching the same path
    report = store.apply_generation_batch([{"path": "src/App.js", "content": "v2"}])

    # Assert - single entry with new content
    files = store.list_files()
    assert len(files) == 1
    assert files[0].content == "v2"
    assert files[0].origin is FileOrigin.GENERATED
    assert report.updated == ("src/App.js",)
    assert report.created == ()


@pytest.mark.unit
def test_regeneration_overrides_user_edit(store: ProjectFileStore) -> None:
    """AI regeneration wins over an unsaved user edit (arrival order)."""
    store.replace_project(
        Project(id="project-a", name="A"), [{"path": "a.js", "content": "saved"}]
    )
    store.set_file_content("a.js", "user typing")

    store.apply_generation_batch([GeneratedFile(path="a.js", content="ai")])

    file = store.get_file("a.js")
    assert file is not None
    assert file.content == "ai"
    assert file.confirmed_content == "saved"
    assert file.is_dirty is True


@pytest.mark.unit
def test_navigation_follows_wire_order_not_alphabetical(
    store: ProjectFileStore,
) -> None:
    """The first batch entry becomes active regardless of sort order."""
    # Arrange - some other active file
    store.create_file("x.js", "x")

    # Act - batch whose first entry is not alphabetically first
    store.apply_generation_batch(
        [
            {"path": "src/zeta.js", "content": "z"},
            {"path": "src/alpha.js", "content": "a"},
            {"path": "README.md", "content": "r"},
        ]
    )

    # Assert - wire-order first entry is active
    active = store.get_active_file()
    assert active is not None
    assert active.path == "src/zeta.js"


@pytest.mark.unit
def test_reapplying_same_batch_is_idempotent(store: ProjectFileStore) -> None:
    """Applying the identical batch twice equals applying it once."""
    batch = [
        {"path": "src/App.js", "content": "App"},
        {"path": "src/util.js", "content": "util"},
    ]
    store.apply_generation_batch(batch)
    once = [(f.path, f.content, f.language) for f in store.list_files()]

    store.apply_generation_batch(batch)
    twice = [(f.path, f.content, f.language) for f in store.list_files()]

    assert once == twice


@pytest.mark.unit
def test_entry_missing_content_is_skipped_and_recorded(
    store: ProjectFileStore,
) -> None:
    """Malformed entries are dropped while valid entries still apply."""
    # Act - batch with one entry lacking content
    report = store.apply_generation_batch(
        [{"path": "a.js", "content": "x"}, {"path": "b.js"}]
    )

    # Assert - a.js present, b.js absent, exactly one skip
    a_file = store.get_file("a.js")
    assert a_file is not None
    assert a_file.content == "x"
    assert store.get_file("b.js") is None
    assert len(report.skipped) == 1
    assert report.skipped[0].path == "b.js"
    assert report.skipped[0].index == 1
    assert report.skipped[0].reason == "missing content"


@pytest.mark.unit
def test_skipped_first_entry_does_not_drive_navigation(
    store: ProjectFileStore,
) -> None:
    """Navigation targets the first entry that was actually applied."""
    store.apply_generation_batch(
        [{"content": "no path"}, {"path": "b.js", "content": "b"}, "garbage"]
    )

    active = store.get_active_file()
    assert active is not None
    assert active.path == "b.js"
    assert store.file_count() == 1


@pytest.mark.unit
def test_empty_batch_changes_nothing(store: ProjectFileStore) -> None:
    """Empty batch leaves files and selection untouched."""
    store.create_file("a.js", "a")
    before = store.snapshot()

    report = store.apply_generation_batch([])

    assert store.snapshot() == before
    assert report.applied == ()
    assert report.navigated_to is None


@pytest.mark.unit
def test_empty_result_still_records_explanation(store: ProjectFileStore) -> None:
    """Chat gets the assistant explanation even when no files were produced."""
    store.create_file("a.js", "a")

    store.apply_generation_result(
        GenerationResult(explanation="Nothing to change.", files=())
    )

    messages = store.chat_messages()
    assert len(messages) == 1
    assert messages[0].role is ChatRole.ASSISTANT
    assert messages[0].content == "Nothing to change."
    active = store.get_active_file()
    assert active is not None
    assert active.path == "a.js"


@pytest.mark.unit
def test_result_message_lists_applied_paths(store: ProjectFileStore) -> None:
    """The assistant message references the files produced by the turn."""
    result = GenerationResult.from_payload(
        {
            "explanation": "Built it.",
            "files": [
                {"path": "src/App.js", "content": "App"},
                {"path": "broken.js"},
            ],
        }
    )

    report = store.apply_generation_result(result)

    assert report.applied == ("src/App.js",)
    assert store.chat_messages()[-1].files == ("src/App.js",)


@pytest.mark.unit
def test_duplicate_paths_in_one_batch_keep_single_entry(
    store: ProjectFileStore,
) -> None:
    """Later duplicates win content; the key stays unique."""
    store.apply_generation_batch(
        [
            {"path": "a.js", "content": "first"},
            {"path": "/a.js", "content": "second"},
        ]
    )

    files = store.list_files()
    assert len(files) == 1
    assert files[0].content == "second"


@pytest.mark.unit
def test_language_derived_when_absent(store: ProjectFileStore) -> None:
    """Entries without language get one from the path extension."""
    store.apply_generation_batch(
        [
            {"path": "src/App.tsx", "content": ""},
            {"path": "notes.txt", "content": "", "language": ""},
        ]
    )

    tsx = store.get_file("src/App.tsx")
    txt = store.get_file("notes.txt")
    assert tsx is not None
    assert txt is not None
    assert tsx.language == "typescript"
    assert txt.language == "plaintext"


@pytest.mark.unit
def test_navigation_can_be_disabled() -> None:
    """Stores built without navigation keep the current selection."""
    store = ProjectFileStore(navigate_to_first_file=False)
    store.replace_project(Project(id="p", name="P"))
    store.create_file("keep.js", "k")

    report = store.apply_generation_batch([{"path": "new.js", "content": "n"}])

    assert report.navigated_to is None
    active = store.get_active_file()
    assert active is not None
    assert active.path == "keep.js"
