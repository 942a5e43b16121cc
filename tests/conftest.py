"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from forgeline.files.models import Project, ProjectType
from forgeline.files.store import ProjectFileStore


@pytest.fixture
def project() -> Project:
    """Minimal React project used as the current project."""
    return Project(id="project-a", name="Project A", type=ProjectType.REACT_APP)


@pytest.fixture
def store(project: Project) -> ProjectFileStore:
    """Store with `project` installed and no files."""
    instance = ProjectFileStore()
    instance.replace_project(project, ())
    return instance
