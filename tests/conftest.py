"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from changeset_kit.changelog import Changelog
from changeset_kit.changesets import ChangesetStore
from changeset_kit.models import Changeset, Project, ProjectType
from changeset_kit.tags import MemoryTagSource, TagResolver
from changeset_kit.versions import BumpType


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a workspace with a Go project "auth" and a Node project "www"."""
    (tmp_path / "services" / "auth").mkdir(parents=True)
    (tmp_path / "services" / "auth" / "go.mod").write_text("module example.com/auth\n")
    (tmp_path / "apps" / "www").mkdir(parents=True)
    (tmp_path / "apps" / "www" / "package.json").write_text(
        '{\n  "name": "www",\n  "version": "1.4.0",\n  "private": true\n}\n'
    )
    return tmp_path


@pytest.fixture
def auth_project(workspace: Path) -> Project:
    root = workspace / "services" / "auth"
    return Project(
        name="auth",
        root_path=str(root),
        manifest_path=str(root / "go.mod"),
        type=ProjectType.GO,
        module_path="example.com/auth",
    )


@pytest.fixture
def www_project(workspace: Path) -> Project:
    root = workspace / "apps" / "www"
    return Project(
        name="www",
        root_path=str(root),
        manifest_path=str(root / "package.json"),
        type=ProjectType.NODE,
    )


@pytest.fixture
def store(workspace: Path) -> ChangesetStore:
    return ChangesetStore(workspace / ".changeset")


@pytest.fixture
def changelog() -> Changelog:
    """A renderer with its own template cache, isolated per test."""
    return Changelog()


@pytest.fixture
def tags() -> MemoryTagSource:
    return MemoryTagSource()


@pytest.fixture
def resolver(tags: MemoryTagSource) -> TagResolver:
    return TagResolver(tags)


@pytest.fixture
def mixed_changesets() -> list[Changeset]:
    """Four changesets for "auth" in patch, major, minor, patch order."""
    return [
        Changeset(id="a", projects={"auth": BumpType.PATCH}, message="Fix bug 1"),
        Changeset(id="b", projects={"auth": BumpType.MAJOR}, message="Breaking change"),
        Changeset(id="c", projects={"auth": BumpType.MINOR}, message="New feature"),
        Changeset(id="d", projects={"auth": BumpType.PATCH}, message="Fix bug 2"),
    ]
