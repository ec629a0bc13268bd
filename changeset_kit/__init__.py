"""Changeset-driven semantic versioning for multi-project workspaces."""

from __future__ import annotations

from .changelog import Changelog, TemplateCache
from .changesets import ChangesetStore, filter_by_project, generate_id, highest_bump
from .config import Settings, load_settings
from .errors import (
    ChangesetError,
    ChangesetIOError,
    FormatError,
    NotFoundError,
    TemplateError,
)
from .models import (
    ChangelogEntry,
    Changeset,
    Project,
    ProjectContext,
    ProjectFilter,
    ProjectType,
    PullRequest,
    VersionBump,
)
from .tags import GitTagSource, MemoryTagSource, PublishDecision, TagResolver
from .version_store import PackageJsonVersionStore, VersionFile, new_version_store
from .versions import BumpType, Version, parse_bump_type, parse_version

__all__ = [
    "BumpType",
    "ChangelogEntry",
    "Changelog",
    "Changeset",
    "ChangesetError",
    "ChangesetIOError",
    "ChangesetStore",
    "FormatError",
    "GitTagSource",
    "MemoryTagSource",
    "NotFoundError",
    "PackageJsonVersionStore",
    "Project",
    "ProjectContext",
    "ProjectFilter",
    "ProjectType",
    "PublishDecision",
    "PullRequest",
    "Settings",
    "TagResolver",
    "TemplateCache",
    "TemplateError",
    "Version",
    "VersionBump",
    "VersionFile",
    "filter_by_project",
    "generate_id",
    "highest_bump",
    "load_settings",
    "new_version_store",
    "parse_bump_type",
    "parse_version",
]
