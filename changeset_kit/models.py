"""Data models for changeset-kit.

These Pydantic models represent the core data structures shared by the
changeset store, the changelog renderer, and the release pipeline.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .errors import FormatError
from .versions import BumpType, Version


class PullRequest(BaseModel):
    """Pull request metadata attached to a changeset.

    Resolved by the caller before rendering; this package never looks
    pull requests up itself.
    """

    number: int
    title: str = ""
    url: str = ""
    author: str = ""
    labels: list[str] = Field(default_factory=list)

    def markdown_suffix(self) -> str:
        """Render " ([#N](url) by @author)" for appending to a bullet."""
        author = f" by @{self.author}" if self.author else ""
        return f" ([#{self.number}]({self.url}){author})"


class Changeset(BaseModel):
    """A pending change description with per-project bump types.

    Attributes:
        id: Identifier, equal to the backing filename minus ".md".
        projects: Map of project name → bump type. Never empty once parsed.
        message: Markdown body describing the change.
        file_path: Backing file, set once the changeset is read or written.
        pr: Optional pull request metadata.
    """

    id: str
    projects: dict[str, BumpType]
    message: str = ""
    file_path: str | None = None
    pr: PullRequest | None = None

    def bump_for(self, project_name: str) -> BumpType | None:
        return self.projects.get(project_name)

    def affects(self, project_name: str) -> bool:
        return project_name in self.projects


class ProjectType(str, Enum):
    GO = "go"
    NODE = "node"


class Project(BaseModel):
    """A project in the workspace, as reported by workspace discovery.

    Attributes:
        name: Project identifier, unique within the workspace.
        root_path: Absolute path to the project root.
        manifest_path: Path to go.mod or package.json.
        type: Project type; selects the version store backend.
        module_path: Go module path (Go projects only).
    """

    name: str
    root_path: str
    manifest_path: str = ""
    type: ProjectType = ProjectType.GO
    module_path: str = ""


class ChangelogEntry(BaseModel):
    """A version section about to be appended to a changelog."""

    version: Version
    date: datetime
    changesets: list[Changeset] = Field(default_factory=list)


class VersionBump(BaseModel):
    """Records a version change applied to a project.

    Attributes:
        project: Name of the bumped project.
        old: The version before bumping.
        new: The version after bumping.
        bump: The bump type that was applied.
    """

    project: str
    old: Version
    new: Version
    bump: BumpType


class ProjectContext(BaseModel):
    """Release status of a single project.

    Attributes:
        project: Project name.
        project_path: Absolute path to the project root.
        module_path: Go module path, if any.
        changesets: Changesets affecting this project.
        current_version: Persisted version ("0.0.0" when absent).
        has_version_file: Whether the version source exists on disk.
        latest_tag: Latest release tag, or "0.0.0" when never released.
        has_changesets: Whether any changesets are pending.
        is_outdated: Whether current_version is above the latest tag.
        changelog_preview: Markdown the next version would add; "" if none.
    """

    project: str
    project_path: str
    module_path: str = ""
    changesets: list[Changeset] = Field(default_factory=list)
    current_version: str = "0.0.0"
    has_version_file: bool = False
    latest_tag: str = "0.0.0"
    has_changesets: bool = False
    is_outdated: bool = False
    changelog_preview: str = ""


class ProjectFilter(str, Enum):
    """Selects projects by release status."""

    ALL = "all"
    OPEN_CHANGESETS = "open-changesets"
    OUTDATED_VERSIONS = "outdated-versions"
    HAS_VERSION = "has-version"
    NO_VERSION = "no-version"
    UNCHANGED = "unchanged"

    def matches(self, ctx: ProjectContext) -> bool:
        if self is ProjectFilter.OPEN_CHANGESETS:
            return ctx.has_changesets
        if self is ProjectFilter.OUTDATED_VERSIONS:
            return ctx.is_outdated
        if self is ProjectFilter.HAS_VERSION:
            return ctx.has_version_file
        if self is ProjectFilter.NO_VERSION:
            return not ctx.has_version_file
        if self is ProjectFilter.UNCHANGED:
            return not ctx.has_changesets
        return True


def parse_project_filter(value: str) -> ProjectFilter:
    """Parse a filter name such as "open-changesets".

    Raises:
        FormatError: If the name is not a known filter.
    """
    try:
        return ProjectFilter(value)
    except ValueError:
        valid = ", ".join(f.value for f in ProjectFilter)
        raise FormatError(f"invalid filter type: {value} (must be one of {valid})") from None
