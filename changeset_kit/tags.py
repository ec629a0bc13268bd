"""Release tags and publish decisions.

Tags follow the pattern {project}@v{version}, e.g. "auth@v1.2.0" or
"auth@v1.3.0-rc2" for a release candidate snapshot.

Tag listings come from a TagSource. GitTagSource asks git for the tags
reachable from HEAD; MemoryTagSource keeps them in memory for tests and dry
runs. Both return unordered listings and TagResolver sorts them by version,
so the two backends always agree on order.
"""

from __future__ import annotations

import fnmatch
import re
import subprocess
from collections.abc import Iterable
from functools import cmp_to_key
from typing import Protocol

from pydantic import BaseModel

from .errors import ChangesetIOError, FormatError, NotFoundError
from .shell import git
from .versions import Version, parse_version

_RC_SUFFIX = re.compile(r"-rc(\d+)")


def project_tag(project_name: str, version: Version) -> str:
    """Build the tag for a project version, e.g. "auth@v1.2.0"."""
    return f"{project_name}@{version.tag()}"


def tag_pattern(project_name: str) -> str:
    """Glob matching every tag of a project, e.g. "auth@v*"."""
    return f"{project_name}@v*"


def version_from_tag(tag: str) -> Version:
    """Parse the version out of a "{project}@v{version}" tag.

    Raises:
        FormatError: If the tag has no "@" or the version is malformed.
    """
    project, sep, version = tag.rpartition("@")
    if not sep or not project:
        raise FormatError(f"invalid tag {tag!r} (expected <project>@v<version>)")
    return parse_version(version)


def extract_rc_number(tag: str) -> int | None:
    """Return the release candidate number of a tag.

    Examples:
        "auth@v1.2.0-rc3" → 3
        "auth@v1.2.0" → None

    Raises:
        FormatError: If the tag has an "-rc" marker without a number.
    """
    # Only look past the "@" so project names containing "-rc" are ignored
    idx = tag.find("-rc", tag.rfind("@") + 1)
    if idx == -1:
        return None

    match = _RC_SUFFIX.fullmatch(tag, idx)
    if match is None:
        raise FormatError(f"invalid RC tag format: {tag} (expected -rc<number>)")
    return int(match.group(1))


def _tag_version(tag: str) -> Version | None:
    try:
        return version_from_tag(tag)
    except FormatError:
        return None


def _compare_tags(a: str, b: str) -> int:
    by_name = (a > b) - (a < b)
    va, vb = _tag_version(a), _tag_version(b)
    if va is None or vb is None:
        # Unparsable tags sort first, by name
        if va is None and vb is None:
            return by_name
        return -1 if va is None else 1
    return va.compare(vb) or by_name


def sort_tags(tags: Iterable[str]) -> list[str]:
    """Sort tags by version, lowest first.

    Numeric components compare as numbers, so "x@v1.2.0" < "x@v1.10.0".
    """
    return sorted(tags, key=cmp_to_key(_compare_tags))


class TagSource(Protocol):
    """Lists tag names matching a glob pattern, in any order."""

    def list_tags(self, pattern: str) -> list[str]: ...


class GitTagSource:
    """Tags from the local git repository that are reachable from HEAD."""

    def list_tags(self, pattern: str) -> list[str]:
        try:
            output = git("tag", "--list", pattern, "--merged", "HEAD")
        except subprocess.CalledProcessError as exc:
            raise ChangesetIOError(
                f"failed to list tags matching {pattern}: {exc.stderr or exc}"
            ) from exc
        return [line.strip() for line in output.splitlines() if line.strip()]


class MemoryTagSource:
    """An in-memory tag list with git's glob matching."""

    def __init__(self, tags: Iterable[str] = ()) -> None:
        self.tags: set[str] = set(tags)

    def add(self, tag: str) -> None:
        self.tags.add(tag)

    def add_project_tag(self, project_name: str, version: Version) -> str:
        tag = project_tag(project_name, version)
        self.tags.add(tag)
        return tag

    def list_tags(self, pattern: str) -> list[str]:
        return [tag for tag in self.tags if fnmatch.fnmatchcase(tag, pattern)]


class PublishDecision(BaseModel):
    """Outcome of comparing a persisted version with the latest tag.

    Attributes:
        project: Project name.
        version: The persisted version.
        latest_tag: The tag compared against, or None for a first release.
        publish: True when version is strictly above the tagged version.
    """

    project: str
    version: Version
    latest_tag: str | None = None
    publish: bool

    @property
    def tag(self) -> str:
        """The tag a publish would create."""
        return project_tag(self.project, self.version)


class TagResolver:
    """Answers version questions about a project's release tags."""

    def __init__(self, source: TagSource) -> None:
        self.source = source

    def tags_with_prefix(self, pattern: str) -> list[str]:
        """Tags matching a glob like "backend@v*", lowest version first."""
        return sort_tags(self.source.list_tags(pattern))

    def latest_tag(self, project_name: str) -> str:
        """Return the highest-versioned tag of a project.

        Raises:
            NotFoundError: If the project has never been tagged.
        """
        tags = self.tags_with_prefix(tag_pattern(project_name))
        if not tags:
            raise NotFoundError(f"no tags found for project {project_name}")
        return tags[-1]

    def latest_release_version(self, project_name: str) -> Version:
        """Return the highest tagged version that is not a release candidate.

        Raises:
            NotFoundError: If every tag is a release candidate or none exist.
        """
        for tag in reversed(self.tags_with_prefix(tag_pattern(project_name))):
            try:
                if extract_rc_number(tag) is not None:
                    continue
            except FormatError:
                continue
            version = _tag_version(tag)
            if version is not None:
                return version
        raise NotFoundError(f"no non-RC tags found for project {project_name}")

    def next_rc_number(self, project_name: str, version: Version) -> int:
        """Return the next free release candidate number for a version.

        Examples:
            no "auth@v1.2.0-rc*" tags → 0
            "auth@v1.2.0-rc0", "auth@v1.2.0-rc3" → 4
        """
        prefix = f"{project_tag(project_name, version.strip_prerelease())}-rc"
        highest = -1
        for tag in self.tags_with_prefix(tag_pattern(project_name)):
            if not tag.startswith(prefix):
                continue
            try:
                rc = extract_rc_number(tag)
            except FormatError:
                continue
            if rc is not None and rc > highest:
                highest = rc
        return highest + 1

    def should_publish(
        self,
        project_name: str,
        version: Version,
        *,
        releases_only: bool = False,
    ) -> PublishDecision:
        """Decide whether a persisted version still needs a release tag.

        With no tag at all the answer is always yes. Otherwise publish only
        if the version is strictly above the latest tag, which makes
        re-running a publish with an unchanged version a no-op.

        Args:
            project_name: Project to check.
            version: The project's persisted version.
            releases_only: Compare against the latest non-RC tag instead of
                the latest tag of any kind.
        """
        try:
            if releases_only:
                tagged = self.latest_release_version(project_name)
                latest = project_tag(project_name, tagged)
            else:
                latest = self.latest_tag(project_name)
                tagged = version_from_tag(latest)
        except NotFoundError:
            return PublishDecision(project=project_name, version=version, publish=True)

        return PublishDecision(
            project=project_name,
            version=version,
            latest_tag=latest,
            publish=version.compare(tagged) > 0,
        )
