"""Version parsing, bumping, and ordering.

Versions are major.minor.patch with an optional free-form prerelease label
(e.g., "1.2.3-rc0"). Tags use the same form with a leading "v".

Ordering follows semver for the numeric part. On a tie, a release sorts
above any prerelease, and two prerelease labels compare as plain strings,
so "rc10" sorts below "rc2".
"""

from __future__ import annotations

import re
from enum import Enum
from functools import total_ordering

import semver
from pydantic import BaseModel, ConfigDict, Field

from .errors import FormatError

_NUMERIC = re.compile(r"\d+")


class BumpType(str, Enum):
    """Severity of a change. Ordered major > minor > patch."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _BUMP_RANK[self]

    def __str__(self) -> str:
        return self.value


_BUMP_RANK = {BumpType.PATCH: 0, BumpType.MINOR: 1, BumpType.MAJOR: 2}


def parse_bump_type(value: str) -> BumpType:
    """Parse "patch", "minor" or "major" into a BumpType.

    Raises:
        FormatError: If the value is not one of the three bump types.
    """
    try:
        return BumpType(value)
    except ValueError:
        raise FormatError(
            f"invalid bump type: {value} (must be patch, minor, or major)"
        ) from None


@total_ordering
class Version(BaseModel):
    """An immutable semantic version with an optional prerelease label.

    Attributes:
        major: Major component.
        minor: Minor component.
        patch: Patch component.
        prerelease: Empty for a release, otherwise a label such as "rc0".
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(default=0, ge=0)
    minor: int = Field(default=0, ge=0)
    patch: int = Field(default=0, ge=0)
    prerelease: str = ""

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.prerelease}" if self.prerelease else base

    def tag(self) -> str:
        """Return the version with a leading "v" (e.g., "v1.2.3-rc0")."""
        return f"v{self}"

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease != ""

    def _semver(self) -> semver.Version:
        return semver.Version(self.major, self.minor, self.patch)

    def bump(self, bump_type: BumpType) -> Version:
        """Apply a bump. The result is always a release (no prerelease).

        Examples:
            1.2.3 + major → 2.0.0
            1.2.3 + minor → 1.3.0
            1.2.3-rc1 + patch → 1.2.4
        """
        base = self._semver()
        if bump_type is BumpType.MAJOR:
            bumped = base.bump_major()
        elif bump_type is BumpType.MINOR:
            bumped = base.bump_minor()
        else:
            bumped = base.bump_patch()
        return Version(major=bumped.major, minor=bumped.minor, patch=bumped.patch)

    def with_prerelease(self, label: str) -> Version:
        return self.model_copy(update={"prerelease": label})

    def strip_prerelease(self) -> Version:
        return self.model_copy(update={"prerelease": ""})

    def compare(self, other: Version) -> int:
        """Return -1, 0 or 1 as self is lower than, equal to, or above other."""
        base = self._semver().compare(other._semver())
        if base != 0:
            return base

        if self.prerelease == other.prerelease:
            return 0
        # A release outranks any prerelease of the same base version
        if not self.prerelease:
            return 1
        if not other.prerelease:
            return -1
        return -1 if self.prerelease < other.prerelease else 1

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0


def parse_version(value: str) -> Version:
    """Parse a version string into a Version.

    Accepts an optional leading "v" and an optional "-<prerelease>" suffix
    (split on the first "-"). An empty string parses as 0.0.0.

    Examples:
        "1.2.3" → 1.2.3
        "v1.2.3-rc0" → 1.2.3-rc0
        "" → 0.0.0

    Raises:
        FormatError: If there are not exactly three numeric components.
    """
    s = value.strip()
    s = s.removeprefix("v").strip()
    if not s:
        return Version()

    core, sep, prerelease = s.partition("-")
    parts = core.split(".")
    if len(parts) != 3:
        raise FormatError(
            f"invalid version format: {value} (expected major.minor.patch)"
        )

    names = ("major", "minor", "patch")
    numbers: dict[str, int] = {}
    for name, part in zip(names, parts):
        if not _NUMERIC.fullmatch(part):
            raise FormatError(f"invalid {name} version: {part!r} in {value!r}")
        numbers[name] = int(part)

    return Version(**numbers, prerelease=prerelease if sep else "")
