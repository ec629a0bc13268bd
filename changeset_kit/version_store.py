"""Persisted project versions.

Two backends, chosen by project type:
- Go projects keep a bare version string in `version.txt`.
- Node projects keep it in the "version" field of `package.json`.

Writes to package.json use a targeted regex replacement instead of a JSON
round-trip so that key order, indentation, and unrelated fields in the
consumer's manifest are left untouched.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Protocol

from .config import Settings
from .errors import ChangesetIOError, FormatError
from .models import ProjectType
from .versions import Version, parse_version

_VERSION_FIELD = re.compile(r'"version"\s*:\s*"[^"]*"')


class VersionStore(Protocol):
    """Reads and writes the current version of a project."""

    def read(self, project_root: Path | str) -> Version: ...

    def write(self, project_root: Path | str, version: Version) -> None: ...

    def is_enabled(self, project_root: Path | str) -> bool: ...

    def exists(self, project_root: Path | str) -> bool: ...


def _read_text(path: Path, what: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError(f"{what} {path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise ChangesetIOError(f"failed to read {what} {path}: {exc}", path) from exc


def _write_text(path: Path, content: str, what: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ChangesetIOError(f"failed to write {what} {path}: {exc}", path) from exc


class VersionFile:
    """Version stored as a single trimmed line in `version.txt`.

    The literal content "false" (any case) disables versioning for the
    project; read() still treats it as a malformed version.
    """

    def __init__(self, filename: str = "version.txt") -> None:
        self.filename = filename

    def path(self, project_root: Path | str) -> Path:
        return Path(project_root) / self.filename

    def exists(self, project_root: Path | str) -> bool:
        return self.path(project_root).exists()

    def read(self, project_root: Path | str) -> Version:
        """Read the version, defaulting to 0.0.0 when the file is absent."""
        path = self.path(project_root)
        if not path.exists():
            return Version()

        content = _read_text(path, "version file").strip()
        try:
            return parse_version(content)
        except FormatError as exc:
            raise FormatError(f"invalid version in {path}: {exc}") from exc

    def write(self, project_root: Path | str, version: Version) -> None:
        _write_text(self.path(project_root), f"{version}\n", "version file")

    def is_enabled(self, project_root: Path | str) -> bool:
        path = self.path(project_root)
        if not path.exists():
            return True
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            # Unreadable counts as enabled; read() will surface the error
            return True
        return content.strip().lower() != "false"


class PackageJsonVersionStore:
    """Version stored in the "version" field of `package.json`."""

    def __init__(self, filename: str = "package.json") -> None:
        self.filename = filename

    def path(self, project_root: Path | str) -> Path:
        return Path(project_root) / self.filename

    def exists(self, project_root: Path | str) -> bool:
        return self.path(project_root).exists()

    def read(self, project_root: Path | str) -> Version:
        """Read the version field; a missing file or empty field is 0.0.0."""
        path = self.path(project_root)
        if not path.exists():
            return Version()

        try:
            manifest = json.loads(_read_text(path, "manifest"))
        except json.JSONDecodeError as exc:
            raise FormatError(f"failed to parse {path}: {exc}") from exc

        raw = manifest.get("version") if isinstance(manifest, dict) else None
        version_str = raw.strip() if isinstance(raw, str) else ""
        try:
            return parse_version(version_str)
        except FormatError as exc:
            raise FormatError(f"invalid version in {path}: {exc}") from exc

    def write(self, project_root: Path | str, version: Version) -> None:
        """Rewrite the version field in place.

        When the manifest has no version field, one is inserted right after
        the opening brace.

        Raises:
            ChangesetIOError: If the manifest cannot be read or written.
            FormatError: If the manifest has no opening brace.
        """
        path = self.path(project_root)
        content = _read_text(path, "manifest")
        new_field = f'"version": "{version}"'

        if _VERSION_FIELD.search(content):
            content = _VERSION_FIELD.sub(lambda _: new_field, content)
        else:
            idx = content.find("{")
            if idx == -1:
                raise FormatError(f"invalid {path}: missing '{{'")
            idx += 1
            content = f"{content[:idx]}\n  {new_field},{content[idx:]}"

        _write_text(path, content, "manifest")

    def is_enabled(self, project_root: Path | str) -> bool:
        return True


def new_version_store(
    project_type: ProjectType, settings: Settings | None = None
) -> VersionStore:
    """Return the version store backend for a project type."""
    settings = settings or Settings()
    if project_type is ProjectType.NODE:
        return PackageJsonVersionStore(settings.manifest_file)
    return VersionFile(settings.version_file)
