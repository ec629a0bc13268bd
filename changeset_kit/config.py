"""Workspace settings.

Settings live in an optional `.changeset/config.toml` at the workspace root:

    [changeset]
    changelog_file = "CHANGELOG.md"
    version_file = "version.txt"

Uses tomlkit for reading so the file can be hand-edited with comments.
Every key is optional; a missing file yields the defaults. The changeset
directory and the changelog template override (`.changeset/changelog.tmpl`)
are fixed locations and cannot be configured.
"""

from __future__ import annotations

from pathlib import Path

import tomlkit
from pydantic import BaseModel, ConfigDict, ValidationError
from tomlkit.exceptions import ParseError

from .errors import ChangesetIOError, FormatError

CHANGESET_DIR = ".changeset"
CONFIG_FILE = "config.toml"
TEMPLATE_FILE = "changelog.tmpl"


class Settings(BaseModel):
    """File names used when reading and writing a workspace.

    Unknown keys are rejected.

    Attributes:
        changelog_file: Changelog document name inside each project root.
        version_file: Version file name for Go projects.
        manifest_file: Manifest name for Node projects.
    """

    model_config = ConfigDict(extra="forbid")

    changelog_file: str = "CHANGELOG.md"
    version_file: str = "version.txt"
    manifest_file: str = "package.json"

    def changeset_path(self, workspace_root: Path | str) -> Path:
        return Path(workspace_root) / CHANGESET_DIR


def load_settings(workspace_root: Path | str) -> Settings:
    """Load settings from `<root>/.changeset/config.toml`.

    Raises:
        ChangesetIOError: If the config file exists but cannot be read.
        FormatError: If the file is not valid TOML or has invalid values.
    """
    path = Path(workspace_root) / CHANGESET_DIR / CONFIG_FILE
    if not path.exists():
        return Settings()

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError(f"config {path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise ChangesetIOError(f"failed to read config {path}: {exc}", path) from exc

    try:
        doc = tomlkit.parse(text)
    except ParseError as exc:
        raise FormatError(f"invalid config {path}: {exc}") from exc

    table = doc.unwrap().get("changeset", {})
    try:
        return Settings.model_validate(table)
    except ValidationError as exc:
        raise FormatError(f"invalid config {path}: {exc}") from exc
