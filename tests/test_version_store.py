"""Tests for changeset_kit.version_store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from changeset_kit.config import Settings
from changeset_kit.errors import FormatError
from changeset_kit.models import ProjectType
from changeset_kit.version_store import (
    PackageJsonVersionStore,
    VersionFile,
    new_version_store,
)
from changeset_kit.versions import Version, parse_version


class TestVersionFile:
    """Tests for VersionFile."""

    def test_missing_file_is_zero(self, tmp_path: Path) -> None:
        store = VersionFile()
        assert store.read(tmp_path) == Version()
        assert not store.exists(tmp_path)

    def test_read_trims(self, tmp_path: Path) -> None:
        (tmp_path / "version.txt").write_text("  1.2.3\n\n")
        assert VersionFile().read(tmp_path) == parse_version("1.2.3")

    def test_write(self, tmp_path: Path) -> None:
        VersionFile().write(tmp_path, parse_version("2.0.0"))
        assert (tmp_path / "version.txt").read_text() == "2.0.0\n"
        assert VersionFile().exists(tmp_path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        (tmp_path / "version.txt").write_text("one.two\n")
        with pytest.raises(FormatError, match="invalid version in"):
            VersionFile().read(tmp_path)

    @pytest.mark.parametrize("content", ["false", "FALSE\n", "  False  "])
    def test_disabled(self, tmp_path: Path, content: str) -> None:
        (tmp_path / "version.txt").write_text(content)
        assert not VersionFile().is_enabled(tmp_path)

    def test_enabled_by_default(self, tmp_path: Path) -> None:
        assert VersionFile().is_enabled(tmp_path)
        (tmp_path / "version.txt").write_text("1.0.0\n")
        assert VersionFile().is_enabled(tmp_path)

    def test_custom_filename(self, tmp_path: Path) -> None:
        store = VersionFile("VERSION")
        store.write(tmp_path, parse_version("0.3.0"))
        assert (tmp_path / "VERSION").read_text() == "0.3.0\n"
    def test_undecodable_content(self, tmp_path: Path) -> None:
        """A version file that is not UTF-8 raises FormatError naming the path."""
        (tmp_path / "version.txt").write_bytes(b"\xff\xfe")
        with pytest.raises(FormatError, match="version.txt is not valid UTF-8"):
            VersionFile().read(tmp_path)
        assert VersionFile().is_enabled(tmp_path)


class TestPackageJsonVersionStore:
    """Tests for PackageJsonVersionStore."""

    def test_read(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('{"name": "www", "version": "1.4.0"}')
        assert PackageJsonVersionStore().read(tmp_path) == parse_version("1.4.0")

    def test_missing_field_is_zero(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('{"name": "www"}')
        assert PackageJsonVersionStore().read(tmp_path) == Version()

    def test_missing_file_is_zero(self, tmp_path: Path) -> None:
        assert PackageJsonVersionStore().read(tmp_path) == Version()

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{not json")
        with pytest.raises(FormatError):
            PackageJsonVersionStore().read(tmp_path)

    def test_write_preserves_layout(self, tmp_path: Path) -> None:
        original = (
            "{\n"
            '    "name": "www",\n'
            '    "version"  :  "1.4.0",\n'
            '    "scripts": {"build": "vite build"}\n'
            "}\n"
        )
        (tmp_path / "package.json").write_text(original)

        PackageJsonVersionStore().write(tmp_path, parse_version("1.5.0"))

        assert (tmp_path / "package.json").read_text() == original.replace(
            '"version"  :  "1.4.0"', '"version": "1.5.0"'
        )

    def test_write_inserts_missing_field(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('{\n  "name": "www"\n}\n')

        PackageJsonVersionStore().write(tmp_path, parse_version("0.1.0"))

        content = (tmp_path / "package.json").read_text()
        assert content == '{\n  "version": "0.1.0",\n  "name": "www"\n}\n'
        assert json.loads(content)["version"] == "0.1.0"

    def test_write_without_brace(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("")
        with pytest.raises(FormatError, match="missing"):
            PackageJsonVersionStore().write(tmp_path, parse_version("0.1.0"))

    def test_always_enabled(self, tmp_path: Path) -> None:
        assert PackageJsonVersionStore().is_enabled(tmp_path)


class TestNewVersionStore:
    """Tests for new_version_store()."""

    def test_go(self) -> None:
        assert isinstance(new_version_store(ProjectType.GO), VersionFile)

    def test_node(self) -> None:
        assert isinstance(new_version_store(ProjectType.NODE), PackageJsonVersionStore)

    def test_uses_settings(self) -> None:
        store = new_version_store(ProjectType.GO, Settings(version_file="VERSION"))
        assert isinstance(store, VersionFile)
        assert store.filename == "VERSION"
