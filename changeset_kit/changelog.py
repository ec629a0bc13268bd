"""Changelog rendering and CHANGELOG.md maintenance.

Changesets are grouped into Major, Minor and Patch sections (in that order,
empty sections omitted) and rendered through a jinja2 template. A project
can override the built-in template with `.changeset/changelog.tmpl` in any
ancestor directory of its root; the closest one wins.

Templates receive:
- project: project name ("" when rendering a versioned entry without one)
- version: version string ("" for previews, which omit the header)
- date: ISO date "YYYY-MM-DD" ("" for previews)
- sections: list of {title, items: [{headline, continuation_lines,
  pull_request}]}

New entries are inserted directly under the document header so the file
reads newest-first.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import jinja2
from pydantic import BaseModel, Field

from .changesets import filter_by_project
from .config import CHANGESET_DIR, TEMPLATE_FILE, Settings
from .errors import ChangesetIOError, FormatError, NotFoundError, TemplateError
from .models import Changeset, ChangelogEntry, PullRequest
from .versions import BumpType, Version

CHANGELOG_HEADER = "# Changelog"
CHANGELOG_DESCRIPTION = "All notable changes to this project will be documented in this file."
SECTION_PREFIX = "## "
SNAPSHOT_FOOTER = "**This is a pre-release snapshot for testing purposes.**"

DEFAULT_TEMPLATE_KEY = "__default__"

DEFAULT_TEMPLATE = """\
{% if version %}
## {{ version }} ({{ date }})

{% endif %}
{% for section in sections %}
### {{ section.title }}

{% for item in section.items %}
- {{ item.headline }}{{ item.pull_request | pr_suffix }}
{% for line in item.continuation_lines %}
  {{ line }}
{% endfor %}
{% endfor %}

{% endfor %}
"""

SECTION_TITLES = {
    BumpType.MAJOR: "Major Changes",
    BumpType.MINOR: "Minor Changes",
    BumpType.PATCH: "Patch Changes",
}


class TemplateItem(BaseModel):
    headline: str
    continuation_lines: list[str] = Field(default_factory=list)
    pull_request: PullRequest | None = None


class TemplateSection(BaseModel):
    title: str
    items: list[TemplateItem] = Field(default_factory=list)


class Section(BaseModel):
    """Changesets sharing one bump type, in input order."""

    title: str
    bump: BumpType
    changesets: list[Changeset] = Field(default_factory=list)


def split_message(message: str) -> tuple[str, list[str]]:
    """Split a changeset message into a headline and continuation lines.

    The first line of the trimmed message is the headline. Later non-blank
    lines are trimmed and kept; blank lines are dropped.

    Examples:
        "Add OAuth2\\n\\nGoogle + GitHub" → ("Add OAuth2", ["Google + GitHub"])
        "   " → ("", [])
    """
    message = message.strip()
    if not message:
        return "", []

    first, *rest = message.split("\n")
    return first.rstrip("\r"), [line.strip() for line in rest if line.strip()]


def _bump_of(changeset: Changeset, project_name: str) -> BumpType | None:
    if project_name:
        return changeset.bump_for(project_name)
    # Without a project, use the first bump listed in the changeset
    return next(iter(changeset.projects.values()), None)


def build_sections(changesets: Iterable[Changeset], project_name: str = "") -> list[Section]:
    """Group changesets into Major, Minor, Patch sections.

    With a project name only changesets affecting that project are used and
    they are grouped by that project's bump. Empty sections are omitted.
    """
    relevant = list(changesets)
    if project_name:
        relevant = filter_by_project(relevant, project_name)

    buckets: dict[BumpType, list[Changeset]] = {bump: [] for bump in SECTION_TITLES}
    for cs in relevant:
        bump = _bump_of(cs, project_name)
        if bump is not None:
            buckets[bump].append(cs)

    return [
        Section(title=SECTION_TITLES[bump], bump=bump, changesets=buckets[bump])
        for bump in (BumpType.MAJOR, BumpType.MINOR, BumpType.PATCH)
        if buckets[bump]
    ]


def build_template_sections(sections: Iterable[Section]) -> list[TemplateSection]:
    """Convert sections into template data, dropping empty messages."""
    result: list[TemplateSection] = []
    for section in sections:
        items: list[TemplateItem] = []
        for cs in section.changesets:
            headline, rest = split_message(cs.message)
            if not headline:
                continue
            items.append(
                TemplateItem(headline=headline, continuation_lines=rest, pull_request=cs.pr)
            )
        if items:
            result.append(TemplateSection(title=section.title, items=items))
    return result


def _pr_suffix(pr: PullRequest | None) -> str:
    return pr.markdown_suffix() if pr is not None else ""


def _new_environment() -> jinja2.Environment:
    env = jinja2.Environment(
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["pr_suffix"] = _pr_suffix
    return env


class TemplateCache:
    """Parsed changelog templates, keyed by absolute override path.

    The built-in template is cached under DEFAULT_TEMPLATE_KEY. Lookups and
    inserts hold a lock so projects can be rendered from several threads.
    """

    def __init__(self) -> None:
        self._env = _new_environment()
        self._templates: dict[str, jinja2.Template] = {}
        self._lock = threading.Lock()

    def find_override(self, start: Path | str) -> Path | None:
        """Return the closest `.changeset/changelog.tmpl` at or above start."""
        directory = Path(start).resolve()
        for candidate in (directory, *directory.parents):
            path = candidate / CHANGESET_DIR / TEMPLATE_FILE
            if path.is_file():
                return path
        return None

    def get(self, project_root: Path | str) -> jinja2.Template:
        """Return the template that applies to project_root.

        Raises:
            ChangesetIOError: If an override exists but cannot be read.
            TemplateError: If the template does not parse.
        """
        path = self.find_override(project_root)
        key = str(path) if path is not None else DEFAULT_TEMPLATE_KEY

        with self._lock:
            cached = self._templates.get(key)
            if cached is not None:
                return cached

            if path is not None:
                try:
                    source = path.read_text(encoding="utf-8")
                except UnicodeDecodeError as exc:
                    raise FormatError(
                        f"changelog template {path} is not valid UTF-8: {exc}"
                    ) from exc
                except OSError as exc:
                    raise ChangesetIOError(
                        f"failed to read changelog template {path}: {exc}", path
                    ) from exc
            else:
                source = DEFAULT_TEMPLATE

            try:
                template = self._env.from_string(source)
            except jinja2.TemplateSyntaxError as exc:
                raise TemplateError(f"failed to parse changelog template {key}: {exc}") from exc

            self._templates[key] = template
            return template

    def clear(self) -> None:
        with self._lock:
            self._templates.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._templates)


class Changelog:
    """Renders changelog entries and maintains CHANGELOG.md files."""

    def __init__(
        self,
        settings: Settings | None = None,
        templates: TemplateCache | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.templates = templates or TemplateCache()

    def path(self, project_root: Path | str) -> Path:
        return Path(project_root) / self.settings.changelog_file

    def render(
        self,
        changesets: Iterable[Changeset],
        project_root: Path | str,
        *,
        project_name: str = "",
        version: Version | None = None,
        date: datetime | None = None,
    ) -> str:
        """Render changesets through the applicable template.

        Raises:
            TemplateError: If the template fails to parse or render.
        """
        root = Path(project_root) if str(project_root) else Path.cwd()
        template = self.templates.get(root)

        sections = build_template_sections(build_sections(changesets, project_name))
        try:
            output = template.render(
                project=project_name,
                version=str(version) if version is not None else "",
                date=date.strftime("%Y-%m-%d") if date is not None else "",
                sections=sections,
            )
        except jinja2.TemplateError as exc:
            raise TemplateError(f"failed to execute changelog template for {root}: {exc}") from exc
        return output.strip()

    def format_entry(
        self,
        changesets: Iterable[Changeset],
        project_name: str,
        project_root: Path | str,
    ) -> str:
        """Render a preview of the next entry, without the version header."""
        return self.render(changesets, project_root, project_name=project_name)

    def append(
        self,
        project_root: Path | str,
        entry: ChangelogEntry,
        project_name: str = "",
    ) -> None:
        """Insert a new version section at the top of CHANGELOG.md.

        Everything above the first "## " line is kept as the document
        header; a missing or header-less document gets the standard header.
        Appending the same version twice produces two sections.
        """
        path = self.path(project_root)
        existing = ""
        if path.exists():
            try:
                existing = path.read_text(encoding="utf-8")
            except UnicodeDecodeError as exc:
                raise FormatError(f"changelog {path} is not valid UTF-8: {exc}") from exc
            except OSError as exc:
                raise ChangesetIOError(f"failed to read changelog {path}: {exc}", path) from exc

        new_entry = self.render(
            entry.changesets,
            project_root,
            project_name=project_name,
            version=entry.version,
            date=entry.date,
        )

        if CHANGELOG_HEADER in existing:
            lines = existing.split("\n")
            first_section = next(
                (i for i, line in enumerate(lines) if line.startswith(SECTION_PREFIX)),
                None,
            )
            if first_section is None:
                # No version sections yet, so the whole document is header
                head, tail = existing.rstrip("\n") + "\n\n", ""
            else:
                head = "\n".join(lines[:first_section]) + "\n" if first_section else ""
                tail = "\n".join(lines[first_section:])
        else:
            head = f"{CHANGELOG_HEADER}\n\n{CHANGELOG_DESCRIPTION}\n\n"
            tail = existing

        content = head + new_entry + "\n"
        if tail:
            content += "\n" + tail

        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ChangesetIOError(f"failed to write changelog {path}: {exc}", path) from exc

    def entry_for_version(self, project_root: Path | str, version: Version) -> str:
        """Return the section for a version, from its "## " line to the next.

        Raises:
            NotFoundError: If there is no changelog or no such section.
            ChangesetIOError: If the changelog cannot be read.
            FormatError: If the changelog is not valid UTF-8.
        """
        path = self.path(project_root)
        if not path.exists():
            raise NotFoundError(f"changelog not found: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise FormatError(f"changelog {path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise ChangesetIOError(f"failed to read changelog {path}: {exc}", path) from exc

        header = re.compile(
            rf"^{re.escape(SECTION_PREFIX + str(version))}(?=[ \t\r]|$)", re.MULTILINE
        )
        match = header.search(content)
        if match is None:
            raise NotFoundError(f"version {version} not found in changelog {path}")

        start = match.start()
        end = content.find("\n" + SECTION_PREFIX, match.end())
        return content[start:].strip() if end == -1 else content[start:end].strip()


def extract_release_notes(entry: str) -> str:
    """Drop the leading "## <version>" line from a changelog section."""
    lines = entry.split("\n")
    for i, line in enumerate(lines):
        if line.startswith(SECTION_PREFIX):
            del lines[i]
            break
    return "\n".join(lines).strip()


def changeset_summary(changesets: Iterable[Changeset], project_name: str) -> str:
    """Render release notes for a pre-release snapshot.

    Same grouping as the changelog, followed by a snapshot footer. Does not
    go through the template since snapshot notes are not persisted.
    """
    lines: list[str] = []
    for section in build_sections(changesets, project_name):
        lines.append(f"### {section.title}")
        lines.append("")
        for cs in section.changesets:
            headline, rest = split_message(cs.message)
            if not headline:
                continue
            lines.append(f"- {headline}{_pr_suffix(cs.pr)}")
            lines.extend(f"  {line}" for line in rest)
        lines.append("")

    lines.append("---")
    lines.append(SNAPSHOT_FOOTER)
    return "\n".join(lines) + "\n"
