"""Release pipeline: changesets → version bump → changelog → publish check.

This module ties the stores together the way a release run uses them:
1. Read pending changesets and keep the ones affecting each project
2. Bump each project's persisted version by its highest bump type
3. Prepend a dated entry to the project's CHANGELOG.md
4. Delete the consumed changesets
5. Later, decide per project whether the persisted version still needs
   a release tag

Snapshot (release candidate) versions and per-project status reports are
computed from the same inputs without touching any files.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .changelog import Changelog
from .changesets import ChangesetStore, filter_by_project, highest_bump
from .config import Settings
from .errors import ChangesetError, FormatError, NotFoundError
from .models import (
    ChangelogEntry,
    Changeset,
    Project,
    ProjectContext,
    ProjectFilter,
    VersionBump,
)
from .shell import step, warn
from .tags import PublishDecision, TagResolver, version_from_tag
from .version_store import new_version_store
from .versions import Version


def apply_changesets(
    project: Project,
    changesets: list[Changeset],
    *,
    settings: Settings | None = None,
    changelog: Changelog | None = None,
    now: datetime | None = None,
    current: Version | None = None,
) -> VersionBump:
    """Bump a project's version and prepend its changelog entry.

    Changesets are not deleted here; see version_project and version_all.

    Args:
        project: The project to bump.
        changesets: Changesets affecting the project (must not be empty).
        settings: Workspace settings; defaults are used if omitted.
        changelog: Renderer to use; share one across projects so templates
                   are parsed once.
        now: Date for the changelog entry; defaults to the current time.
        current: The version already read from the project's version
                 store; read again if omitted.
    """
    settings = settings or Settings()
    changelog = changelog or Changelog(settings)

    bump = highest_bump(changesets, project.name)
    store = new_version_store(project.type, settings)
    old = current if current is not None else store.read(project.root_path)
    new = old.bump(bump)
    # Load the template before writing so a bad template leaves no bump behind
    changelog.templates.get(project.root_path)

    store.write(project.root_path, new)
    print(f"  {project.name}: {old} → {new} ({bump.value})")

    entry = ChangelogEntry(version=new, date=now or datetime.now(), changesets=changesets)
    changelog.append(project.root_path, entry, project.name)

    return VersionBump(project=project.name, old=old, new=new, bump=bump)


def _delete_consumed(store: ChangesetStore, changesets: Iterable[Changeset]) -> None:
    for cs in changesets:
        try:
            store.delete(cs)
        except ChangesetError as exc:
            warn(f"failed to delete {cs.id}: {exc}")
            continue
        print(f"  Removed {cs.id}.md")


def version_project(
    project: Project,
    store: ChangesetStore,
    *,
    settings: Settings | None = None,
    changelog: Changelog | None = None,
    now: datetime | None = None,
) -> VersionBump | None:
    """Apply all pending changesets for one project.

    Returns None (and changes nothing) when no changeset affects the
    project. Consumed changesets are deleted, including ones that also
    list other projects.
    """
    step(f"Versioning {project.name}")

    changesets = store.read_all_of_project(project.name)
    if not changesets:
        print("  No changesets found for this project")
        return None

    for cs in changesets:
        print(f"  - {cs.id} ({cs.projects[project.name].value})")

    bumped = apply_changesets(
        project, changesets, settings=settings, changelog=changelog, now=now
    )
    _delete_consumed(store, changesets)
    return bumped


def version_all(
    projects: Iterable[Project],
    store: ChangesetStore,
    *,
    settings: Settings | None = None,
    changelog: Changelog | None = None,
    now: datetime | None = None,
) -> dict[str, VersionBump]:
    """Version every enabled project that has pending changesets.

    Changesets are read once and deleted only after every project has been
    versioned, so a changeset listing several projects bumps all of them.
    Every project's current version and changelog template are loaded
    before anything is written, so a malformed version file aborts the run
    with no project bumped.

    Returns:
        Map of project name → VersionBump for the projects that changed.

    Raises:
        FormatError: If a project's persisted version is malformed.
        TemplateError: If a project's changelog template does not parse.
    """
    settings = settings or Settings()
    changelog = changelog or Changelog(settings)

    step("Versioning projects")

    all_changesets = store.read_all()
    pending: list[tuple[Project, list[Changeset], Version]] = []

    for project in projects:
        version_store = new_version_store(project.type, settings)
        if not version_store.is_enabled(project.root_path):
            print(f"  {project.name}: versioning disabled")
            continue

        changesets = filter_by_project(all_changesets, project.name)
        if not changesets:
            continue

        current = version_store.read(project.root_path)
        changelog.templates.get(project.root_path)
        pending.append((project, changesets, current))

    bumped: dict[str, VersionBump] = {}
    consumed: dict[str, Changeset] = {}
    for project, changesets, current in pending:
        bumped[project.name] = apply_changesets(
            project,
            changesets,
            settings=settings,
            changelog=changelog,
            now=now,
            current=current,
        )
        for cs in changesets:
            consumed[cs.id] = cs

    if consumed:
        step("Removing consumed changesets")
        _delete_consumed(store, consumed.values())

    return bumped


def publish_decision(
    project: Project,
    resolver: TagResolver,
    *,
    settings: Settings | None = None,
    releases_only: bool = False,
) -> PublishDecision:
    """Decide whether a project's persisted version needs to be published."""
    store = new_version_store(project.type, settings)
    version = store.read(project.root_path)
    decision = resolver.should_publish(project.name, version, releases_only=releases_only)

    if decision.latest_tag is None:
        print(f"  {project.name}: no existing tag (first release)")
    elif decision.publish:
        print(f"  {project.name}: {decision.latest_tag} → {decision.tag}")
    else:
        print(f"  {project.name}: {version} already published (skipping)")
    return decision


def snapshot_version(
    project: Project,
    changesets: list[Changeset],
    resolver: TagResolver,
) -> Version:
    """Compute the next release candidate version for a project.

    The base is the latest non-RC tag (0.0.0 if none) bumped by the highest
    pending bump; the prerelease is "rc<N>" with the next free N.

    Raises:
        NotFoundError: If no changeset affects the project.
    """
    relevant = filter_by_project(changesets, project.name)
    if not relevant:
        raise NotFoundError(f"no changesets found for project {project.name}")

    try:
        latest = resolver.latest_release_version(project.name)
    except NotFoundError:
        latest = Version()

    next_version = latest.bump(highest_bump(relevant, project.name))
    rc = resolver.next_rc_number(project.name, next_version)
    return next_version.with_prerelease(f"rc{rc}")


def build_project_context(
    project: Project,
    changesets: list[Changeset],
    resolver: TagResolver | None = None,
    *,
    settings: Settings | None = None,
    changelog: Changelog | None = None,
) -> ProjectContext:
    """Summarize a project's release status.

    A persisted version that fails to parse is reported as a warning and
    treated as 0.0.0, as is a project that has never been tagged.
    """
    settings = settings or Settings()
    changelog = changelog or Changelog(settings)
    store = new_version_store(project.type, settings)
    relevant = filter_by_project(changesets, project.name)

    try:
        current = store.read(project.root_path)
    except FormatError as exc:
        warn(f"{project.name}: {exc}")
        current = Version()

    latest = Version()
    if resolver is not None:
        try:
            latest = version_from_tag(resolver.latest_tag(project.name))
        except (NotFoundError, FormatError):
            latest = Version()

    preview = ""
    if relevant:
        preview = changelog.format_entry(relevant, project.name, project.root_path)

    return ProjectContext(
        project=project.name,
        project_path=project.root_path,
        module_path=project.module_path,
        changesets=relevant,
        current_version=str(current),
        has_version_file=store.exists(project.root_path),
        latest_tag=str(latest),
        has_changesets=bool(relevant),
        is_outdated=current.compare(latest) > 0,
        changelog_preview=preview,
    )


def filter_projects(
    contexts: Iterable[ProjectContext], filters: Iterable[ProjectFilter]
) -> list[ProjectContext]:
    """Keep the contexts matching every filter (no filters keeps all)."""
    filters = list(filters)
    return [ctx for ctx in contexts if all(f.matches(ctx) for f in filters)]
