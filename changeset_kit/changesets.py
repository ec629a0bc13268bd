"""Changeset files: reading, writing, deleting, and aggregating.

A changeset is a markdown file in the changeset directory with YAML front
matter mapping project names to bump types:

    ---
    auth: minor
    billing: patch
    ---

    Add token refresh to the auth client.

The filename minus ".md" is the changeset's id, so deleting or re-reading a
changeset always goes through its file path.
"""

from __future__ import annotations

import random
import re
import secrets
import string
from collections.abc import Iterable
from pathlib import Path

import yaml

from .errors import ChangesetError, ChangesetIOError, FormatError
from .models import Changeset
from .shell import warn
from .versions import BumpType, parse_bump_type

CHANGESET_SUFFIX = ".md"

_FRONT_MATTER = re.compile(
    r"\A---[ \t]*\r?\n(?P<matter>.*?)^---[ \t]*\r?$\n?(?P<body>.*)\Z",
    re.DOTALL | re.MULTILINE,
)

ADJECTIVES = (
    "amazing", "awesome", "bold", "brave", "bright", "brilliant", "calm",
    "capable", "charming", "cheerful", "clever", "confident", "cool",
    "creative", "dazzling", "delightful", "dynamic", "eager", "elegant",
    "energetic", "excellent", "fabulous", "fancy", "fantastic", "fearless",
    "festive", "fierce", "friendly", "generous", "gentle", "gifted",
    "glorious", "golden", "graceful", "grand", "happy", "honest", "hopeful",
    "inspired", "jolly", "joyful", "kind", "lively", "lovely", "loyal",
    "lucky", "magnificent", "majestic", "merry", "mighty", "neat", "noble",
    "optimistic", "peaceful", "pleasant", "polite", "powerful", "proud",
    "quick", "quiet", "radiant", "reliable", "remarkable", "resilient",
    "shiny", "sincere", "skilled", "smart", "smooth", "sparkling", "splendid",
    "stellar", "strong", "stunning", "superb", "sweet", "talented", "tender",
    "terrific", "thoughtful", "tidy", "tranquil", "trusted", "unique",
    "upbeat", "valiant", "vibrant", "vigorous", "warm", "willing", "wise",
    "witty", "wonderful", "worthy", "zealous", "zippy",
)

ANIMALS = (
    "aardvark", "alpaca", "antelope", "armadillo", "badger", "bat", "bear",
    "beaver", "bison", "bobcat", "camel", "capybara", "cat", "cheetah",
    "chipmunk", "cougar", "coyote", "deer", "dingo", "dolphin", "donkey",
    "elephant", "elk", "ferret", "fox", "gazelle", "giraffe", "goat",
    "hamster", "hare", "hedgehog", "hippo", "horse", "jaguar", "kangaroo",
    "koala", "lemur", "leopard", "lion", "llama", "lynx", "meerkat", "mole",
    "mongoose", "moose", "mouse", "otter", "panda", "panther", "platypus",
    "pony", "porcupine", "puma", "rabbit", "raccoon", "reindeer", "rhino",
    "seal", "sheep", "sloth", "squirrel", "tapir", "tiger", "walrus",
    "weasel", "whale", "wolf", "wombat", "yak", "zebra", "albatross",
    "cardinal", "condor", "crane", "dove", "eagle", "falcon", "finch",
    "flamingo", "heron", "hummingbird", "kestrel", "kingfisher", "magpie",
    "osprey", "owl", "parrot", "pelican", "penguin", "puffin", "raven",
    "robin", "sparrow", "swan", "toucan", "gecko", "iguana", "newt",
    "salamander", "tortoise", "turtle", "octopus", "salmon", "seahorse",
    "squid", "trout", "beetle", "butterfly", "dragonfly", "firefly",
    "ladybug", "mantis",
)

_ID_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 8


def generate_id() -> str:
    """Generate a human-friendly changeset id like "dazzling_mouse_V1StGXR8".

    Uniqueness is probabilistic: the 8-character suffix gives 62**8
    combinations per adjective/animal pair. Callers do not retry.
    """
    adjective = random.choice(ADJECTIVES)
    animal = random.choice(ANIMALS)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{adjective}_{animal}_{suffix}"


def parse_changeset(path: Path | str, content: str) -> Changeset:
    """Parse changeset file content.

    Args:
        path: Path of the file; its stem becomes the changeset id.
        content: Raw file content.

    Raises:
        FormatError: If the front matter is missing or malformed, names no
            projects, or contains an invalid bump type.
    """
    path = Path(path)
    match = _FRONT_MATTER.match(content)
    if match is None:
        raise FormatError(f"no projects found in changeset front matter: {path}")

    try:
        matter = yaml.safe_load(match.group("matter"))
    except yaml.YAMLError as exc:
        raise FormatError(f"failed to parse front matter in {path}: {exc}") from exc

    if matter is None:
        matter = {}
    if not isinstance(matter, dict):
        raise FormatError(f"front matter in {path} must map project names to bump types")

    projects: dict[str, BumpType] = {}
    for project_name, bump_str in matter.items():
        try:
            projects[str(project_name)] = parse_bump_type(str(bump_str))
        except FormatError as exc:
            raise FormatError(
                f"invalid bump type for project {project_name} in {path}: {exc}"
            ) from exc

    if not projects:
        raise FormatError(f"no projects found in changeset front matter: {path}")

    return Changeset(
        id=path.name.removesuffix(CHANGESET_SUFFIX),
        projects=projects,
        message=match.group("body").strip(),
        file_path=str(path),
    )


def format_changeset(changeset: Changeset) -> str:
    """Serialize a changeset to file content (front matter + message)."""
    lines = ["---"]
    for project_name in sorted(changeset.projects):
        lines.append(f"{project_name}: {changeset.projects[project_name].value}")
    lines.append("---")
    lines.append("")
    lines.append(changeset.message)
    return "\n".join(lines) + "\n"


def filter_by_project(
    changesets: Iterable[Changeset], project_name: str
) -> list[Changeset]:
    """Return the changesets that list project_name in their front matter."""
    return [cs for cs in changesets if cs.affects(project_name)]


def highest_bump(changesets: Iterable[Changeset], project_name: str) -> BumpType:
    """Determine the highest bump type requested for a project.

    Returns PATCH when no changeset affects the project; callers that need
    to distinguish "no changes" must check for an empty list themselves.
    """
    highest = BumpType.PATCH
    for cs in changesets:
        bump = cs.bump_for(project_name)
        if bump is BumpType.MAJOR:
            return BumpType.MAJOR
        if bump is BumpType.MINOR:
            highest = BumpType.MINOR
    return highest


class ChangesetStore:
    """Reads and writes changeset files in a single directory.

    Attributes:
        directory: The changeset directory (usually `<workspace>/.changeset`).
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def read_all(self) -> list[Changeset]:
        """Read every changeset in the directory, sorted by filename.

        Files that fail to parse are reported with a warning and skipped.
        A missing directory means there are no changesets.

        Raises:
            ChangesetIOError: If the directory exists but cannot be listed.
        """
        if not self.directory.exists():
            return []

        try:
            entries = sorted(self.directory.iterdir())
        except OSError as exc:
            raise ChangesetIOError(
                f"failed to read changeset directory {self.directory}: {exc}",
                self.directory,
            ) from exc

        changesets: list[Changeset] = []
        for entry in entries:
            if entry.is_dir() or entry.suffix != CHANGESET_SUFFIX:
                continue
            try:
                changesets.append(self.read(entry))
            except ChangesetError as exc:
                warn(f"failed to read changeset {entry.name}: {exc}")
        return changesets

    def read_all_of_project(self, project_name: str) -> list[Changeset]:
        return filter_by_project(self.read_all(), project_name)

    def read(self, path: Path | str) -> Changeset:
        """Read and parse a single changeset file.

        Raises:
            ChangesetIOError: If the file cannot be read.
            FormatError: If the content is not UTF-8 or not a valid changeset.
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise FormatError(f"changeset {path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise ChangesetIOError(f"failed to read changeset {path}: {exc}", path) from exc
        return parse_changeset(path, content)

    def write(self, changeset: Changeset) -> Path:
        """Write a changeset to `<directory>/<id>.md`, creating the directory.

        Sets changeset.file_path to the written path and returns it.
        """
        path = self.directory / f"{changeset.id}{CHANGESET_SUFFIX}"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(format_changeset(changeset), encoding="utf-8")
        except OSError as exc:
            raise ChangesetIOError(f"failed to write changeset {path}: {exc}", path) from exc

        changeset.file_path = str(path)
        return path

    def delete(self, changeset: Changeset) -> None:
        """Remove a changeset's backing file.

        Raises:
            ChangesetIOError: If the changeset was never read or written, or
                the file cannot be removed.
        """
        if not changeset.file_path:
            raise ChangesetIOError(f"changeset {changeset.id} has no file path")

        path = Path(changeset.file_path)
        try:
            path.unlink()
        except OSError as exc:
            raise ChangesetIOError(
                f"failed to delete changeset {changeset.id} ({path}): {exc}", path
            ) from exc
