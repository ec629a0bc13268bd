"""Exception types raised by changeset-kit.

Every error carries the operation and the path or identifier that failed.
Callers that only care about "something went wrong" can catch
ChangesetError.
"""

from __future__ import annotations

from pathlib import Path


class ChangesetError(Exception):
    """Base class for all changeset-kit errors."""


class FormatError(ChangesetError):
    """A version string, bump type, or document is malformed."""


class NotFoundError(ChangesetError):
    """A tag, changelog, or changelog section does not exist."""


class ChangesetIOError(ChangesetError):
    """A file-system operation failed.

    Attributes:
        path: The file or directory the operation was acting on, if known.
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class TemplateError(ChangesetError):
    """A changelog template failed to parse or render."""
