"""Exceptions raised by safefs operations."""

from __future__ import annotations


class FilesystemError(Exception):
    """Base class for every safefs failure."""


class IOFailureError(FilesystemError):
    """An OS-level read/write/create/copy/rename/mkdir/chmod/chown/symlink/lock failure.

    Attributes:
        path: The path the operation was working on, if known.
        target: The second path of two-path operations (copy, rename).
        os_error: The underlying :class:`OSError`, when there was one.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        *,
        target: str | None = None,
        os_error: OSError | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.target = target
        self.os_error = os_error


class NotFoundError(IOFailureError):
    """A required source path does not exist."""


class PathTooLongError(IOFailureError):
    """The path exceeds the platform path-length limit."""


class AlreadyExistsError(IOFailureError):
    """A rename target exists and overwriting was not requested."""


class SymlinkPermissionError(IOFailureError):
    """Symlink creation needs privileges the current process does not hold."""


class UnrecognizedEntryKindError(IOFailureError):
    """An enumerated entry is not a regular file, directory or symlink."""
