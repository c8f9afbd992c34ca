from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
import stat

from safefs.errors import IOFailureError, NotFoundError


class EntryKind(str, Enum):
    REGULAR = "regular"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_mode(cls, mode: int) -> EntryKind:
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat.S_ISREG(mode):
            return cls.REGULAR
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class FileEntry:
    """One filesystem entry as seen at enumeration time.

    The entry is never refreshed; callers that need current metadata stat
    the path again.
    """

    path: str
    kind: EntryKind
    mode: int = 0
    mtime: float = 0.0
    size: int = 0

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> FileEntry:
        text = os.fspath(path)
        try:
            st = os.lstat(text)
        except FileNotFoundError as exc:
            raise NotFoundError(f'"{text}" does not exist.', text, os_error=exc) from exc
        except OSError as exc:
            raise IOFailureError(f'Failed to stat "{text}": {exc.strerror}.', text, os_error=exc) from exc
        return cls(
            path=text,
            kind=EntryKind.from_mode(st.st_mode),
            mode=stat.S_IMODE(st.st_mode),
            mtime=st.st_mtime,
            size=st.st_size,
        )

    def __fspath__(self) -> str:
        return self.path


@dataclass(frozen=True, slots=True)
class MirrorOptions:
    override: bool = False
    copy_on_windows: bool = False
    delete_extraneous: bool = False


class CopyOutcome(str, Enum):
    COPIED = "copied"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class MirrorStats:
    copied: int = 0
    skipped: int = 0
    created_dirs: int = 0
    linked: int = 0
    deleted: int = 0

    def record_copy(self, outcome: CopyOutcome) -> None:
        if outcome is CopyOutcome.COPIED:
            self.copied += 1
        else:
            self.skipped += 1
