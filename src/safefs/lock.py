from __future__ import annotations

from hashlib import sha256
import logging
import os
import re
import tempfile
import time

from safefs.errors import IOFailureError
from safefs.filesystem import mkdir


log = logging.getLogger("safefs.lock")

CREATE_RACE_DELAY = 0.0001
READ_ONLY = 0o444

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9._-]+", re.IGNORECASE)


try:
    import fcntl

    def _acquire(fd: int, blocking: bool) -> bool:
        flags = fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except OSError as exc:
            log.debug("flock on fd %d refused: %s", fd, exc)
            return False
        return True

    def _unlock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN | fcntl.LOCK_NB)

except ImportError:
    import msvcrt

    def _acquire(fd: int, blocking: bool) -> bool:
        while True:
            os.lseek(fd, 0, os.SEEK_SET)
            try:
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            except OSError as exc:
                if not blocking:
                    log.debug("locking on fd %d refused: %s", fd, exc)
                    return False
                time.sleep(0.05)
                continue
            return True

    def _unlock(fd: int) -> None:
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)


def lock_file_name(name: str) -> str:
    sanitized = _UNSAFE_NAME_CHARS.sub("-", name)
    digest = sha256(name.encode("utf-8")).hexdigest()
    return f"sf.{sanitized}{digest}.lock"


def _open_read(path: str) -> tuple[int | None, OSError | None]:
    try:
        return os.open(path, os.O_RDONLY | getattr(os, "O_CLOEXEC", 0)), None
    except OSError as exc:
        return None, exc


def _create_exclusive(path: str) -> tuple[int | None, OSError | None]:
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_CLOEXEC", 0), READ_ONLY)
    except OSError as exc:
        return None, exc
    try:
        os.chmod(path, READ_ONLY)
    except OSError as exc:
        log.debug("could not make %s read-only: %s", path, exc)
    return fd, None


class LockHandler:
    def __init__(self, name: str, lock_path: str | os.PathLike[str] | None = None) -> None:
        directory = os.fspath(lock_path) if lock_path else tempfile.gettempdir()

        if not os.path.isdir(directory):
            mkdir(directory)

        if not os.access(directory, os.W_OK):
            raise IOFailureError(f'The directory "{directory}" is not writable.', directory)

        self.name = name
        self.file = os.path.join(directory, lock_file_name(name))
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def _open_lock_file(self) -> tuple[int | None, OSError | None]:
        fd, error = _open_read(self.file)
        if fd is not None:
            return fd, None

        fd, create_error = _create_exclusive(self.file)
        if fd is not None:
            return fd, None

        # someone else created it between our two attempts
        fd, error = _open_read(self.file)
        if fd is not None:
            return fd, None
        time.sleep(CREATE_RACE_DELAY)
        fd, error = _open_read(self.file)
        if fd is None and not isinstance(create_error, FileExistsError):
            # nobody else created it; the create failure is the real cause
            return None, create_error
        return fd, error

    def lock(self, blocking: bool = False) -> bool:
        if self._fd is not None:
            return True

        fd, error = self._open_lock_file()
        if fd is None:
            message = error.strerror if error is not None and error.strerror else str(error)
            raise IOFailureError(
                f'Failed to open lock file "{self.file}": {message}', self.file, os_error=error
            )

        if not _acquire(fd, blocking):
            os.close(fd)
            return False

        self._fd = fd
        log.debug("acquired lock %s", self.name)
        return True

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            _unlock(fd)
        finally:
            os.close(fd)
        log.debug("released lock %s", self.name)

    def __enter__(self) -> LockHandler:
        if not self.lock(blocking=True):
            raise IOFailureError(f'Failed to acquire lock "{self.file}"', self.file)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __del__(self) -> None:
        if getattr(self, "_fd", None) is not None:
            self.release()
