from __future__ import annotations

import logging
import os

from safefs.errors import AlreadyExistsError, IOFailureError
from safefs.models import EntryKind, FileEntry
from safefs.paths import check_path_length
from safefs.walker import PathInput, TraversalOrder, iter_paths, list_children, walk


log = logging.getLogger("safefs.fs")


def mkdir(dirs: PathInput, mode: int = 0o777) -> None:
    for directory in iter_paths(dirs):
        if os.path.isdir(directory):
            continue
        try:
            os.makedirs(directory, mode, exist_ok=True)
        except OSError as exc:
            # another process may have won the race
            if not os.path.isdir(directory):
                raise IOFailureError(
                    f'Failed to create "{directory}": {exc.strerror}.', directory, os_error=exc
                ) from exc


def exists(files: PathInput) -> bool:
    for file in iter_paths(files):
        check_path_length(file, "check if file exists")
        if not os.path.lexists(file):
            return False
    return True


def is_readable(path: str | os.PathLike[str]) -> bool:
    check_path_length(path, "check if file readable")
    return os.path.exists(path) and os.access(path, os.R_OK)


def touch(files: PathInput, time: float | None = None, atime: float | None = None) -> None:
    for file in iter_paths(files):
        try:
            with open(file, "ab"):
                pass
            if time is not None:
                os.utime(file, (atime if atime is not None else time, time))
            else:
                os.utime(file, None)
        except OSError as exc:
            raise IOFailureError(f'Failed to touch "{file}".', file, os_error=exc) from exc


def _remove_one(path: str, kind: EntryKind) -> None:
    if kind is EntryKind.SYMLINK:
        try:
            os.unlink(path)
        except OSError:
            # Windows directory junctions and links only go away with rmdir
            try:
                os.rmdir(path)
            except OSError as exc:
                raise IOFailureError(
                    f'Failed to remove symlink "{path}": {exc.strerror}.', path, os_error=exc
                ) from exc
    elif kind is EntryKind.DIRECTORY:
        try:
            os.rmdir(path)
        except OSError as exc:
            raise IOFailureError(
                f'Failed to remove directory "{path}": {exc.strerror}.', path, os_error=exc
            ) from exc
    else:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise IOFailureError(f'Failed to remove "{path}": {exc.strerror}.', path, os_error=exc) from exc


def _kind_of(path: str) -> EntryKind | None:
    if os.path.islink(path):
        return EntryKind.SYMLINK
    if os.path.isdir(path):
        return EntryKind.DIRECTORY
    if os.path.lexists(path):
        return EntryKind.REGULAR
    return None


def remove_entry(entry: FileEntry) -> None:
    if entry.kind is EntryKind.DIRECTORY:
        # snapshot first: deleting while enumerating would invalidate the walk
        for child in list(walk(entry.path, order=TraversalOrder.CHILD_FIRST)):
            _remove_one(child.path, child.kind)
    log.debug("removing %s %s", entry.kind, entry.path)
    _remove_one(entry.path, entry.kind)


def remove(files: PathInput) -> None:
    """Remove files, symlinks and whole directory trees; missing paths are ignored."""
    items = [files] if isinstance(files, (str, os.PathLike)) else list(files)
    for item in reversed(items):
        if isinstance(item, FileEntry):
            remove_entry(item)
            continue
        path = os.fspath(item)
        kind = _kind_of(path)
        if kind is not None:
            remove_entry(FileEntry(path=path, kind=kind))


def chmod(files: PathInput, mode: int, umask: int = 0o000, recursive: bool = False) -> None:
    for file in iter_paths(files):
        try:
            os.chmod(file, mode & ~umask)
        except OSError as exc:
            raise IOFailureError(f'Failed to chmod file "{file}".', file, os_error=exc) from exc
        if recursive and os.path.isdir(file) and not os.path.islink(file):
            chmod(list_children(file), mode, umask, True)


def _uid_for(user: str | int) -> int:
    if isinstance(user, int):
        return user
    import pwd

    return pwd.getpwnam(user).pw_uid


def _gid_for(group: str | int) -> int:
    if isinstance(group, int):
        return group
    import grp

    return grp.getgrnam(group).gr_gid


def _change_owner(file: str, uid: int, gid: int, action: str) -> None:
    try:
        if os.path.islink(file) and hasattr(os, "lchown"):
            os.lchown(file, uid, gid)
        else:
            os.chown(file, uid, gid)
    except OSError as exc:
        raise IOFailureError(f'Failed to {action} file "{file}".', file, os_error=exc) from exc


def chown(files: PathInput, user: str | int, recursive: bool = False) -> None:
    for file in iter_paths(files):
        if recursive and os.path.isdir(file) and not os.path.islink(file):
            chown(list_children(file), user, True)
        try:
            uid = _uid_for(user)
        except (KeyError, ImportError) as exc:
            raise IOFailureError(f'Failed to chown file "{file}": unknown user "{user}".', file) from exc
        _change_owner(file, uid, -1, "chown")


def chgrp(files: PathInput, group: str | int, recursive: bool = False) -> None:
    for file in iter_paths(files):
        if recursive and os.path.isdir(file) and not os.path.islink(file):
            chgrp(list_children(file), group, True)
        try:
            gid = _gid_for(group)
        except (KeyError, ImportError) as exc:
            raise IOFailureError(f'Failed to chgrp file "{file}": unknown group "{group}".', file) from exc
        _change_owner(file, -1, gid, "chgrp")


def rename(origin: str | os.PathLike[str], target: str | os.PathLike[str], overwrite: bool = False) -> None:
    origin_text = os.fspath(origin)
    target_text = os.fspath(target)
    if not overwrite and is_readable(target_text):
        raise AlreadyExistsError(
            f'Cannot rename because the target "{target_text}" already exists.',
            origin_text,
            target=target_text,
        )
    try:
        os.replace(origin_text, target_text)
    except OSError as exc:
        raise IOFailureError(
            f'Cannot rename "{origin_text}" to "{target_text}".',
            origin_text,
            target=target_text,
            os_error=exc,
        ) from exc
