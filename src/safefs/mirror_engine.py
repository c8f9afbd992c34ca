from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from safefs.copy_engine import copy
from safefs.errors import IOFailureError, NotFoundError, SymlinkPermissionError, UnrecognizedEntryKindError
from safefs.filesystem import mkdir, remove, remove_entry
from safefs.models import EntryKind, FileEntry, MirrorOptions, MirrorStats
from safefs.paths import check_path_length
from safefs.walker import TraversalOrder, walk


log = logging.getLogger("safefs.mirror")

ERROR_PRIVILEGE_NOT_HELD = 1314


def native_symlinks() -> bool:
    return os.name != "nt"


def symlink(origin_dir: str | os.PathLike[str], target_dir: str | os.PathLike[str], copy_on_windows: bool = False) -> None:
    """Point ``target_dir`` at ``origin_dir``, replacing a link that points elsewhere.

    On Windows with ``copy_on_windows`` the origin is mirrored instead.
    """
    origin = os.fspath(origin_dir)
    target = os.fspath(target_dir)

    if not native_symlinks():
        origin = origin.replace("/", "\\")
        target = target.replace("/", "\\")
        if copy_on_windows:
            mirror(origin, target)
            return

    mkdir(os.path.dirname(target) or ".")

    if os.path.islink(target):
        if os.readlink(target) == origin:
            return
        remove(target)

    try:
        os.symlink(origin, target, target_is_directory=os.path.isdir(origin))
    except OSError as exc:
        if getattr(exc, "winerror", None) == ERROR_PRIVILEGE_NOT_HELD:
            raise SymlinkPermissionError(
                "Unable to create symlink due to error code 1314: "
                "'A required privilege is not held by the client'. "
                "Do you have the required Administrator rights?",
                target,
                os_error=exc,
            ) from exc
        raise IOFailureError(
            f'Failed to create symbolic link from "{origin}" to "{target}".',
            origin,
            target=target,
            os_error=exc,
        ) from exc


def _validate_paths(origin_root: Path, target_root: Path) -> None:
    origin_resolved = origin_root.resolve()
    target_resolved = target_root.resolve()

    if origin_resolved == target_resolved:
        raise ValueError(f"Invalid mirror: origin and target are equal: {origin_root}")

    if origin_resolved in target_resolved.parents:
        raise ValueError(f"Invalid mirror: target is inside origin, which can recurse: {target_root}")


def _counterpart(path: str, from_root: str, to_root: str) -> str:
    prefix = from_root if from_root.endswith(("/", "\\")) else from_root + os.sep
    if path == from_root:
        return to_root
    if path.startswith(prefix):
        return os.path.join(to_root, path[len(prefix):])
    if os.altsep and path.startswith(from_root + os.altsep):
        return os.path.join(to_root, path[len(from_root) + 1:])
    raise ValueError(f'"{path}" is not below "{from_root}"')


def _origin_present(path: str) -> bool:
    check_path_length(path, "check if file exists")
    try:
        os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError as exc:
        # an unreadable origin entry must never count as deleted
        raise IOFailureError(f'Failed to check "{path}": {exc.strerror}.', path, os_error=exc) from exc
    return True


def _delete_extraneous(origin_dir: str, target_dir: str, stats: MirrorStats) -> None:
    # decide every deletion against a snapshot taken before the first one
    snapshot = list(walk(target_dir, order=TraversalOrder.CHILD_FIRST))
    for entry in snapshot:
        origin = _counterpart(entry.path, target_dir, origin_dir)
        if _origin_present(origin):
            continue
        log.debug("deleting %s: %s is gone", entry.path, origin)
        remove_entry(entry)
        stats.deleted += 1


def _as_entry(item: FileEntry | str | os.PathLike[str]) -> FileEntry:
    if isinstance(item, FileEntry):
        return item
    return FileEntry.from_path(item)


def mirror(
    origin_dir: str | os.PathLike[str],
    target_dir: str | os.PathLike[str],
    entries: Iterable[FileEntry | str | os.PathLike[str]] | None = None,
    options: MirrorOptions | None = None,
) -> MirrorStats:
    """Make ``target_dir`` match ``origin_dir``.

    ``entries`` replaces the default pre-order walk of ``origin_dir``; every
    entry must lie below ``origin_dir``. With ``delete_extraneous``, entries
    of the target with no counterpart in the origin are removed first.

    Raises:
        NotFoundError: ``origin_dir`` is not a directory and no ``entries`` were given.
        UnrecognizedEntryKindError: an entry is neither file, directory nor symlink.
        ValueError: the target is the origin or lies inside it.
    """
    options = options or MirrorOptions()
    origin_root = os.fspath(origin_dir).rstrip("/\\") or os.sep
    target_root = os.fspath(target_dir).rstrip("/\\") or os.sep
    stats = MirrorStats()

    if os.path.isdir(origin_root):
        _validate_paths(Path(origin_root), Path(target_root))
    elif entries is None:
        raise NotFoundError(f'Failed to mirror "{origin_root}" because it is not a directory.', origin_root)

    if entries is None:
        entries = walk(origin_root, order=TraversalOrder.PRE_ORDER)

    if options.delete_extraneous and os.path.isdir(target_root):
        _delete_extraneous(origin_root, target_root, stats)

    copy_links = options.copy_on_windows and not native_symlinks()

    for item in entries:
        entry = _as_entry(item)
        target = _counterpart(entry.path, origin_root, target_root)

        if entry.kind is EntryKind.SYMLINK:
            if copy_links:
                stats.record_copy(copy(entry.path, target, options.override))
            else:
                symlink(os.readlink(entry.path), target)
                stats.linked += 1
        elif entry.kind is EntryKind.DIRECTORY:
            if not os.path.isdir(target):
                stats.created_dirs += 1
            mkdir(target)
        elif entry.kind is EntryKind.REGULAR:
            stats.record_copy(copy(entry.path, target, options.override))
        else:
            raise UnrecognizedEntryKindError(f'Unable to guess "{entry.path}" file type.', entry.path)

    log.debug(
        "mirrored %s -> %s | copied=%s skipped=%s dirs=%s links=%s deleted=%s",
        origin_root,
        target_root,
        stats.copied,
        stats.skipped,
        stats.created_dirs,
        stats.linked,
        stats.deleted,
    )
    return stats
