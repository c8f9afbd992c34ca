from __future__ import annotations

from enum import Enum
import os
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, Union

from safefs.errors import IOFailureError
from safefs.models import FileEntry

if TYPE_CHECKING:
    from safefs.ignore_engine import IgnoreEngine


PathLike = Union[str, "os.PathLike[str]", FileEntry]
PathInput = Union[PathLike, Iterable[PathLike]]


class TraversalOrder(str, Enum):
    PRE_ORDER = "pre-order"
    CHILD_FIRST = "child-first"


def iter_paths(files: PathInput) -> Iterator[str]:
    """Yield path strings from one path, one entry, or any iterable of them."""
    if isinstance(files, (str, os.PathLike)):
        yield os.fspath(files)
        return
    for item in files:
        yield os.fspath(item)


def list_children(directory: str | os.PathLike[str]) -> list[FileEntry]:
    with os.scandir(directory) as iterator:
        names = sorted(entry.path for entry in iterator)
    return [FileEntry.from_path(name) for name in names]


def _raise_walk_error(exc: OSError) -> None:
    raise IOFailureError(
        f'Failed to read directory "{exc.filename}": {exc.strerror}.', exc.filename, os_error=exc
    ) from exc


def walk(
    root: str | os.PathLike[str],
    order: TraversalOrder = TraversalOrder.PRE_ORDER,
    ignore: IgnoreEngine | None = None,
) -> Iterator[FileEntry]:
    """Lazily enumerate everything below ``root`` (``root`` itself excluded).

    Pre-order yields a directory before its contents; child-first yields every
    descendant before the directory holding it. Symlinked directories are
    reported as symlinks and never descended.
    """
    root_text = os.fspath(root)
    topdown = order is TraversalOrder.PRE_ORDER

    # paths are joined textually so callers can substitute the root prefix
    for dir_str, dirs, files in os.walk(
        root_text, topdown=topdown, onerror=_raise_walk_error, followlinks=False
    ):
        rel_dir = Path(os.path.relpath(dir_str, root_text))
        dirs.sort()

        if ignore is not None and topdown:
            kept_dirs: list[str] = []
            for dir_name in dirs:
                if ignore.is_ignored(rel_dir / dir_name, is_dir=True):
                    continue
                kept_dirs.append(dir_name)
            dirs[:] = kept_dirs

        dir_names = [(name, True) for name in dirs]
        file_names = [(name, False) for name in sorted(files)]
        # bottom-up: subdirectory contents were yielded by earlier iterations
        names = dir_names + file_names if topdown else file_names + dir_names

        for name, is_dir in names:
            if ignore is not None and ignore.is_ignored(rel_dir / name, is_dir=is_dir):
                continue
            yield FileEntry.from_path(os.path.join(dir_str, name))
