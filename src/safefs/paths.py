from __future__ import annotations

from dataclasses import dataclass
import os
import re

from safefs.errors import PathTooLongError


WINDOWS_PATH_LIMIT = 258
IS_WINDOWS = os.name == "nt"

_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*)://")
_LOCAL_SCHEMES = {None, "file"}


@dataclass(frozen=True, slots=True)
class Scheme:
    """Which primitive set handles a path: local (``None`` / ``file``) or a named backend."""

    name: str | None = None

    @property
    def is_local(self) -> bool:
        return self.name in _LOCAL_SCHEMES

    def join(self, hierarchy: str) -> str:
        if self.name is None:
            return hierarchy
        return f"{self.name}://{hierarchy}"


LOCAL = Scheme()


def split_scheme(path: str | os.PathLike[str]) -> tuple[Scheme, str]:
    text = os.fspath(path)
    match = _SCHEME_RE.match(text)
    if match is None:
        return LOCAL, text
    return Scheme(match.group(1).lower()), text[match.end():]


def is_absolute(path: str | os.PathLike[str]) -> bool:
    text = os.fspath(path)
    if text[:1] in ("/", "\\"):
        return True
    if len(text) >= 3 and text[0].isalpha() and text[1] == ":" and text[2] in "/\\":
        return True
    return _SCHEME_RE.match(text) is not None


def make_relative(end_path: str, start_path: str) -> str:
    """Return ``end_path`` relative to ``start_path``, both absolute directories.

    The result always ends with ``/`` and is ``./`` when both are the same
    directory.
    """
    if os.sep == "\\":
        end_path = end_path.replace("\\", "/")
        start_path = start_path.replace("\\", "/")

    start_parts = start_path.strip("/").split("/")
    end_parts = end_path.strip("/").split("/")

    index = 0
    while index < len(start_parts) and index < len(end_parts) and start_parts[index] == end_parts[index]:
        index += 1

    depth = len(start_parts) - index

    # the root splits into a single empty segment that needs no traversal
    if start_parts == [""] and index == 0 and depth == 1:
        traverser = ""
    else:
        traverser = "../" * depth

    remainder = "/".join(end_parts[index:])
    relative = traverser + (f"{remainder}/" if remainder else "")
    return relative or "./"


def check_path_length(path: str | os.PathLike[str], action: str) -> None:
    text = os.fspath(path)
    if IS_WINDOWS and len(text) > WINDOWS_PATH_LIMIT:
        raise PathTooLongError(
            f"Could not {action} because path length exceeds {WINDOWS_PATH_LIMIT} characters",
            text,
        )
