from __future__ import annotations

import errno
import os
from typing import BinaryIO, Protocol
from urllib.error import URLError
import urllib.request

from safefs.errors import IOFailureError
from safefs.paths import Scheme


class Backend(Protocol):
    def open(self, path: str, mode: str) -> BinaryIO:
        ...

    def exists(self, path: str) -> bool:
        ...

    def is_file(self, path: str) -> bool:
        ...

    def makedirs(self, path: str) -> None:
        ...

    def mtime(self, path: str) -> float:
        ...

    def size(self, path: str) -> int:
        ...

    def replace(self, source: str, destination: str) -> None:
        ...


class LocalBackend:
    def open(self, path: str, mode: str) -> BinaryIO:
        return open(path, mode)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def makedirs(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)

    def mtime(self, path: str) -> float:
        return os.stat(path).st_mtime

    def size(self, path: str) -> int:
        return os.stat(path).st_size

    def replace(self, source: str, destination: str) -> None:
        os.replace(source, destination)


class UrlBackend:
    """Read-only access to ``http``, ``https`` and ``ftp`` resources."""

    def __init__(self, scheme: str, timeout: float | None = 60.0) -> None:
        self.scheme = scheme
        self.timeout = timeout

    def _unsupported(self, path: str) -> OSError:
        return OSError(errno.EROFS, f"{self.scheme} paths are read-only", path)

    def open(self, path: str, mode: str) -> BinaryIO:
        if mode != "rb":
            raise self._unsupported(path)
        url = f"{self.scheme}://{path}"
        try:
            return urllib.request.urlopen(url, timeout=self.timeout)
        except URLError as exc:
            raise OSError(errno.EIO, str(exc.reason), url) from exc

    def exists(self, path: str) -> bool:
        return False

    def is_file(self, path: str) -> bool:
        return False

    def makedirs(self, path: str) -> None:
        raise self._unsupported(path)

    def mtime(self, path: str) -> float:
        raise self._unsupported(path)

    def size(self, path: str) -> int:
        raise self._unsupported(path)

    def replace(self, source: str, destination: str) -> None:
        raise self._unsupported(destination)


_local_backend = LocalBackend()
_backends: dict[str, Backend] = {
    "http": UrlBackend("http"),
    "https": UrlBackend("https"),
    "ftp": UrlBackend("ftp"),
}


def register_backend(name: str, backend: Backend) -> None:
    key = name.lower()
    if key == "file":
        raise ValueError("The file scheme is always handled by the local backend")
    _backends[key] = backend


def unregister_backend(name: str) -> None:
    _backends.pop(name.lower(), None)


def backend_for(scheme: Scheme) -> Backend:
    if scheme.is_local:
        return _local_backend
    backend = _backends.get(scheme.name or "")
    if backend is None:
        raise IOFailureError(f'No backend is registered for the "{scheme.name}" scheme.')
    return backend
