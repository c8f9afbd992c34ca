from __future__ import annotations

import errno
import io
import posixpath
import time
from typing import Iterator

import pytest

from safefs.schemes import register_backend, unregister_backend


class _MemoryWriter(io.BytesIO):
    def __init__(self, backend: "MemoryBackend", path: str) -> None:
        super().__init__()
        self._backend = backend
        self._path = path

    def close(self) -> None:
        if not self.closed:
            self._backend.store(self._path, self.getvalue())
        super().close()


class MemoryBackend:
    """Flat in-memory store standing in for a remote scheme."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.mtimes: dict[str, float] = {}
        self.dirs: set[str] = set()
        self.open_calls: list[tuple[str, str]] = []

    def store(self, path: str, data: bytes, mtime: float | None = None) -> None:
        self.files[path] = data
        self.mtimes[path] = time.time() if mtime is None else mtime

    def open(self, path: str, mode: str):
        self.open_calls.append((path, mode))
        if mode == "rb":
            if path not in self.files:
                raise FileNotFoundError(errno.ENOENT, "No such file", path)
            return io.BytesIO(self.files[path])
        if mode == "xb" and path in self.files:
            raise FileExistsError(errno.EEXIST, "File exists", path)
        if mode == "xb":
            self.store(path, b"")
        return _MemoryWriter(self, path)

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    def is_file(self, path: str) -> bool:
        return path in self.files

    def makedirs(self, path: str) -> None:
        while path and path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def mtime(self, path: str) -> float:
        return self.mtimes[path]

    def size(self, path: str) -> int:
        return len(self.files[path])

    def replace(self, source: str, destination: str) -> None:
        self.files[destination] = self.files.pop(source)
        self.mtimes[destination] = self.mtimes.pop(source)


@pytest.fixture
def memory_backend() -> Iterator[MemoryBackend]:
    backend = MemoryBackend()
    register_backend("mem", backend)
    yield backend
    unregister_backend("mem")
