from __future__ import annotations

import logging
import os
import posixpath
import stat
from typing import BinaryIO

from safefs.errors import IOFailureError, NotFoundError
from safefs.filesystem import mkdir
from safefs.models import CopyOutcome
from safefs.paths import Scheme, split_scheme
from safefs.schemes import Backend, backend_for


log = logging.getLogger("safefs.copy")

CHUNK_SIZE = 1024 * 1024
EXECUTABLE_BITS = 0o111


def _stream_copy(source: BinaryIO, destination: BinaryIO) -> int:
    copied = 0
    for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
        destination.write(chunk)
        copied += len(chunk)
    return copied


def _ensure_parent(scheme: Scheme, backend: Backend, hierarchy: str) -> None:
    if scheme.is_local:
        mkdir(os.path.dirname(hierarchy) or ".")
        return
    parent = posixpath.dirname(hierarchy)
    try:
        if parent and not backend.exists(parent):
            backend.makedirs(parent)
    except OSError as exc:
        raise IOFailureError(
            f'Failed to create "{scheme.join(parent)}": {exc.strerror}.', scheme.join(parent), os_error=exc
        ) from exc


def _should_copy(
    origin_backend: Backend,
    origin: str,
    target_backend: Backend,
    target: str,
) -> bool:
    if not target_backend.is_file(target):
        return True
    return origin_backend.mtime(origin) > target_backend.mtime(target)


def _propagate_executable_bits(origin: str, target: str) -> None:
    try:
        origin_mode = os.stat(origin).st_mode
        target_mode = os.stat(target).st_mode
        os.chmod(target, stat.S_IMODE(target_mode) | (origin_mode & EXECUTABLE_BITS))
    except OSError as exc:
        log.debug("could not propagate executable bits to %s: %s", target, exc)


def copy(
    origin_file: str | os.PathLike[str],
    target_file: str | os.PathLike[str],
    override: bool = False,
) -> CopyOutcome:
    origin_scheme, origin = split_scheme(origin_file)
    target_scheme, target = split_scheme(target_file)
    origin_name = origin_scheme.join(origin)
    target_name = target_scheme.join(target)

    if origin_scheme.is_local and not os.path.isfile(origin):
        raise NotFoundError(f'Failed to copy "{origin_name}" because file does not exist.', origin_name)

    origin_backend = backend_for(origin_scheme)
    target_backend = backend_for(target_scheme)

    _ensure_parent(target_scheme, target_backend, target)

    if not override and origin_scheme.is_local:
        try:
            do_copy = _should_copy(origin_backend, origin, target_backend, target)
        except OSError as exc:
            raise IOFailureError(
                f'Failed to compare "{origin_name}" with "{target_name}": {exc.strerror}.',
                origin_name,
                target=target_name,
                os_error=exc,
            ) from exc
        if not do_copy:
            log.debug("skipping %s: %s is not older", origin_name, target_name)
            return CopyOutcome.SKIPPED

    try:
        source = origin_backend.open(origin, "rb")
    except OSError as exc:
        raise IOFailureError(
            f'Failed to copy "{origin_name}" to "{target_name}" because source file could not be opened for reading.',
            origin_name,
            target=target_name,
            os_error=exc,
        ) from exc

    with source:
        try:
            destination = target_backend.open(target, "wb")
        except OSError as exc:
            raise IOFailureError(
                f'Failed to copy "{origin_name}" to "{target_name}" because target file could not be opened for writing.',
                origin_name,
                target=target_name,
                os_error=exc,
            ) from exc
        with destination:
            try:
                bytes_copied = _stream_copy(source, destination)
            except OSError as exc:
                raise IOFailureError(
                    f'Failed to copy "{origin_name}" to "{target_name}": {exc}.',
                    origin_name,
                    target=target_name,
                    os_error=exc,
                ) from exc

    if not target_backend.is_file(target):
        raise IOFailureError(f'Failed to copy "{origin_name}" to "{target_name}".', origin_name, target=target_name)

    if origin_scheme.is_local and target_scheme.is_local:
        _propagate_executable_bits(origin, target)

    if origin_scheme.is_local:
        bytes_origin = os.path.getsize(origin)
        if bytes_copied != bytes_origin:
            raise IOFailureError(
                f'Failed to copy the whole content of "{origin_name}" to "{target_name}" '
                f"({bytes_copied} of {bytes_origin} bytes copied)",
                origin_name,
                target=target_name,
            )

    log.debug("copied %s -> %s (%d bytes)", origin_name, target_name, bytes_copied)
    return CopyOutcome.COPIED
