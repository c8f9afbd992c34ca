from __future__ import annotations

import logging
import os
import posixpath
import secrets
import tempfile

from safefs.errors import IOFailureError
from safefs.filesystem import mkdir
from safefs.paths import split_scheme
from safefs.schemes import backend_for


log = logging.getLogger("safefs.atomic")

# Non-local schemes have no exclusive-create-unique primitive; after this many
# name collisions creation gives up.
TEMP_FILE_ATTEMPTS = 10
DUMP_FILE_MODE = 0o666


def temp_file(directory: str | os.PathLike[str], prefix: str) -> str:
    scheme, hierarchy = split_scheme(directory)

    if scheme.is_local:
        try:
            fd, name = tempfile.mkstemp(prefix=prefix, dir=hierarchy)
        except OSError as exc:
            raise IOFailureError(
                "A temporary file could not be created.", scheme.join(hierarchy), os_error=exc
            ) from exc
        os.close(fd)
        return scheme.join(name)

    backend = backend_for(scheme)
    for attempt in range(TEMP_FILE_ATTEMPTS):
        candidate = posixpath.join(hierarchy, f"{prefix}{secrets.token_hex(8)}")
        try:
            with backend.open(candidate, "xb"):
                pass
        except OSError as exc:
            log.debug("temp file attempt %d in %s failed: %s", attempt + 1, scheme.join(hierarchy), exc)
            continue
        return scheme.join(candidate)

    raise IOFailureError("A temporary file could not be created.", scheme.join(hierarchy))


def dump_file(filename: str | os.PathLike[str], content: str | bytes) -> None:
    """Replace ``filename`` atomically; a failed write leaves the old file and the temp file behind."""
    scheme, hierarchy = split_scheme(filename)
    backend = backend_for(scheme)
    target_name = scheme.join(hierarchy)
    data = content.encode("utf-8") if isinstance(content, str) else content

    if scheme.is_local:
        directory = os.path.dirname(hierarchy) or "."
        if not os.path.isdir(directory):
            mkdir(directory)
        elif not os.access(directory, os.W_OK):
            raise IOFailureError(f'Unable to write to the "{directory}" directory.', directory)
        base_name = os.path.basename(hierarchy)
    else:
        directory = posixpath.dirname(hierarchy)
        try:
            if directory and not backend.exists(directory):
                backend.makedirs(directory)
        except OSError as exc:
            raise IOFailureError(
                f'Unable to write to the "{scheme.join(directory)}" directory.', scheme.join(directory), os_error=exc
            ) from exc
        base_name = posixpath.basename(hierarchy)

    tmp_name = temp_file(scheme.join(directory), base_name)
    _, tmp_path = split_scheme(tmp_name)

    try:
        with backend.open(tmp_path, "wb") as handle:
            handle.write(data)
    except OSError as exc:
        raise IOFailureError(f'Failed to write file "{target_name}".', target_name, os_error=exc) from exc

    if scheme.is_local:
        try:
            os.chmod(tmp_path, DUMP_FILE_MODE)
        except OSError as exc:
            log.debug("could not chmod %s: %s", tmp_path, exc)

    try:
        backend.replace(tmp_path, hierarchy)
    except OSError as exc:
        raise IOFailureError(
            f'Cannot rename "{tmp_name}" to "{target_name}".', tmp_name, target=target_name, os_error=exc
        ) from exc
    log.debug("dumped %d bytes to %s", len(data), target_name)
