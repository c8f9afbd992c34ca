from pathlib import Path
import os
import stat
import sys

import pytest

from safefs.copy_engine import copy
from safefs.errors import IOFailureError, NotFoundError
from safefs.models import CopyOutcome


def _write(path: Path, content: str, mtime: float | None = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))


def test_copy_creates_missing_target_and_parents(tmp_path: Path) -> None:
    origin = tmp_path / "origin.txt"
    target = tmp_path / "deep" / "nested" / "target.txt"
    _write(origin, "hello world")

    outcome = copy(origin, target)

    assert outcome is CopyOutcome.COPIED
    assert target.read_text(encoding="utf-8") == "hello world"


def test_copy_skips_when_target_is_newer(tmp_path: Path) -> None:
    origin = tmp_path / "origin.txt"
    target = tmp_path / "target.txt"
    _write(origin, "new content", mtime=1_000_000)
    _write(target, "kept", mtime=2_000_000)

    outcome = copy(origin, target)

    assert outcome is CopyOutcome.SKIPPED
    assert target.read_text(encoding="utf-8") == "kept"


def test_copy_skips_when_mtimes_are_equal(tmp_path: Path) -> None:
    origin = tmp_path / "origin.txt"
    target = tmp_path / "target.txt"
    _write(origin, "new content", mtime=1_000_000)
    _write(target, "kept", mtime=1_000_000)

    assert copy(origin, target) is CopyOutcome.SKIPPED
    assert target.read_text(encoding="utf-8") == "kept"


def test_copy_replaces_older_target(tmp_path: Path) -> None:
    origin = tmp_path / "origin.txt"
    target = tmp_path / "target.txt"
    _write(origin, "fresh", mtime=2_000_000)
    _write(target, "stale and longer", mtime=1_000_000)

    assert copy(origin, target) is CopyOutcome.COPIED
    assert target.read_text(encoding="utf-8") == "fresh"


def test_copy_override_ignores_mtimes(tmp_path: Path) -> None:
    origin = tmp_path / "origin.txt"
    target = tmp_path / "target.txt"
    _write(origin, "forced", mtime=1_000_000)
    _write(target, "newer", mtime=2_000_000)

    assert copy(origin, target, override=True) is CopyOutcome.COPIED
    assert target.read_text(encoding="utf-8") == "forced"


def test_copy_missing_origin_raises_not_found(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        copy(tmp_path / "missing.txt", tmp_path / "target.txt")

    assert not (tmp_path / "target.txt").exists()


def test_copy_directory_origin_raises_not_found(tmp_path: Path) -> None:
    (tmp_path / "a-directory").mkdir()

    with pytest.raises(NotFoundError):
        copy(tmp_path / "a-directory", tmp_path / "target.txt")


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_copy_adds_origin_executable_bits(tmp_path: Path) -> None:
    origin = tmp_path / "run.sh"
    target = tmp_path / "out" / "run.sh"
    _write(origin, "#!/bin/sh\necho hi\n")
    origin.chmod(0o755)
    _write(target, "old", mtime=1)
    target.chmod(0o640)

    copy(origin, target)

    assert stat.S_IMODE(target.stat().st_mode) == 0o751


def test_copy_reports_short_transfer(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    origin = tmp_path / "origin.bin"
    target = tmp_path / "target.bin"
    origin.write_bytes(b"x" * 100)

    def truncated_copy(source, destination) -> int:
        data = source.read(40)
        destination.write(data)
        return len(data)

    monkeypatch.setattr("safefs.copy_engine._stream_copy", truncated_copy)

    with pytest.raises(IOFailureError) as excinfo:
        copy(origin, target)

    assert "40 of 100 bytes copied" in str(excinfo.value)
    assert excinfo.value.path == str(origin)
    assert excinfo.value.target == str(target)


def test_copy_from_custom_scheme_always_copies(tmp_path: Path, memory_backend) -> None:
    memory_backend.store("bucket/remote.txt", b"remote bytes", mtime=1)
    target = tmp_path / "local.txt"
    _write(target, "newer local", mtime=2_000_000)

    outcome = copy("mem://bucket/remote.txt", target)

    assert outcome is CopyOutcome.COPIED
    assert target.read_bytes() == b"remote bytes"


def test_copy_to_custom_scheme_creates_parent(tmp_path: Path, memory_backend) -> None:
    origin = tmp_path / "origin.txt"
    _write(origin, "payload")

    outcome = copy(origin, "mem://bucket/sub/target.txt")

    assert outcome is CopyOutcome.COPIED
    assert memory_backend.files["bucket/sub/target.txt"] == b"payload"
    assert "bucket/sub" in memory_backend.dirs


def test_copy_unreadable_custom_origin_raises_io_failure(tmp_path: Path, memory_backend) -> None:
    with pytest.raises(IOFailureError) as excinfo:
        copy("mem://bucket/missing.txt", tmp_path / "target.txt")

    assert "could not be opened for reading" in str(excinfo.value)


def test_copy_unknown_scheme_raises_io_failure(tmp_path: Path) -> None:
    origin = tmp_path / "origin.txt"
    _write(origin, "payload")

    with pytest.raises(IOFailureError):
        copy(origin, "nosuchscheme://somewhere/target.txt")
