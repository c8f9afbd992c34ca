from pathlib import Path
import os
import stat
import sys

import pytest

from safefs.errors import AlreadyExistsError, IOFailureError
from safefs.filesystem import chgrp, chmod, chown, exists, mkdir, remove, rename, touch
from safefs.models import FileEntry


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_mkdir_is_idempotent(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b" / "c"

    mkdir(target)
    mkdir(target)

    assert target.is_dir()


def test_mkdir_accepts_many_paths(tmp_path: Path) -> None:
    mkdir([tmp_path / "one", str(tmp_path / "two"), tmp_path / "three" / "four"])

    assert (tmp_path / "one").is_dir()
    assert (tmp_path / "two").is_dir()
    assert (tmp_path / "three" / "four").is_dir()


def test_mkdir_over_a_file_raises_io_failure(tmp_path: Path) -> None:
    _write(tmp_path / "file", "x")

    with pytest.raises(IOFailureError) as excinfo:
        mkdir(tmp_path / "file" / "sub")

    assert str(tmp_path / "file" / "sub") in str(excinfo.value)


def test_exists_requires_every_path(tmp_path: Path) -> None:
    _write(tmp_path / "a.txt", "a")
    _write(tmp_path / "b.txt", "b")

    assert exists(tmp_path / "a.txt")
    assert exists([tmp_path / "a.txt", tmp_path / "b.txt"])
    assert not exists([tmp_path / "a.txt", tmp_path / "missing.txt"])


def test_touch_creates_file_and_sets_times(tmp_path: Path) -> None:
    target = tmp_path / "touched"

    touch(target, time=1_500_000, atime=1_400_000)

    st = target.stat()
    assert target.read_bytes() == b""
    assert int(st.st_mtime) == 1_500_000
    assert int(st.st_atime) == 1_400_000


def test_touch_keeps_existing_content(tmp_path: Path) -> None:
    target = tmp_path / "existing"
    _write(target, "keep me")

    touch(target, time=1_000_000)

    assert int(target.stat().st_atime) == 1_000_000
    assert target.read_text(encoding="utf-8") == "keep me"


def test_remove_deletes_tree_and_ignores_missing(tmp_path: Path) -> None:
    tree = tmp_path / "tree"
    _write(tree / "a.txt", "a")
    _write(tree / "sub" / "b.txt", "b")
    _write(tree / "sub" / "deeper" / "c.txt", "c")
    (tree / "empty").mkdir()

    remove([tree, tmp_path / "never-existed"])

    assert not tree.exists()


def test_remove_visits_children_before_parents(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    tree = tmp_path / "tree"
    _write(tree / "sub" / "leaf.txt", "x")
    removed: list[str] = []

    real_rmdir = os.rmdir
    real_unlink = os.unlink

    def recording_rmdir(path) -> None:
        removed.append(os.fspath(path))
        real_rmdir(path)

    def recording_unlink(path) -> None:
        removed.append(os.fspath(path))
        real_unlink(path)

    monkeypatch.setattr("safefs.filesystem.os.rmdir", recording_rmdir)
    monkeypatch.setattr("safefs.filesystem.os.unlink", recording_unlink)

    remove(tree)

    assert removed == [str(tree / "sub" / "leaf.txt"), str(tree / "sub"), str(tree)]


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_remove_unlinks_symlink_without_touching_its_target(tmp_path: Path) -> None:
    real_dir = tmp_path / "real"
    _write(real_dir / "kept.txt", "kept")
    link = tmp_path / "link"
    link.symlink_to(real_dir, target_is_directory=True)

    remove(link)

    assert not os.path.lexists(link)
    assert (real_dir / "kept.txt").exists()


def test_remove_accepts_file_entries(tmp_path: Path) -> None:
    _write(tmp_path / "entry.txt", "x")

    remove(FileEntry.from_path(tmp_path / "entry.txt"))

    assert not (tmp_path / "entry.txt").exists()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_chmod_recursive_applies_umask(tmp_path: Path) -> None:
    tree = tmp_path / "tree"
    _write(tree / "sub" / "file.txt", "x")

    chmod(tree, 0o777, umask=0o022, recursive=True)

    for path in (tree, tree / "sub", tree / "sub" / "file.txt"):
        assert stat.S_IMODE(path.stat().st_mode) == 0o755


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX ownership")
def test_chown_and_chgrp_to_current_ids(tmp_path: Path) -> None:
    tree = tmp_path / "tree"
    _write(tree / "file.txt", "x")

    chown(tree, os.getuid(), recursive=True)
    chgrp(tree, os.getgid(), recursive=True)

    assert (tree / "file.txt").stat().st_uid == os.getuid()
    assert (tree / "file.txt").stat().st_gid == os.getgid()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX ownership")
def test_chown_unknown_user_raises_io_failure(tmp_path: Path) -> None:
    _write(tmp_path / "file.txt", "x")

    with pytest.raises(IOFailureError):
        chown(tmp_path / "file.txt", "no-such-user-for-safefs-tests")


def test_rename_refuses_existing_target_without_overwrite(tmp_path: Path) -> None:
    _write(tmp_path / "origin", "origin")
    _write(tmp_path / "target", "target")

    with pytest.raises(AlreadyExistsError):
        rename(tmp_path / "origin", tmp_path / "target")

    rename(tmp_path / "origin", tmp_path / "target", overwrite=True)

    assert (tmp_path / "target").read_text(encoding="utf-8") == "origin"
    assert not (tmp_path / "origin").exists()


def test_rename_missing_origin_raises_io_failure(tmp_path: Path) -> None:
    with pytest.raises(IOFailureError):
        rename(tmp_path / "missing", tmp_path / "target")
