from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pathspec

from safefs.config import JobConfig


def _read_ignore_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return []


def _prefix_pattern(prefix: str, pattern: str) -> str:
    if not pattern or pattern.startswith("#"):
        return pattern

    negate = pattern.startswith("!")
    core = pattern[1:] if negate else pattern

    if core.startswith("/"):
        mapped = f"{prefix}{core}" if prefix else core
    else:
        mapped = f"{prefix}/{core}" if prefix else core

    return f"!{mapped}" if negate else mapped


def _collect_nested_gitignore_patterns(origin_root: Path) -> list[str]:
    patterns: list[str] = []
    for gitignore in sorted(origin_root.rglob(".gitignore")):
        rel_parent = gitignore.parent.relative_to(origin_root)
        rel_prefix = rel_parent.as_posix().strip(".")
        for line in _read_ignore_lines(gitignore):
            if not line.strip():
                continue
            patterns.append(_prefix_pattern(rel_prefix, line))
    return patterns


class IgnoreEngine:
    """Gitignore-syntax matcher for paths relative to a mirror origin."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self._spec = pathspec.PathSpec.from_lines("gitignore", patterns)

    def is_ignored(self, relative_path: Path, is_dir: bool = False) -> bool:
        unix_path = relative_path.as_posix()
        candidate = f"{unix_path}/" if is_dir and not unix_path.endswith("/") else unix_path
        return self._spec.match_file(candidate)


def build_ignore_engine(job: JobConfig) -> IgnoreEngine | None:
    patterns: list[str] = list(job.excludes)
    if job.respect_gitignore:
        patterns.extend(_collect_nested_gitignore_patterns(job.origin))
    if not patterns:
        return None
    return IgnoreEngine(patterns)
