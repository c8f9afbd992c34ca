from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import logging

from safefs.config import AppConfig, JobConfig, get_job, load_config
from safefs.ignore_engine import build_ignore_engine
from safefs.lock import LockHandler
from safefs.mirror_engine import mirror
from safefs.models import MirrorStats
from safefs.walker import TraversalOrder, walk


EXIT_SUCCESS = 0
EXIT_RUNTIME_OR_CONFIG_ERROR = 1
EXIT_PARTIAL_FAILURES = 2
EXIT_INVALID_CONFIG = 3


@dataclass(slots=True)
class RunSummary:
    copied: int = 0
    skipped: int = 0
    deleted: int = 0
    processed_jobs: int = 0
    locked_jobs: list[str] = field(default_factory=list)
    failed_jobs: list[str] = field(default_factory=list)
    partial_failures: bool = False

    def absorb(self, stats: MirrorStats) -> None:
        self.copied += stats.copied
        self.skipped += stats.skipped
        self.deleted += stats.deleted
        self.processed_jobs += 1


def run_job(job: JobConfig, lock_dir: Path | None = None, blocking: bool = False) -> MirrorStats | None:
    """Mirror one job under the lock of its target tree.

    Returns ``None`` when another process holds the lock.
    """
    handler = LockHandler(job.lock_name(), lock_dir)
    if not handler.lock(blocking=blocking):
        return None
    try:
        ignore = build_ignore_engine(job)
        entries = None
        if ignore is not None:
            if not job.origin.is_dir():
                raise ValueError(f"Origin directory does not exist or is not a directory: {job.origin}")
            entries = walk(job.origin, order=TraversalOrder.PRE_ORDER, ignore=ignore)
        return mirror(job.origin, job.target, entries=entries, options=job.mirror_options())
    finally:
        handler.release()


def run_mirror_jobs(
    config_path: Path,
    job_name: str | None = None,
    blocking: bool = False,
    continue_on_error: bool = True,
    logger: logging.Logger | None = None,
) -> tuple[int, RunSummary]:
    log = logger or logging.getLogger("safefs.run")

    try:
        config: AppConfig = load_config(config_path)
        jobs = get_job(config, job_name)
    except Exception as exc:
        log.error("Config error: %s", exc)
        return EXIT_INVALID_CONFIG, RunSummary(partial_failures=True)

    summary = RunSummary()

    for job in jobs:
        try:
            stats = run_job(job, lock_dir=config.lock_dir, blocking=blocking)
        except Exception as exc:
            summary.partial_failures = True
            summary.failed_jobs.append(job.name)
            log.error("[%s] failed mirroring %s -> %s: %s", job.name, job.origin, job.target, exc)
            if not continue_on_error:
                return EXIT_RUNTIME_OR_CONFIG_ERROR, summary
            continue

        if stats is None:
            summary.partial_failures = True
            summary.locked_jobs.append(job.name)
            log.warning("[%s] target %s is locked by another process; skipped", job.name, job.target)
            continue

        summary.absorb(stats)
        log.info(
            "[%s] %s -> %s | copied=%s skipped=%s dirs=%s links=%s deleted=%s",
            job.name,
            job.origin,
            job.target,
            stats.copied,
            stats.skipped,
            stats.created_dirs,
            stats.linked,
            stats.deleted,
        )

    exit_code = EXIT_PARTIAL_FAILURES if summary.partial_failures else EXIT_SUCCESS
    return exit_code, summary
