"""
ArchivalEngine -- bounded tree walk, name matching, copy-per-file isolation.

Contract:
    ``archive_dated()`` copies every matching file under a source root into
    ``<destination>/<run_date>/``.  ``archive_category()`` copies matching
    files modified on the current day into ``<destination>/<category>/``.
    Both return an ``ArchiveResult``; ``result.copied`` is the number of
    files copied.

Invariants enforced:
    - Copy only: a source file is never moved, renamed or deleted.
    - Walk depth is bounded to direct children of the root and their direct
      children.  Unreadable entries are skipped, the walk continues.
    - Target creation is idempotent (``mkdir(parents=True, exist_ok=True)``).
    - Per-file isolation: one file failing to copy is recorded as FAILED and
      the batch carries on.
    - "Today" comes from the caller (``as_of``) or the injected Clock, never
      from a direct wall-clock read.

Failure modes:
    - ``ArchiveTargetError`` if the destination folder cannot be created.
      This is the only exception the archive operations raise.
"""

from __future__ import annotations

import os
import shutil
import time
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from pathlib import Path

from archive_kernel.domain.clock import Clock, SystemClock
from archive_kernel.domain.pattern import PatternMatcher
from archive_kernel.domain.types import (
    ArchiveResult,
    ArchiveTarget,
    CopyStatus,
    FileCandidate,
    FileCopyResult,
    OverwritePolicy,
)
from archive_kernel.exceptions import ArchiveTargetError
from archive_kernel.logging_config import get_logger

logger = get_logger("batch.archival")

# Levels below the source root that are visited: 0 = direct children,
# 1 = their children.  Nothing deeper is traversed.
MAX_WALK_DEPTH = 2


class ArchivalEngine:
    """Copies name-matched output files into dated or category folders.

    Non-goals:
        - Does NOT parallelise; files are copied one after another.
        - Does NOT retry a failed copy.
    """

    def __init__(
        self,
        matcher: PatternMatcher,
        clock: Clock | None = None,
        on_existing: OverwritePolicy = OverwritePolicy.OVERWRITE,
    ) -> None:
        self._matcher = matcher
        self._clock = clock or SystemClock()
        self._on_existing = on_existing

    # -------------------------------------------------------------------------
    # Walk
    # -------------------------------------------------------------------------

    def scan(self, source_root: Path | str) -> Iterator[FileCandidate]:
        """Yield every regular file within the bounded depth of ``source_root``.

        A missing or unreadable root yields nothing.
        """
        root = Path(source_root)
        if not root.is_dir():
            logger.warning(
                "archive_source_missing",
                extra={"source_root": str(root)},
            )
            return
        yield from self._scan_dir(root, depth=0)

    def _scan_dir(self, directory: Path, depth: int) -> Iterator[FileCandidate]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            logger.warning(
                "archive_walk_entry_skipped",
                extra={"path": str(directory), "error": str(exc)},
            )
            return

        for entry in entries:
            candidate: FileCandidate | None = None
            descend = False
            try:
                if entry.is_file():
                    stat = entry.stat()
                    candidate = FileCandidate(
                        path=Path(entry.path),
                        name=entry.name,
                        depth=depth,
                        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                elif depth + 1 < MAX_WALK_DEPTH and entry.is_dir(follow_symlinks=False):
                    descend = True
            except OSError as exc:
                logger.warning(
                    "archive_walk_entry_skipped",
                    extra={"path": entry.path, "error": str(exc)},
                )
                continue

            if candidate is not None:
                yield candidate
            elif descend:
                yield from self._scan_dir(Path(entry.path), depth + 1)

    # -------------------------------------------------------------------------
    # Archive operations
    # -------------------------------------------------------------------------

    def archive_dated(
        self,
        source_root: Path | str,
        destination_root: Path | str,
        run_date: str,
    ) -> ArchiveResult:
        """Copy every matching file into ``<destination_root>/<run_date>/``.

        Raises:
            ArchiveTargetError: If the dated folder cannot be created.
        """
        target = ArchiveTarget.dated(destination_root, run_date)
        return self._archive(Path(source_root), target, accept=lambda c: True)

    def archive_category(
        self,
        source_root: Path | str,
        destination_root: Path | str,
        category: str,
        as_of: datetime | None = None,
    ) -> ArchiveResult:
        """Copy matching files modified today into ``<destination_root>/<category>/``.

        "Today" is the calendar date of ``as_of`` in its own timezone; the
        file's mtime is converted to that timezone before comparing.  When
        ``as_of`` is omitted the clock is read once.

        Raises:
            ArchiveTargetError: If the category folder cannot be created.
        """
        moment = as_of or self._clock.now()
        tz = moment.tzinfo
        today = moment.date()

        def modified_today(candidate: FileCandidate) -> bool:
            return candidate.modified_at.astimezone(tz).date() == today

        target = ArchiveTarget.for_category(destination_root, category)
        return self._archive(Path(source_root), target, accept=modified_today)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _archive(
        self,
        source_root: Path,
        target: ArchiveTarget,
        accept: Callable[[FileCandidate], bool],
    ) -> ArchiveResult:
        start_time = time.monotonic()
        try:
            target_path = target.ensure()
        except OSError as exc:
            logger.error(
                "archive_target_failed",
                extra={"target": str(target.path), "error": str(exc)},
            )
            raise ArchiveTargetError(str(target.path), str(exc)) from exc

        logger.info(
            "archive_started",
            extra={
                "source_root": str(source_root),
                "target": str(target_path),
                "on_existing": self._on_existing.value,
            },
        )

        scanned = 0
        matched = 0
        results: list[FileCopyResult] = []

        for candidate in self.scan(source_root):
            scanned += 1
            if not self._matcher.matches(candidate.name):
                continue
            if not accept(candidate):
                continue
            matched += 1
            results.append(self._copy(candidate, target_path))

        result = ArchiveResult(
            target=target,
            source_root=source_root,
            results=tuple(results),
            scanned=scanned,
            matched=matched,
        )

        log = logger.warning if result.failed else logger.info
        log(
            "archive_completed",
            extra={
                "target": str(target_path),
                "status": result.status.value,
                "scanned": scanned,
                "matched": matched,
                "copied": result.copied,
                "skipped": result.skipped,
                "failed": result.failed,
                "duration_ms": int((time.monotonic() - start_time) * 1000),
            },
        )
        return result

    def _copy(self, candidate: FileCandidate, target_path: Path) -> FileCopyResult:
        destination = target_path / candidate.name

        # shutil.copy would place the file inside an existing directory.
        if destination.is_dir():
            logger.warning(
                "archive_file_failed",
                extra={
                    "source": str(candidate.path),
                    "destination": str(destination),
                    "error": "destination is a directory",
                },
            )
            return FileCopyResult(
                source=candidate.path,
                destination=destination,
                status=CopyStatus.FAILED,
                reason="destination_is_directory",
                error_message=f"Destination is a directory: {destination}",
            )

        if self._on_existing == OverwritePolicy.SKIP and destination.exists():
            logger.debug(
                "archive_file_skipped",
                extra={"source": str(candidate.path), "destination": str(destination)},
            )
            return FileCopyResult(
                source=candidate.path,
                destination=destination,
                status=CopyStatus.SKIPPED,
                reason="destination_exists",
            )

        try:
            shutil.copy(candidate.path, destination)
        except OSError as exc:
            logger.warning(
                "archive_file_failed",
                extra={
                    "source": str(candidate.path),
                    "destination": str(destination),
                    "error": str(exc),
                },
            )
            return FileCopyResult(
                source=candidate.path,
                destination=destination,
                status=CopyStatus.FAILED,
                error_message=str(exc),
            )

        logger.debug(
            "archive_file_copied",
            extra={"source": str(candidate.path), "destination": str(destination)},
        )
        return FileCopyResult(
            source=candidate.path,
            destination=destination,
            status=CopyStatus.COPIED,
        )
