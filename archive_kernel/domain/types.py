"""
archive_kernel.domain.types -- DTOs for the archive workflow.

Frozen dataclasses with enum status fields and tuples for immutable
collections, except ``WorkflowRun`` which is the one mutable execution
context: created at process start, updated as each stage completes,
discarded at exit.  Nothing here is persisted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from uuid import UUID, uuid4


# =============================================================================
# Status enums
# =============================================================================


class RunStatus(str, Enum):
    """Terminal status of a workflow run."""

    RUNNING = "running"  # Not yet at DONE
    SUCCEEDED = "succeeded"  # Archival completed, no file-level failures
    PARTIALLY_SUCCEEDED = "partially_succeeded"  # Archival ran, some files failed
    SKIPPED_NO_DATA = "skipped_no_data"  # Gate table empty
    SKIPPED_JOB_FAILED = "skipped_job_failed"  # External job exited non-zero
    FAILED = "failed"  # Fatal error, remaining stages bypassed


class WorkflowState(str, Enum):
    """Orchestrator states.  Transitions only ever move forward."""

    START = "start"
    PROCEDURE_RAN = "procedure_ran"
    GATED = "gated"
    JOB_INVOKED = "job_invoked"
    ARCHIVING = "archiving"
    DONE = "done"

    @property
    def rank(self) -> int:
        return _STATE_ORDER.index(self)


_STATE_ORDER = list(WorkflowState)


class CopyStatus(str, Enum):
    """Per-file outcome within one archive operation."""

    COPIED = "copied"
    SKIPPED = "skipped"  # Destination exists and policy is SKIP
    FAILED = "failed"  # OSError while copying


class ArchiveStatus(str, Enum):
    """Outcome of one archive operation (one target)."""

    COMPLETED = "completed"  # No file failed
    PARTIALLY_COMPLETED = "partially_completed"  # Some files failed
    FAILED = "failed"  # Every candidate failed


class OverwritePolicy(str, Enum):
    """What to do when the destination file already exists."""

    OVERWRITE = "overwrite"
    SKIP = "skip"


# =============================================================================
# Filesystem DTOs
# =============================================================================


@dataclass(frozen=True)
class FileCandidate:
    """A regular file found during a bounded tree walk.

    ``depth`` is 0 for a direct child of the source root and 1 for an
    entry one level further down.
    """

    path: Path
    name: str
    depth: int
    modified_at: datetime


@dataclass(frozen=True)
class ArchiveTarget:
    """Destination folder for one archive operation.

    Exactly one of ``run_date`` (dated target) or ``category`` (category
    target) is set.
    """

    destination_root: Path
    run_date: str | None = None
    category: str | None = None

    def __post_init__(self) -> None:
        if (self.run_date is None) == (self.category is None):
            raise ValueError("ArchiveTarget needs exactly one of run_date or category")
        label = self.label
        if not label or label in (".", "..") or "/" in label or (
            os.sep != "/" and os.sep in label
        ):
            raise ValueError(f"Invalid archive target label: {label!r}")

    @classmethod
    def dated(cls, destination_root: Path | str, run_date: str) -> ArchiveTarget:
        return cls(destination_root=Path(destination_root), run_date=run_date)

    @classmethod
    def for_category(cls, destination_root: Path | str, category: str) -> ArchiveTarget:
        return cls(destination_root=Path(destination_root), category=category)

    @property
    def label(self) -> str:
        return self.run_date if self.run_date is not None else self.category  # type: ignore[return-value]

    @property
    def path(self) -> Path:
        return self.destination_root / self.label

    def ensure(self) -> Path:
        """Create the folder (and missing parents) if absent.  Idempotent."""
        target = self.path
        target.mkdir(parents=True, exist_ok=True)
        return target


@dataclass(frozen=True)
class FileCopyResult:
    """Result of archiving a single matched file."""

    source: Path
    destination: Path
    status: CopyStatus
    reason: str | None = None  # e.g. "destination_exists"
    error_message: str | None = None


@dataclass(frozen=True)
class ArchiveResult:
    """Result of one archive operation.

    ``copied`` is the number of files copied into the target.
    """

    target: ArchiveTarget
    source_root: Path
    results: tuple[FileCopyResult, ...] = ()
    scanned: int = 0  # Regular files seen by the walk
    matched: int = 0  # Files passing the name pattern (and date filter)

    @property
    def copied(self) -> int:
        return sum(1 for r in self.results if r.status == CopyStatus.COPIED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == CopyStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == CopyStatus.FAILED)

    @property
    def status(self) -> ArchiveStatus:
        if self.failed == 0:
            return ArchiveStatus.COMPLETED
        if self.copied == 0 and self.skipped == 0:
            return ArchiveStatus.FAILED
        return ArchiveStatus.PARTIALLY_COMPLETED


# =============================================================================
# External job DTO
# =============================================================================


@dataclass(frozen=True)
class ExitOutcome:
    """What the external generation job did.

    ``success`` is true only for a zero exit code.  Output is captured,
    never streamed.
    """

    success: bool
    return_code: int | None
    stdout: bytes = b""
    stderr: bytes = b""
    duration_ms: int = 0
    timed_out: bool = False


# =============================================================================
# Run context
# =============================================================================


@dataclass
class WorkflowRun:
    """Single execution context for one invocation."""

    run_date: str
    started_at: datetime
    source_root: Path
    destination_root: Path
    jar_file: Path
    run_id: UUID = field(default_factory=uuid4)
    state: WorkflowState = WorkflowState.START
    status: RunStatus = RunStatus.RUNNING
    job_outcome: ExitOutcome | None = None
    stages: list[ArchiveResult] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None
    completed_at: datetime | None = None

    @property
    def files_copied(self) -> int:
        return sum(stage.copied for stage in self.stages)

    @property
    def files_failed(self) -> int:
        return sum(stage.failed for stage in self.stages)
