"""
Pure domain layer.

Contains DTOs and predicates with NO dependencies on the database or the
filesystem (``ArchiveTarget.ensure`` aside) and no direct clock reads.
"""

from archive_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SystemClock,
    format_run_date,
)
from archive_kernel.domain.pattern import DEFAULT_DIGIT_COUNT, PatternMatcher
from archive_kernel.domain.types import (
    ArchiveResult,
    ArchiveStatus,
    ArchiveTarget,
    CopyStatus,
    ExitOutcome,
    FileCandidate,
    FileCopyResult,
    OverwritePolicy,
    RunStatus,
    WorkflowRun,
    WorkflowState,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "format_run_date",
    "DEFAULT_DIGIT_COUNT",
    "PatternMatcher",
    "ArchiveResult",
    "ArchiveStatus",
    "ArchiveTarget",
    "CopyStatus",
    "ExitOutcome",
    "FileCandidate",
    "FileCopyResult",
    "OverwritePolicy",
    "RunStatus",
    "WorkflowRun",
    "WorkflowState",
]
