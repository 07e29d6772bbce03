"""Workflow services: database gate, external job runner, archival engine."""

from archive_batch.services.archival import MAX_WALK_DEPTH, ArchivalEngine
from archive_batch.services.database_gate import DatabaseGate
from archive_batch.services.job_runner import JobRunner

__all__ = [
    "MAX_WALK_DEPTH",
    "ArchivalEngine",
    "DatabaseGate",
    "JobRunner",
]
