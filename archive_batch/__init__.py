"""
archive_batch -- the scheduled gate-generate-archive workflow.

Provides the three services (DatabaseGate, JobRunner, ArchivalEngine),
the WorkflowOrchestrator that sequences them, and the command-line entry
point.  One invocation performs one run and exits; nothing is persisted
between runs except what lands on the filesystem and in the database.

Architecture:
    archive_batch/ is a top-level package.  Nothing in archive_kernel/ or
    archive_config/ imports from archive_batch.
"""
