"""
WorkflowOrchestrator -- gate, generate, archive.

Contract:
    ``run()`` drives one invocation through
    START -> PROCEDURE_RAN -> GATED -> JOB_INVOKED -> ARCHIVING -> DONE
    and returns the ``WorkflowRun`` describing what happened.
    ``from_config()`` is the single place where the real services are
    composed.

Invariants enforced:
    - Transitions only move forward; DONE is terminal.
    - The clock is read once per run; the run date and the category
      "modified today" filter both derive from that instant.
    - No rows in the gate table: the job is never invoked and no archive
      folder is created.
    - Job exits non-zero: archival is skipped.
    - Categories are archived sequentially, in configured order, after the
      dated archive.
    - Completed stages are never rolled back; every stage is copy-only and
      safe to re-run.

Failure modes:
    ``run()`` itself does not raise for stage failures.  Database errors,
    launch errors and archive-target errors end the run in FAILED with the
    error recorded; remaining stages are bypassed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from sqlalchemy.engine import Engine

from archive_config.schema import WorkflowConfig
from archive_kernel.db.engine import init_engine_from_url, verify_connection
from archive_kernel.domain.clock import Clock, SystemClock, format_run_date
from archive_kernel.domain.pattern import PatternMatcher
from archive_kernel.domain.types import (
    ArchiveResult,
    ExitOutcome,
    RunStatus,
    WorkflowRun,
    WorkflowState,
)
from archive_kernel.exceptions import (
    ArchivalError,
    ArchiverError,
    DatabaseGateError,
    InvalidStateTransitionError,
    JobRunnerError,
)
from archive_kernel.logging_config import LogContext, get_logger

from archive_batch.services.archival import ArchivalEngine
from archive_batch.services.database_gate import DatabaseGate
from archive_batch.services.job_runner import JobRunner

logger = get_logger("batch.orchestrator")


class Gate(Protocol):
    def run_procedure(self, name: str) -> None: ...

    def has_any_row(self, table_name: str) -> bool: ...


class Runner(Protocol):
    def run(self, executable_path: Path | str) -> ExitOutcome: ...


class WorkflowOrchestrator:
    """Sequences DatabaseGate -> JobRunner -> ArchivalEngine.

    Non-goals:
        - Does NOT retry anything -- the external scheduler re-invokes.
        - Does NOT dispose the database engine -- caller owns it.
    """

    def __init__(
        self,
        config: WorkflowConfig,
        gate: Gate,
        runner: Runner,
        archival: ArchivalEngine,
        clock: Clock | None = None,
    ) -> None:
        self._config = config
        self._gate = gate
        self._runner = runner
        self._archival = archival
        self._clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: WorkflowConfig,
        clock: Clock | None = None,
        engine: Engine | None = None,
    ) -> WorkflowOrchestrator:
        """Create a fully wired orchestrator.

        Args:
            config: Parsed workflow configuration.
            clock: Optional clock for deterministic testing.
            engine: Optional pre-built engine; otherwise one is created
                from ``database.url`` and its connectivity verified.

        Raises:
            DatabaseConnectionError: If the database cannot be reached.
        """
        effective_clock = clock or SystemClock()
        if engine is None:
            engine = init_engine_from_url(
                config.database.url, echo=config.database.echo,
            )
            verify_connection(engine)

        return cls(
            config=config,
            gate=DatabaseGate(engine),
            runner=JobRunner(
                launcher=config.job.launcher,
                launch_flag=config.job.launch_flag,
                timeout_seconds=config.job.timeout_seconds,
                clock=effective_clock,
            ),
            archival=ArchivalEngine(
                matcher=PatternMatcher(config.archive.digit_count),
                clock=effective_clock,
                on_existing=config.archive.on_existing,
            ),
            clock=effective_clock,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def new_run(self) -> WorkflowRun:
        """Create the run context from a single clock read."""
        started_at = self._clock.now()
        run_date = format_run_date(started_at)
        paths = self._config.paths
        source_root = (
            paths.source / run_date if paths.source_dated_subfolder else paths.source
        )
        return WorkflowRun(
            run_date=run_date,
            started_at=started_at,
            source_root=source_root,
            destination_root=paths.destination,
            jar_file=paths.jar_file,
        )

    def run(self) -> WorkflowRun:
        """Execute one full workflow invocation."""
        run = self.new_run()
        with LogContext.bind(run_id=str(run.run_id), run_date=run.run_date):
            logger.info(
                "workflow_started",
                extra={
                    "source_root": str(run.source_root),
                    "destination_root": str(run.destination_root),
                },
            )
            try:
                self._execute(run)
            except (DatabaseGateError, JobRunnerError, ArchivalError) as exc:
                self._fail(run, exc)
            self._finish(run)
        return run

    def _execute(self, run: WorkflowRun) -> None:
        cfg = self._config

        with LogContext.bind(stage="gate"):
            self._gate.run_procedure(cfg.paths.procedure_name)
            self._advance(run, WorkflowState.PROCEDURE_RAN)

            has_data = self._gate.has_any_row(cfg.database.gate_table)
            self._advance(run, WorkflowState.GATED)

        if not has_data:
            logger.info(
                "gate_no_data",
                extra={"table": cfg.database.gate_table},
            )
            run.status = RunStatus.SKIPPED_NO_DATA
            return

        with LogContext.bind(stage="job"):
            outcome = self._runner.run(run.jar_file)
            run.job_outcome = outcome
            self._advance(run, WorkflowState.JOB_INVOKED)

        if not outcome.success:
            logger.warning(
                "archival_skipped_job_failed",
                extra={
                    "return_code": outcome.return_code,
                    "timed_out": outcome.timed_out,
                },
            )
            run.status = RunStatus.SKIPPED_JOB_FAILED
            return

        self._advance(run, WorkflowState.ARCHIVING)

        with LogContext.bind(stage="archive_dated"):
            self._record(
                run,
                self._archival.archive_dated(
                    run.source_root, run.destination_root, run.run_date,
                ),
            )

        for category in cfg.archive.categories:
            with LogContext.bind(stage="archive_category", category=category.label):
                self._record(
                    run,
                    self._archival.archive_category(
                        category.source,
                        cfg.category_destination(category),
                        category.label,
                        as_of=run.started_at,
                    ),
                )

        run.status = (
            RunStatus.PARTIALLY_SUCCEEDED if run.files_failed else RunStatus.SUCCEEDED
        )

    # -------------------------------------------------------------------------
    # State helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _advance(run: WorkflowRun, new_state: WorkflowState) -> None:
        if new_state.rank <= run.state.rank:
            raise InvalidStateTransitionError(run.state.value, new_state.value)
        logger.debug(
            "workflow_transition",
            extra={"from_state": run.state.value, "to_state": new_state.value},
        )
        run.state = new_state

    @staticmethod
    def _record(run: WorkflowRun, result: ArchiveResult) -> None:
        run.stages.append(result)

    def _fail(self, run: WorkflowRun, exc: ArchiverError) -> None:
        logger.error(
            "workflow_stage_failed",
            extra={"state": run.state.value},
            exc_info=exc,
        )
        run.status = RunStatus.FAILED
        run.error = str(exc)
        run.error_code = exc.code

    def _finish(self, run: WorkflowRun) -> None:
        if run.state != WorkflowState.DONE:
            self._advance(run, WorkflowState.DONE)
        run.completed_at = self._clock.now()

        extra = {
            "status": run.status.value,
            "files_copied": run.files_copied,
            "files_failed": run.files_failed,
            "stages": [
                {
                    "target": str(stage.target.path),
                    "status": stage.status.value,
                    "copied": stage.copied,
                    "failed": stage.failed,
                }
                for stage in run.stages
            ],
        }
        if run.status in (RunStatus.FAILED, RunStatus.PARTIALLY_SUCCEEDED):
            logger.error("workflow_completed", extra=extra)
        elif run.status == RunStatus.SKIPPED_JOB_FAILED:
            logger.warning("workflow_completed", extra=extra)
        else:
            logger.info("workflow_completed", extra=extra)
