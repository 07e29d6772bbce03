"""
Command-line entry point.

    report-archiver [CONFIG]
    python -m archive_batch [CONFIG]

CONFIG defaults to ``config.yaml`` in the working directory.

Exit codes:
    0  run reached DONE: archived, no data to process, or the job failed
    1  fatal stage error (database, launch, archive target) or some files
       could not be copied
    2  configuration error; nothing was done
"""

from __future__ import annotations

import argparse
import sys

from archive_config.loader import load_config
from archive_config.schema import DEFAULT_CONFIG_PATH
from archive_kernel.db.engine import reset_engine
from archive_kernel.domain.types import RunStatus, WorkflowRun
from archive_kernel.exceptions import ConfigurationError, DatabaseConnectionError
from archive_kernel.logging_config import configure_logging, get_logger

from archive_batch.orchestrator import WorkflowOrchestrator

logger = get_logger("batch.cli")

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_CONFIG_ERROR = 2

_EXIT_CODES = {
    RunStatus.SUCCEEDED: EXIT_OK,
    RunStatus.SKIPPED_NO_DATA: EXIT_OK,
    RunStatus.SKIPPED_JOB_FAILED: EXIT_OK,
    RunStatus.PARTIALLY_SUCCEEDED: EXIT_RUN_FAILED,
    RunStatus.FAILED: EXIT_RUN_FAILED,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="report-archiver",
        description=(
            "Run the gating stored procedure, launch the report job when the "
            "gate table has rows, then archive its output by date and category."
        ),
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the YAML configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    return parser


def exit_code_for(run: WorkflowRun) -> int:
    return _EXIT_CODES.get(run.status, EXIT_RUN_FAILED)


def summarize(run: WorkflowRun) -> str:
    """One human-readable line describing the run."""
    if run.status == RunStatus.SKIPPED_NO_DATA:
        return f"[{run.run_date}] No data found, nothing to do."
    if run.status == RunStatus.SKIPPED_JOB_FAILED:
        code = run.job_outcome.return_code if run.job_outcome else None
        return f"[{run.run_date}] Job failed (exit {code}); archival skipped."
    if run.status == RunStatus.FAILED:
        return f"[{run.run_date}] Run failed: {run.error}"
    parts = ", ".join(
        f"{stage.target.label}: {stage.copied} copied"
        + (f", {stage.failed} failed" if stage.failed else "")
        for stage in run.stages
    )
    return f"[{run.run_date}] {run.status.value} ({parts})"


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(
        level=config.logging.level_number,
        log_file=config.logging.file,
    )

    try:
        orchestrator = WorkflowOrchestrator.from_config(config)
    except DatabaseConnectionError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return EXIT_RUN_FAILED

    try:
        run = orchestrator.run()
    finally:
        reset_engine()

    print(summarize(run))
    return exit_code_for(run)


if __name__ == "__main__":
    sys.exit(main())
