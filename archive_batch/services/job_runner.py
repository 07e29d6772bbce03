"""
JobRunner -- invoke the external generation job and report its exit status.

Contract:
    ``run(executable_path)`` launches ``[launcher, launch_flag, path]``
    (by default ``java -jar <path>``), blocks until it exits, and returns an
    ``ExitOutcome``.  Output is captured, stdin is closed.

Invariants enforced:
    - A non-zero exit is an outcome, not an exception.
    - With ``timeout_seconds`` set, a hung job is killed and reported as
      ``timed_out``; without it the call blocks until the job exits.

Failure modes:
    - ``JobLaunchError`` if the process cannot be started at all.
"""

from __future__ import annotations

import subprocess
import time
from pathlib import Path

from archive_kernel.domain.clock import Clock, SystemClock
from archive_kernel.domain.types import ExitOutcome
from archive_kernel.exceptions import JobLaunchError
from archive_kernel.logging_config import get_logger

logger = get_logger("batch.job_runner")

# Longest stderr excerpt written to the log.
_STDERR_LOG_LIMIT = 2000


class JobRunner:
    """Runs one external executable synchronously."""

    def __init__(
        self,
        launcher: str = "java",
        launch_flag: str = "-jar",
        timeout_seconds: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._launcher = launcher
        self._launch_flag = launch_flag
        self._timeout = timeout_seconds
        self._clock = clock or SystemClock()

    def build_command(self, executable_path: Path | str) -> list[str]:
        """The single fixed argument vector used for every invocation."""
        return [self._launcher, self._launch_flag, str(executable_path)]

    def run(self, executable_path: Path | str) -> ExitOutcome:
        """Run the job to completion.

        Raises:
            JobLaunchError: If the launcher cannot be executed.
        """
        command = self.build_command(executable_path)
        started_at = self._clock.now()
        start = time.monotonic()
        logger.info(
            "job_started",
            extra={"command": command, "timeout_seconds": self._timeout},
        )

        try:
            completed = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            duration_ms = int((time.monotonic() - start) * 1000)
            logger.error(
                "job_timed_out",
                extra={
                    "command": command,
                    "timeout_seconds": self._timeout,
                    "duration_ms": duration_ms,
                },
            )
            return ExitOutcome(
                success=False,
                return_code=None,
                stdout=exc.stdout or b"",
                stderr=exc.stderr or b"",
                duration_ms=duration_ms,
                timed_out=True,
            )
        except OSError as exc:
            logger.error(
                "job_launch_failed",
                extra={"command": command, "error": str(exc)},
            )
            raise JobLaunchError(command, str(exc)) from exc

        duration_ms = int((time.monotonic() - start) * 1000)
        outcome = ExitOutcome(
            success=completed.returncode == 0,
            return_code=completed.returncode,
            stdout=completed.stdout or b"",
            stderr=completed.stderr or b"",
            duration_ms=duration_ms,
        )

        if outcome.success:
            logger.info(
                "job_succeeded",
                extra={"duration_ms": duration_ms, "started_at": started_at},
            )
        else:
            logger.warning(
                "job_failed",
                extra={
                    "return_code": completed.returncode,
                    "duration_ms": duration_ms,
                    "stderr": outcome.stderr[-_STDERR_LOG_LIMIT:].decode(
                        "utf-8", errors="replace",
                    ),
                },
            )
        return outcome
