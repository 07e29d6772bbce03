"""
Typed Exception Hierarchy for the Report Archiver.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ArchiverError:

    ArchiverError (base)
    |
    +-- ConfigurationError
    |   +-- ConfigFileNotFoundError
    |   +-- MissingConfigKeyError
    |   +-- InvalidConfigValueError
    |
    +-- DatabaseGateError
    |   +-- DatabaseConnectionError
    |   +-- InvalidIdentifierError
    |   +-- ProcedureExecutionError
    |   +-- ExistenceProbeError
    |
    +-- JobRunnerError
    |   +-- JobLaunchError
    |
    +-- ArchivalError
    |   +-- ArchiveTargetError
    |
    +-- WorkflowError
        +-- InvalidStateTransitionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIG_FILE_NOT_FOUND       | Config path does not exist
                | MISSING_CONFIG_KEY          | Required key absent (e.g. paths.source)
                | INVALID_CONFIG_VALUE        | Wrong type, bad enum value, bad YAML
----------------|-----------------------------|-----------------------------------------
Database        | DATABASE_CONNECTION_FAILED  | Engine could not connect
                | INVALID_SQL_IDENTIFIER      | Procedure/table name is not an identifier
                | PROCEDURE_EXECUTION_FAILED  | Stored routine raised
                | EXISTENCE_PROBE_FAILED      | Row probe query raised
----------------|-----------------------------|-----------------------------------------
Job             | JOB_LAUNCH_FAILED           | External process could not be started
----------------|-----------------------------|-----------------------------------------
Archival        | ARCHIVE_TARGET_FAILED       | Destination folder could not be created
----------------|-----------------------------|-----------------------------------------
Workflow        | INVALID_STATE_TRANSITION    | Orchestrator tried to move backwards

A non-zero exit from the external job is NOT an exception; it is reported
through ``ExitOutcome.success``.  A single file that fails to copy is NOT an
exception either; it is recorded as a FAILED ``FileCopyResult``.
"""


class ArchiverError(Exception):
    """
    Base exception for all report archiver errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "ARCHIVER_ERROR"


# Configuration exceptions


class ConfigurationError(ArchiverError):
    """Base exception for configuration errors. Always fatal."""

    code: str = "CONFIGURATION_ERROR"


class ConfigFileNotFoundError(ConfigurationError):
    """Configuration file does not exist."""

    code: str = "CONFIG_FILE_NOT_FOUND"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class MissingConfigKeyError(ConfigurationError):
    """A required configuration key is absent or empty."""

    code: str = "MISSING_CONFIG_KEY"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Missing required configuration key: {key}")


class InvalidConfigValueError(ConfigurationError):
    """A configuration value has the wrong type or an unsupported value."""

    code: str = "INVALID_CONFIG_VALUE"

    def __init__(self, key: str, value: object, reason: str):
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for {key}: {value!r} ({reason})")


# Database exceptions


class DatabaseGateError(ArchiverError):
    """Base exception for database gate errors. Always fatal for the run."""

    code: str = "DATABASE_GATE_ERROR"


class DatabaseConnectionError(DatabaseGateError):
    """The database could not be reached."""

    code: str = "DATABASE_CONNECTION_FAILED"

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot connect to database {url}: {reason}")


class InvalidIdentifierError(DatabaseGateError):
    """
    A procedure or table name is not a plain SQL identifier.

    Names are interpolated into statements, so anything other than
    ``name`` or ``schema.name`` is refused before reaching the database.
    """

    code: str = "INVALID_SQL_IDENTIFIER"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Not a valid SQL identifier: {identifier!r}")


class ProcedureExecutionError(DatabaseGateError):
    """The stored routine failed (syntax, permission, runtime error)."""

    code: str = "PROCEDURE_EXECUTION_FAILED"

    def __init__(self, procedure_name: str, reason: str):
        self.procedure_name = procedure_name
        self.reason = reason
        super().__init__(f"Stored procedure {procedure_name} failed: {reason}")


class ExistenceProbeError(DatabaseGateError):
    """The row-existence probe against the gate table failed."""

    code: str = "EXISTENCE_PROBE_FAILED"

    def __init__(self, table_name: str, reason: str):
        self.table_name = table_name
        self.reason = reason
        super().__init__(f"Existence probe on {table_name} failed: {reason}")


# Job runner exceptions


class JobRunnerError(ArchiverError):
    """Base exception for external job errors."""

    code: str = "JOB_RUNNER_ERROR"


class JobLaunchError(JobRunnerError):
    """
    The external process could not be started at all.

    Distinct from a job that starts and exits non-zero, which is an
    ordinary (non-exceptional) outcome.
    """

    code: str = "JOB_LAUNCH_FAILED"

    def __init__(self, command: list[str], reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to launch {' '.join(command)}: {reason}")


# Archival exceptions


class ArchivalError(ArchiverError):
    """Base exception for archival errors."""

    code: str = "ARCHIVAL_ERROR"


class ArchiveTargetError(ArchivalError):
    """The destination folder for an archive could not be created."""

    code: str = "ARCHIVE_TARGET_FAILED"

    def __init__(self, target_path: str, reason: str):
        self.target_path = target_path
        self.reason = reason
        super().__init__(f"Cannot prepare archive target {target_path}: {reason}")


# Workflow exceptions


class WorkflowError(ArchiverError):
    """Base exception for orchestration errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidStateTransitionError(WorkflowError):
    """The orchestrator attempted a non-forward state transition."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid workflow transition: {from_state} -> {to_state}"
        )
