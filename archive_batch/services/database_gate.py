"""
DatabaseGate -- run a stored routine, then decide whether the run proceeds.

Contract:
    ``run_procedure(name)`` executes a stored routine and commits.
    ``has_any_row(table)`` is a bounded existence probe (at most one row).
    The orchestrator calls them in that order.

Invariants enforced:
    - Identifiers are validated before they reach SQL text.
    - The two calls are sequenced, not transactional with each other.

Failure modes:
    - ``InvalidIdentifierError`` for a malformed procedure/table name.
    - ``ProcedureExecutionError`` / ``ExistenceProbeError`` wrapping any
      ``SQLAlchemyError``.  Both are fatal for the run; there is no retry.
"""

from __future__ import annotations

from sqlalchemy import literal_column, select, table, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from archive_kernel.db.engine import connection_scope
from archive_kernel.db.identifiers import validate_identifier
from archive_kernel.exceptions import (
    ExistenceProbeError,
    ProcedureExecutionError,
)
from archive_kernel.logging_config import get_logger

logger = get_logger("batch.database_gate")

# Dialects whose stored routines are invoked with EXEC rather than CALL.
_EXEC_DIALECTS = frozenset({"mssql", "sybase"})




def procedure_call_sql(dialect_name: str, procedure_name: str) -> str:
    """SQL text invoking ``procedure_name`` for the given dialect."""
    name = validate_identifier(procedure_name)
    if dialect_name in _EXEC_DIALECTS:
        return f"EXEC {name}"
    return f"CALL {name}()"


def existence_probe(table_name: str):
    """``SELECT 1 FROM <table>`` limited to one row (TOP 1 / LIMIT 1 per dialect)."""
    name = validate_identifier(table_name)
    schema, _, bare = name.rpartition(".")
    return (
        select(literal_column("1"))
        .select_from(table(bare, schema=schema or None))
        .limit(1)
    )


class DatabaseGate:
    """Boolean proceed signal derived from database state.

    Non-goals:
        - Does NOT own the engine lifecycle -- caller disposes.
        - Does NOT retry.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def run_procedure(self, name: str) -> None:
        """Execute the stored routine ``name``; result rows are not consumed.

        Raises:
            InvalidIdentifierError: If ``name`` is not an identifier.
            ProcedureExecutionError: On any database error.
        """
        statement = procedure_call_sql(self._engine.dialect.name, name)
        try:
            with connection_scope(self._engine) as conn:
                conn.execute(text(statement))
        except SQLAlchemyError as exc:
            logger.error(
                "procedure_failed",
                extra={"procedure": name, "error": str(exc)},
            )
            raise ProcedureExecutionError(name, str(exc)) from exc

        logger.info("procedure_executed", extra={"procedure": name})

    def has_any_row(self, table_name: str) -> bool:
        """True iff ``table_name`` holds at least one row.

        Raises:
            InvalidIdentifierError: If ``table_name`` is not an identifier.
            ExistenceProbeError: On any database error.
        """
        probe = existence_probe(table_name)
        try:
            with self._engine.connect() as conn:
                row = conn.execute(probe).first()
        except SQLAlchemyError as exc:
            logger.error(
                "existence_probe_failed",
                extra={"table": table_name, "error": str(exc)},
            )
            raise ExistenceProbeError(table_name, str(exc)) from exc

        found = row is not None
        logger.info(
            "gate_table_checked",
            extra={"table": table_name, "has_data": found},
        )
        return found
