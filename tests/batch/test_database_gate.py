"""
Tests for archive_batch.services.database_gate.

Uses in-memory SQLite for the existence probe and error wrapping (no SQL
Server required).  Dialect-specific SQL is checked at the compiler level.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.dialects import mssql, postgresql, sqlite

from archive_kernel.db.identifiers import validate_identifier
from archive_kernel.exceptions import (
    ExistenceProbeError,
    InvalidIdentifierError,
    ProcedureExecutionError,
)
from archive_batch.services.database_gate import (
    DatabaseGate,
    existence_probe,
    procedure_call_sql,
)


# =============================================================================
# Identifier validation and statement shape
# =============================================================================


class TestValidateIdentifier:
    @pytest.mark.parametrize(
        "name",
        ["USGIC_DISCREPANCY_MASTER_TBL", "dbo.gate_rows", "_private", "t1"],
    )
    def test_accepts(self, name):
        assert validate_identifier(name) == name

    def test_strips_whitespace(self):
        assert validate_identifier("  gate_rows ") == "gate_rows"

    @pytest.mark.parametrize(
        "name",
        ["", "1table", "gate rows", "gate_rows; DROP TABLE x", "a.b.c", "x--", "[dbo].[t]"],
    )
    def test_rejects(self, name):
        with pytest.raises(InvalidIdentifierError):
            validate_identifier(name)


class TestProcedureCallSql:
    def test_mssql_uses_exec(self):
        assert procedure_call_sql("mssql", "USGIC_DiscrepancyIBPS_DBLink") == (
            "EXEC USGIC_DiscrepancyIBPS_DBLink"
        )

    def test_other_dialects_use_call(self):
        assert procedure_call_sql("postgresql", "refresh") == "CALL refresh()"
        assert procedure_call_sql("mysql", "app.refresh") == "CALL app.refresh()"

    def test_rejects_injection(self):
        with pytest.raises(InvalidIdentifierError):
            procedure_call_sql("mssql", "refresh; DROP TABLE users")


class TestExistenceProbe:
    def test_mssql_uses_top(self):
        sql = str(existence_probe("dbo.gate_rows").compile(dialect=mssql.dialect()))
        assert "TOP" in sql.upper()
        assert "dbo.gate_rows" in sql

    def test_postgresql_uses_limit(self):
        sql = str(existence_probe("gate_rows").compile(dialect=postgresql.dialect()))
        assert "LIMIT" in sql.upper()

    def test_sqlite_uses_limit(self):
        sql = str(existence_probe("gate_rows").compile(dialect=sqlite.dialect()))
        assert "LIMIT" in sql.upper()


# =============================================================================
# DatabaseGate against SQLite
# =============================================================================


class TestHasAnyRow:
    def test_empty_table(self, sqlite_engine):
        assert DatabaseGate(sqlite_engine).has_any_row("gate_rows") is False

    def test_one_row(self, sqlite_engine):
        with sqlite_engine.begin() as conn:
            conn.execute(text("INSERT INTO gate_rows (id) VALUES (1)"))
        assert DatabaseGate(sqlite_engine).has_any_row("gate_rows") is True

    def test_many_rows(self, sqlite_engine):
        with sqlite_engine.begin() as conn:
            for i in range(50):
                conn.execute(text("INSERT INTO gate_rows (id) VALUES (:id)"), {"id": i})
        assert DatabaseGate(sqlite_engine).has_any_row("gate_rows") is True

    def test_missing_table_wrapped(self, sqlite_engine):
        with pytest.raises(ExistenceProbeError) as exc_info:
            DatabaseGate(sqlite_engine).has_any_row("no_such_table")
        assert exc_info.value.table_name == "no_such_table"
        assert exc_info.value.__cause__ is not None

    def test_invalid_name_never_queried(self, sqlite_engine):
        with pytest.raises(InvalidIdentifierError):
            DatabaseGate(sqlite_engine).has_any_row("gate_rows; DELETE FROM gate_rows")


class TestRunProcedure:
    def test_database_error_wrapped(self, sqlite_engine):
        # SQLite has no stored routines; CALL is a syntax error there.
        with pytest.raises(ProcedureExecutionError) as exc_info:
            DatabaseGate(sqlite_engine).run_procedure("refresh_gate_rows")
        assert exc_info.value.procedure_name == "refresh_gate_rows"

    def test_invalid_name(self, sqlite_engine):
        with pytest.raises(InvalidIdentifierError):
            DatabaseGate(sqlite_engine).run_procedure("x'; --")

    def test_runs_inside_committed_transaction(self, sqlite_engine, monkeypatch):
        import archive_batch.services.database_gate as gate_module

        # SQLite cannot CALL; substitute a plain statement with a visible effect.
        monkeypatch.setattr(
            gate_module,
            "procedure_call_sql",
            lambda dialect, name: "INSERT INTO gate_rows (id) VALUES (7)",
        )
        DatabaseGate(sqlite_engine).run_procedure("refresh_gate_rows")
        assert DatabaseGate(sqlite_engine).has_any_row("gate_rows") is True
