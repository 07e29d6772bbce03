"""
Pytest fixtures for the report archiver test suite.

Provides:
- Deterministic clock pinned to 2024-01-01 12:00 UTC
- Temporary source/destination trees and a file writer with mtime control
- In-memory SQLite engine (StaticPool, so every connection sees one database)
- A ready-made WorkflowConfig pointing at the temporary trees

No SQL Server and no Java runtime are required.
"""

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from archive_config.schema import (
    ArchiveConfig,
    CategoryDef,
    DatabaseConfig,
    JobConfig,
    PathsConfig,
    WorkflowConfig,
)
from archive_kernel.domain.clock import DeterministicClock
from archive_kernel.logging_config import LogContext, reset_logging

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


def write_file(
    path: Path,
    content: str = "payload",
    modified_at: datetime | None = None,
) -> Path:
    """Create ``path`` (and parents) with ``content``; optionally set its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if modified_at is not None:
        ts = modified_at.timestamp()
        os.utime(path, (ts, ts))
    return path


@pytest.fixture
def make_file():
    return write_file


@pytest.fixture
def today() -> datetime:
    return FIXED_NOW


@pytest.fixture
def yesterday() -> datetime:
    return FIXED_NOW - timedelta(days=1)


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    root = tmp_path / "source"
    root.mkdir()
    return root


@pytest.fixture
def destination_root(tmp_path: Path) -> Path:
    return tmp_path / "destination"


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE gate_rows (id INTEGER PRIMARY KEY)"))
    yield engine
    engine.dispose()


@pytest.fixture
def workflow_config(tmp_path: Path) -> WorkflowConfig:
    return WorkflowConfig(
        paths=PathsConfig(
            source=tmp_path / "source",
            destination=tmp_path / "destination",
            jar_file=tmp_path / "report.jar",
            procedure_name="refresh_gate_rows",
        ),
        database=DatabaseConfig(url="sqlite://", gate_table="gate_rows"),
        job=JobConfig(),
        archive=ArchiveConfig(
            digit_count=10,
            categories=(
                CategoryDef(label="Email", source=tmp_path / "email_out"),
                CategoryDef(label="SMS", source=tmp_path / "sms_out"),
            ),
        ),
    )
