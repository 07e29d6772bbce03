"""
WorkflowConfig schema.

The typed form of the YAML configuration file.  The loader parses the raw
mapping into these frozen dataclasses; nothing downstream reads YAML or
environment variables directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from archive_kernel.domain.pattern import DEFAULT_DIGIT_COUNT
from archive_kernel.domain.types import OverwritePolicy

DEFAULT_CONFIG_PATH = "config.yaml"

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathsConfig:
    """Filesystem locations and the name of the stored routine."""

    source: Path
    destination: Path
    jar_file: Path
    procedure_name: str
    # The original job writes into <source>/<dd-mm-yyyy>/
    source_dated_subfolder: bool = True


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection URL and the table that gates the run."""

    url: str
    gate_table: str
    echo: bool = False


@dataclass(frozen=True)
class JobConfig:
    """How the external generation job is launched."""

    launcher: str = "java"
    launch_flag: str = "-jar"
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class CategoryDef:
    """A side-channel output folder archived under a fixed label."""

    label: str  # e.g. "Email", "SMS"
    source: Path
    destination: Path | None = None  # Falls back to paths.destination


@dataclass(frozen=True)
class ArchiveConfig:
    """Archival engine settings."""

    digit_count: int = DEFAULT_DIGIT_COUNT
    on_existing: OverwritePolicy = OverwritePolicy.OVERWRITE
    categories: tuple[CategoryDef, ...] = ()


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: Path | None = None

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.level)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowConfig:
    """Complete configuration for one workflow run."""

    paths: PathsConfig
    database: DatabaseConfig
    job: JobConfig = field(default_factory=JobConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source_file: Path | None = None

    def category_destination(self, category: CategoryDef) -> Path:
        return category.destination or self.paths.destination
