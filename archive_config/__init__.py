"""
archive_config -- configuration for the report archiver.

``load_config(path)`` is the single entry point: it reads the YAML file,
applies ``APP_``-prefixed environment overrides and returns a frozen
``WorkflowConfig``.  No other component reads configuration files or
environment variables.
"""

from archive_config.loader import load_config
from archive_config.schema import (
    DEFAULT_CONFIG_PATH,
    ArchiveConfig,
    CategoryDef,
    DatabaseConfig,
    JobConfig,
    LoggingConfig,
    PathsConfig,
    WorkflowConfig,
)

__all__ = [
    "load_config",
    "DEFAULT_CONFIG_PATH",
    "ArchiveConfig",
    "CategoryDef",
    "DatabaseConfig",
    "JobConfig",
    "LoggingConfig",
    "PathsConfig",
    "WorkflowConfig",
]
