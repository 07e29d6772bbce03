"""
Configuration Loader (``archive_config.loader``).

Responsibility
--------------
Loads the YAML configuration file, overlays ``APP_``-prefixed environment
variables, and parses the result into the frozen dataclasses of
``archive_config.schema``.

Environment overrides
---------------------
``APP_<SECTION>__<KEY>`` sets ``<section>.<key>``; the double underscore
separates nesting levels and names are lower-cased.  For example
``APP_DATABASE__URL`` overrides ``database.url``.  Environment values win
over file values.  List values (``archive.categories``) can only come from
the file.

Failure modes
-------------
* Missing YAML file  -> ``ConfigFileNotFoundError``.
* Malformed YAML or non-mapping document  -> ``InvalidConfigValueError``.
* Missing required key  -> ``MissingConfigKeyError`` naming the dotted key.
* Wrong type or unsupported value  -> ``InvalidConfigValueError``.  This
  includes a ``database.url`` SQLAlchemy cannot parse and a procedure or
  gate table name that is not a plain SQL identifier.

All of these are ``ConfigurationError`` and are raised before any side
effect of the workflow takes place.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from archive_config.schema import (
    ArchiveConfig,
    CategoryDef,
    DatabaseConfig,
    JobConfig,
    LoggingConfig,
    PathsConfig,
    WorkflowConfig,
)
from archive_kernel.db.identifiers import validate_identifier
from archive_kernel.domain.types import OverwritePolicy
from archive_kernel.exceptions import (
    ConfigFileNotFoundError,
    InvalidConfigValueError,
    InvalidIdentifierError,
    MissingConfigKeyError,
)
from archive_kernel.logging_config import get_logger

logger = get_logger("config.loader")

ENV_PREFIX = "APP"
ENV_SEPARATOR = "__"

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigFileNotFoundError: if the file does not exist.
        InvalidConfigValueError: if the file is not valid YAML or its top
            level is not a mapping.
    """
    if not path.is_file():
        raise ConfigFileNotFoundError(str(path))
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise InvalidConfigValueError(str(path), "<document>", f"malformed YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigValueError(
            str(path), type(data).__name__, "top level must be a mapping",
        )
    return data


def apply_env_overrides(
    data: dict[str, Any],
    environ: Mapping[str, str] | None = None,
    prefix: str = ENV_PREFIX,
) -> dict[str, Any]:
    """Return a copy of ``data`` with ``APP_SECTION__KEY`` variables applied."""
    env = os.environ if environ is None else environ
    merged: dict[str, Any] = {
        k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items()
    }
    marker = f"{prefix}_"
    for name, value in env.items():
        if not name.startswith(marker):
            continue
        parts = [p.lower() for p in name[len(marker):].split(ENV_SEPARATOR) if p]
        if not parts:
            continue
        node = merged
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
        logger.debug("config_env_override", extra={"env_var": name})
    return merged


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def _section(data: Mapping[str, Any], name: str, required: bool) -> Mapping[str, Any]:
    value = data.get(name)
    if value is None:
        if required:
            raise MissingConfigKeyError(name)
        return {}
    if not isinstance(value, Mapping):
        raise InvalidConfigValueError(name, value, "expected a mapping")
    return value


def _require_str(section: Mapping[str, Any], key: str) -> str:
    value = section.get(key.rsplit(".", 1)[-1])
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingConfigKeyError(key)
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise InvalidConfigValueError(key, value, "expected a string")
    return str(value).strip()


def _optional_str(section: Mapping[str, Any], key: str, default: str | None) -> str | None:
    value = section.get(key.rsplit(".", 1)[-1])
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise InvalidConfigValueError(key, value, "expected a string")
    return str(value).strip()


def _as_bool(section: Mapping[str, Any], key: str, default: bool) -> bool:
    value = section.get(key.rsplit(".", 1)[-1])
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise InvalidConfigValueError(key, value, "expected a boolean")


def _as_positive_int(section: Mapping[str, Any], key: str, default: int) -> int:
    value = section.get(key.rsplit(".", 1)[-1])
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidConfigValueError(key, value, "expected a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigValueError(key, value, "expected a positive integer") from exc
    if isinstance(value, float) and value != number:
        raise InvalidConfigValueError(key, value, "expected a positive integer")
    if number <= 0:
        raise InvalidConfigValueError(key, value, "expected a positive integer")
    return number


def _as_timeout(section: Mapping[str, Any], key: str) -> float | None:
    value = section.get(key.rsplit(".", 1)[-1])
    if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none", "null")):
        return None
    if isinstance(value, bool):
        raise InvalidConfigValueError(key, value, "expected a positive number of seconds")
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigValueError(key, value, "expected a positive number of seconds") from exc
    if seconds <= 0:
        raise InvalidConfigValueError(key, value, "expected a positive number of seconds")
    return seconds


def _require_identifier(section: Mapping[str, Any], key: str) -> str:
    value = _require_str(section, key)
    try:
        return validate_identifier(value)
    except InvalidIdentifierError as exc:
        raise InvalidConfigValueError(
            key, value, "expected an SQL identifier: name or schema.name",
        ) from exc


def _require_database_url(section: Mapping[str, Any], key: str) -> str:
    value = _require_str(section, key)
    try:
        make_url(value)
    except ArgumentError as exc:
        raise InvalidConfigValueError(key, value, "not a SQLAlchemy database URL") from exc
    return value


def _resolve_path(value: str, base_dir: Path | None) -> Path:
    path = Path(os.path.expanduser(value))
    if base_dir is not None and not path.is_absolute():
        return base_dir / path
    return path


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def parse_paths(data: Mapping[str, Any], base_dir: Path | None = None) -> PathsConfig:
    """Parse the ``paths`` section.  All four locations are required."""
    section = _section(data, "paths", required=True)
    return PathsConfig(
        source=_resolve_path(_require_str(section, "paths.source"), base_dir),
        destination=_resolve_path(_require_str(section, "paths.destination"), base_dir),
        jar_file=_resolve_path(_require_str(section, "paths.jar_file"), base_dir),
        procedure_name=_require_identifier(section, "paths.procedure_name"),
        source_dated_subfolder=_as_bool(section, "paths.source_dated_subfolder", True),
    )


def parse_database(data: Mapping[str, Any]) -> DatabaseConfig:
    section = _section(data, "database", required=True)
    return DatabaseConfig(
        url=_require_database_url(section, "database.url"),
        gate_table=_require_identifier(section, "database.gate_table"),
        echo=_as_bool(section, "database.echo", False),
    )


def parse_job(data: Mapping[str, Any]) -> JobConfig:
    section = _section(data, "job", required=False)
    defaults = JobConfig()
    return JobConfig(
        launcher=_optional_str(section, "job.launcher", defaults.launcher),
        launch_flag=_optional_str(section, "job.launch_flag", defaults.launch_flag),
        timeout_seconds=_as_timeout(section, "job.timeout_seconds"),
    )


def parse_category(
    item: Any, index: int, base_dir: Path | None = None,
) -> CategoryDef:
    key = f"archive.categories[{index}]"
    if not isinstance(item, Mapping):
        raise InvalidConfigValueError(key, item, "expected a mapping")
    label = _require_str(item, f"{key}.label")
    if label in (".", "..") or "/" in label or "\\" in label:
        raise InvalidConfigValueError(f"{key}.label", label, "must be a plain folder name")
    destination = _optional_str(item, f"{key}.destination", None)
    return CategoryDef(
        label=label,
        source=_resolve_path(_require_str(item, f"{key}.source"), base_dir),
        destination=_resolve_path(destination, base_dir) if destination else None,
    )


def parse_archive(data: Mapping[str, Any], base_dir: Path | None = None) -> ArchiveConfig:
    """Parse the ``archive`` section (optional; every key has a default)."""
    section = _section(data, "archive", required=False)
    defaults = ArchiveConfig()

    raw_policy = section.get("on_existing", defaults.on_existing.value)
    try:
        policy = OverwritePolicy(str(raw_policy).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(p.value for p in OverwritePolicy)
        raise InvalidConfigValueError(
            "archive.on_existing", raw_policy, f"expected one of: {allowed}",
        ) from exc

    raw_categories = section.get("categories") or []
    if not isinstance(raw_categories, list):
        raise InvalidConfigValueError("archive.categories", raw_categories, "expected a list")
    categories = tuple(
        parse_category(item, i, base_dir) for i, item in enumerate(raw_categories)
    )
    seen: set[str] = set()
    for category in categories:
        if category.label in seen:
            raise InvalidConfigValueError(
                "archive.categories", category.label, "duplicate category label",
            )
        seen.add(category.label)

    return ArchiveConfig(
        digit_count=_as_positive_int(section, "archive.digit_count", defaults.digit_count),
        on_existing=policy,
        categories=categories,
    )


def parse_logging(data: Mapping[str, Any], base_dir: Path | None = None) -> LoggingConfig:
    section = _section(data, "logging", required=False)
    level = (_optional_str(section, "logging.level", "INFO") or "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        raise InvalidConfigValueError("logging.level", level, "unknown log level")
    log_file = _optional_str(section, "logging.file", None)
    return LoggingConfig(
        level=level,
        file=_resolve_path(log_file, base_dir) if log_file else None,
    )


def parse_config(
    data: Mapping[str, Any],
    base_dir: Path | None = None,
    source_file: Path | None = None,
) -> WorkflowConfig:
    """
    Parse a raw mapping into a ``WorkflowConfig``.

    Relative paths are resolved against ``base_dir`` when given (the
    directory holding the config file), otherwise left relative to the
    working directory.
    """
    return WorkflowConfig(
        paths=parse_paths(data, base_dir),
        database=parse_database(data),
        job=parse_job(data),
        archive=parse_archive(data, base_dir),
        logging=parse_logging(data, base_dir),
        source_file=source_file,
    )


def load_config(
    path: str | Path,
    environ: Mapping[str, str] | None = None,
) -> WorkflowConfig:
    """Load, overlay environment overrides, and parse a configuration file."""
    config_path = Path(path)
    raw = load_yaml_file(config_path)
    merged = apply_env_overrides(raw, environ)
    config = parse_config(
        merged,
        base_dir=config_path.resolve().parent,
        source_file=config_path,
    )
    logger.info(
        "config_loaded",
        extra={
            "config_path": str(config_path),
            "categories": [c.label for c in config.archive.categories],
            "digit_count": config.archive.digit_count,
        },
    )
    return config
