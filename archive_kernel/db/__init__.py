"""Database layer - engine, connection scope and identifier checks."""

from archive_kernel.db.engine import (
    connection_scope,
    init_engine_from_url,
    reset_engine,
    verify_connection,
)
from archive_kernel.db.identifiers import validate_identifier

__all__ = [
    "connection_scope",
    "init_engine_from_url",
    "reset_engine",
    "validate_identifier",
    "verify_connection",
]
