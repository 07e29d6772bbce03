"""
Module: archive_kernel.db.engine
Responsibility: SQLAlchemy engine initialization and connection scope
    utilities.  This is the single point of database connection
    configuration for the archiver.

Invariants enforced:
    - One engine per process; ``init_engine_from_url`` replaces any previous one.
    - Connections are pre-pinged so a stale pooled connection is detected
      before the gate runs.

Failure modes:
    - DatabaseConnectionError if the URL names an unknown dialect, the DBAPI
      driver is not installed, or ``verify_connection`` cannot reach the
      server.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from archive_kernel.exceptions import DatabaseConnectionError
from archive_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None


def _safe_url(database_url: str) -> str:
    try:
        return make_url(database_url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable url>"


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
    **engine_kwargs,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Any dialect SQLAlchemy supports is accepted; the gate was built against
    SQL Server (``mssql+pyodbc://...``).  Driver-level timeouts belong in
    the URL query string.

    Args:
        database_url: SQLAlchemy connection URL.
        echo: If True, log all SQL statements.
        pool_pre_ping: If True, test connections before use.
        **engine_kwargs: Passed through to ``create_engine``.

    Returns:
        SQLAlchemy Engine instance.

    Raises:
        DatabaseConnectionError: If the URL is unusable or its driver is
            not installed.  No connection is attempted here.
    """
    global _engine

    reset_engine()

    safe_url = _safe_url(database_url)
    try:
        # NoSuchModuleError (unknown dialect) is an ArgumentError.
        engine = create_engine(
            database_url,
            echo=echo,
            pool_pre_ping=pool_pre_ping,
            **engine_kwargs,
        )
    except (ArgumentError, ImportError) as exc:
        logger.error(
            "engine_init_failed",
            extra={"url": safe_url, "error": str(exc)},
        )
        raise DatabaseConnectionError(safe_url, str(exc)) from exc

    _engine = engine
    logger.info(
        "engine_initialized",
        extra={
            "dialect": engine.dialect.name,
            "url": safe_url,
            "echo": echo,
        },
    )

    return engine


def verify_connection(engine: Engine) -> None:
    """
    Open and close one connection so an unreachable database fails fast.

    Raises:
        DatabaseConnectionError: If no connection can be established.
    """
    try:
        with engine.connect():
            pass
    except SQLAlchemyError as exc:
        safe_url = engine.url.render_as_string(hide_password=True)
        logger.error(
            "database_unreachable",
            extra={"url": safe_url, "error": str(exc)},
        )
        raise DatabaseConnectionError(safe_url, str(exc)) from exc


@contextmanager
def connection_scope(engine: Engine) -> Generator[Connection, None, None]:
    """
    Provide a transactional connection.

    Postconditions: On normal exit, the transaction is committed and the
        connection returned to the pool.  On exception, it is rolled back
        and the exception re-raised.
    """
    with engine.connect() as conn:
        logger.debug("transaction_started")
        try:
            with conn.begin():
                yield conn
            logger.debug("transaction_committed")
        except Exception:
            logger.warning("transaction_rolled_back", exc_info=True)
            raise


def reset_engine() -> None:
    """Dispose of the engine. For tests and process shutdown."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None
