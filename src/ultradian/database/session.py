"""
Database binding for ultradian.

One SQLite file per process. Request handlers and the background recompute
worker share it, so every connection runs in WAL mode with a busy timeout:
readers never block the worker's profile upsert and a second writer waits
instead of failing with "database is locked".
"""

import logging
import os
import threading

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event, inspect
from sqlalchemy.orm import Session, sessionmaker

from ultradian.constants import DEFAULT_DATABASE_PATH
from ultradian.database.models import Base

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_MS = 5000

CONNECTION_PRAGMAS = (
    f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}",
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


@dataclass
class _BoundDatabase:
    path: Path
    engine: Engine
    factory: sessionmaker[Session]


_bound: _BoundDatabase | None = None
_bind_lock = threading.Lock()


def _apply_pragmas(dbapi_conn: Any, connection_record: Any) -> None:
    cursor = dbapi_conn.cursor()
    for pragma in CONNECTION_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


def _create_schema(engine: Engine) -> None:
    """Create missing tables, logging the ones this run added."""
    existing = set(inspect(engine).get_table_names())
    Base.metadata.create_all(engine)
    created = sorted(set(Base.metadata.tables) - existing)
    if created:
        logger.info(f"Created tables: {', '.join(created)}")


def _bind(path: Path) -> _BoundDatabase:
    try:
        os.makedirs(path.parent, mode=0o700, exist_ok=True)
    except PermissionError as e:
        raise PermissionError(
            f"Cannot create database directory {path.parent}: {e}"
        ) from e

    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
    )
    event.listen(engine, "connect", _apply_pragmas)
    _create_schema(engine)

    return _BoundDatabase(path=path, engine=engine, factory=sessionmaker(bind=engine))


def init_database(database_path: str | os.PathLike[str] | None = None) -> Path:
    """
    Bind the process to a SQLite database, creating file and schema on first use.

    Calling again with the same path is a no-op; a different path disposes the
    current engine and rebinds.

    Args:
        database_path: Database file (defaults to ~/.ultradian/ultradian.db)

    Returns:
        The bound database path

    Raises:
        ValueError: If the path is empty
        PermissionError: If the parent directory cannot be created
    """
    global _bound

    if database_path is None:
        database_path = DEFAULT_DATABASE_PATH
    if not str(database_path).strip():
        raise ValueError(f"Invalid database path: {database_path!r}")

    path = Path(database_path).expanduser()

    with _bind_lock:
        if _bound is not None:
            if _bound.path == path:
                return path
            logger.info(f"Rebinding database from {_bound.path} to {path}")
            _bound.engine.dispose()
            _bound = None

        _bound = _bind(path)
        logger.debug(f"Database bound at {path}")
        return path


def bound_database_path() -> Path | None:
    """Path of the currently bound database, if any."""
    bound = _bound
    return bound.path if bound is not None else None


@contextmanager
def session_scope() -> Generator[Session]:
    """
    One unit of work: commit on success, roll back on error, always close.

    Each request and each background recompute opens its own scope; sessions
    are never shared across threads.

    Raises:
        RuntimeError: If init_database() has not been called
    """
    bound = _bound
    if bound is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = bound.factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def cleanup_database() -> None:
    """Dispose of the engine and unbind (used between tests)."""
    global _bound

    with _bind_lock:
        if _bound is not None:
            _bound.engine.dispose()
            _bound = None
