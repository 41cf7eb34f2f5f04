"""
Database connection management for kbase
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import ContextManager, Iterator, Optional

from ..config.settings import get_busy_timeout, get_db_path
from ..exceptions import StorageError
from . import migrations

logger = logging.getLogger(__name__)


def utc_now() -> str:
    """Current UTC time as an RFC 3339 string."""
    return datetime.now(timezone.utc).isoformat()


class DatabaseConnection:
    """Shared SQLite handle for one process.

    The connection is opened lazily and kept for the lifetime of the object.
    It runs in autocommit mode so that ``transaction()`` controls every
    BEGIN/COMMIT explicitly.
    """

    def __init__(self, db_path: Optional[Path] = None, busy_timeout: Optional[float] = None):
        self.db_path = Path(db_path) if db_path is not None else get_db_path()
        self.busy_timeout = busy_timeout if busy_timeout is not None else get_busy_timeout()
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = self._open()
        return self._conn

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                str(self.db_path), timeout=self.busy_timeout, isolation_level=None
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout * 1000)}")
        except sqlite3.Error as e:
            raise StorageError(f"Could not open database: {e}", path=str(self.db_path)) from e
        logger.debug(f"Opened database {self.db_path}")
        return conn

    @contextmanager
    def transaction(self, immediate: bool = True) -> Iterator[sqlite3.Connection]:
        """Run a block inside one transaction.

        ``BEGIN IMMEDIATE`` takes the write lock up front so a writer waits
        for the busy timeout instead of failing mid-transaction. Any error
        rolls back. ``sqlite3.Error`` is re-raised as ``StorageError``; other
        exceptions propagate unchanged. A nested call joins the outer
        transaction.
        """
        conn = self.conn
        if conn.in_transaction:
            try:
                yield conn
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
            return

        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        except sqlite3.Error as e:
            raise StorageError(f"Could not begin transaction: {e}") from e

        try:
            yield conn
        except sqlite3.Error as e:
            self._rollback(conn)
            raise StorageError(str(e)) from e
        except BaseException:
            self._rollback(conn)
            raise

        try:
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback(conn)
            raise StorageError(f"Commit failed: {e}") from e

    def read(self) -> ContextManager[sqlite3.Connection]:
        """Read-only snapshot; does not take the write lock."""
        return self.transaction(immediate=False)

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")

    def ensure_schema(self) -> None:
        """Apply any pending migrations."""
        try:
            migrations.run_migrations(self.conn)
        except sqlite3.Error as e:
            raise StorageError(f"Migration failed: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DatabaseConnection":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
