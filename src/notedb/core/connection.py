"""SQLite connection management for NoteDB."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional


class DatabaseConnection:
    """Manages a SQLite database connection with WAL mode.

    The connection runs in autocommit mode; transactions are opened
    explicitly with :meth:`transaction` (writes) or :meth:`snapshot` (reads).
    """

    def __init__(self, path: Path):
        """Initialize database connection.

        Args:
            path: Path to SQLite database file
        """
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self) -> None:
        """Establish database connection and configure WAL mode."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Streams may be drained from another thread than the one that opened them
        self._conn = sqlite3.connect(
            str(self.path), isolation_level=None, check_same_thread=False
        )

        try:
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA synchronous = NORMAL")
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.OperationalError:
            self._conn.close()
            raise

    def execute(self, sql: str, params: Optional[tuple] = None) -> sqlite3.Cursor:
        """Execute a SQL statement.

        Args:
            sql: SQL statement to execute
            params: Optional parameters for parameterized queries

        Returns:
            Cursor with results
        """
        if not self._conn:
            raise RuntimeError("Connection is closed")

        if params:
            return self._conn.execute(sql, params)
        return self._conn.execute(sql)

    def executemany(self, sql: str, params: List[tuple]) -> sqlite3.Cursor:
        """Execute a SQL statement once per parameter tuple."""
        if not self._conn:
            raise RuntimeError("Connection is closed")

        return self._conn.executemany(sql, params)

    def executescript(self, script: str) -> None:
        """Execute a multi-statement SQL script."""
        if not self._conn:
            raise RuntimeError("Connection is closed")

        self._conn.executescript(script)

    @contextmanager
    def transaction(self):
        """Context manager for write transactions.

        Takes the write lock up front (``BEGIN IMMEDIATE``) and commits on
        success or rolls back on exception.
        """
        if not self._conn:
            raise RuntimeError("Connection is closed")

        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self
            self._conn.execute("COMMIT")
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise

    @contextmanager
    def snapshot(self):
        """Context manager for a read transaction.

        Every statement inside sees the same committed state, even if
        writers commit on other connections meanwhile.
        """
        if not self._conn:
            raise RuntimeError("Connection is closed")

        self._conn.execute("BEGIN")
        try:
            yield self
        finally:
            if self._conn and self._conn.in_transaction:
                self._conn.execute("ROLLBACK")

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        _ = (exc_type, exc_val, exc_tb)
        self.close()
        return False
