"""Base manager class and shared context for all NoteDB managers."""

from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, Optional

from notedb.core.connection import DatabaseConnection


@dataclass
class ConnectionContext:
    """Shared connection context for all managers.

    Attributes:
        db_path: Path to the NoteDB database file
        connection: Open connection of an enclosing operation. Managers built
            on a bound context join that operation's transaction instead of
            opening their own.
    """
    db_path: Path
    connection: Optional[DatabaseConnection] = None

    def __post_init__(self):
        """Ensure db_path is a Path object."""
        if not isinstance(self.db_path, Path):
            self.db_path = Path(self.db_path)

    def bind(self, connection: DatabaseConnection) -> "ConnectionContext":
        """Return a copy of this context that reuses ``connection``."""
        return replace(self, connection=connection)

    # Manager properties for convenient access
    # These use lazy imports to avoid circular dependencies

    @property
    def tables(self) -> "TableManager":
        """Access TableManager for this context."""
        from notedb.managers.table import TableManager
        return TableManager(self)

    @property
    def columns(self) -> "ColumnManager":
        """Access ColumnManager for this context."""
        from notedb.managers.column import ColumnManager
        return ColumnManager(self)

    @property
    def rows(self) -> "RowManager":
        """Access RowManager for this context."""
        from notedb.managers.row import RowManager
        return RowManager(self)

    @property
    def validation(self) -> "ValidationEngine":
        """Access ValidationEngine for this context."""
        from notedb.managers.validation import ValidationEngine
        return ValidationEngine(self)

    @property
    def dropdowns(self) -> "DropdownManager":
        """Access DropdownManager for this context."""
        from notedb.managers.dropdown import DropdownManager
        return DropdownManager(self)


class BaseManager:
    """Base class for all NoteDB managers.

    Every public operation runs on a single connection: writes inside one
    ``BEGIN IMMEDIATE`` transaction, reads inside one snapshot. When the
    manager was built on a bound context, the enclosing connection is used
    and no new transaction is opened.
    """

    def __init__(self, context: ConnectionContext):
        """Initialize base manager with connection context.

        Args:
            context: ConnectionContext with all connection parameters
        """
        self.context = context
        self.db_path = context.db_path

    @contextmanager
    def _write(self) -> Iterator[DatabaseConnection]:
        """Yield a connection inside a write transaction."""
        if self.context.connection is not None:
            yield self.context.connection
            return
        with DatabaseConnection(self.db_path) as conn:
            with conn.transaction():
                yield conn

    @contextmanager
    def _read(self) -> Iterator[DatabaseConnection]:
        """Yield a connection inside a read snapshot."""
        if self.context.connection is not None:
            yield self.context.connection
            return
        with DatabaseConnection(self.db_path) as conn:
            with conn.snapshot():
                yield conn

    def _bound(self, conn: DatabaseConnection) -> ConnectionContext:
        """Context for collaborating managers sharing ``conn``."""
        return self.context.bind(conn)
