"""Unified database interface for NoteDB."""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union, TYPE_CHECKING

from notedb.config import Config, ProjectConfig
from notedb.core.actions import BaseAction, parse_action
from notedb.core.notifications import ChangeNotifier
from notedb.core.queries import run_query
from notedb.core.storage import initialize_database
from notedb.managers.base import ConnectionContext
from notedb.models import Notification, TableDataEntry

if TYPE_CHECKING:
    from notedb.managers.table import TableManager
    from notedb.managers.column import ColumnManager
    from notedb.managers.row import RowManager
    from notedb.managers.dropdown import DropdownManager

logger = logging.getLogger(__name__)


class NoteDB:
    """Unified interface for NoteDB operations.

    Mutations go through :meth:`execute` with a named action and reads
    through :meth:`query` with a named query. Mutations are serialised on
    this instance and each runs in its own transaction; after a successful
    mutation the matching notifications are published to subscribers.

    Examples:
        >>> db = NoteDB("notes.db")
        >>> monsters = db.execute({"action": "createTable", "tableName": "Monsters"})
        >>> rows = list(db.query("get_table_data", tableOid=monsters, pageNum=1, pageSize=10))
    """

    def __init__(self, path: Union[str, Path], config: Optional[ProjectConfig] = None):
        """Open (and create if needed) a NoteDB database file.

        Args:
            path: Path to the database file
            config: Project configuration; defaults apply when omitted
        """
        self.path = Path(path)
        self.config = config or ProjectConfig()
        self.notifier = ChangeNotifier()
        self._lock = threading.RLock()
        self._context = ConnectionContext(self.path)

        initialize_database(self.path)
        logger.debug(f"Opened NoteDB database at {self.path}")

    @classmethod
    def from_project(cls, project_dir: Optional[Path] = None) -> "NoteDB":
        """Open the database configured in a project's ``.notedb/config.toml``."""
        config = Config(project_dir)
        project_config = config.load()
        return cls(config.database_path, project_config)

    @property
    def tables(self) -> "TableManager":
        """Table and object type operations."""
        return self._context.tables

    @property
    def columns(self) -> "ColumnManager":
        """Column operations."""
        return self._context.columns

    @property
    def rows(self) -> "RowManager":
        """Row and cell operations."""
        return self._context.rows

    @property
    def dropdowns(self) -> "DropdownManager":
        """Dropdown list and legal value operations."""
        return self._context.dropdowns

    def subscribe(self, callback: Callable[[Notification], None]) -> Callable[[], None]:
        """Register a change notification callback; returns an unsubscribe function."""
        return self.notifier.subscribe(callback)

    def execute(self, action: Union[BaseAction, dict]) -> Any:
        """Run a mutating action.

        Args:
            action: Action model, or a dict discriminated by its ``action`` name

        Returns:
            The action's result: a new oid, a previous value, or None

        Raises:
            pydantic.ValidationError: If the payload is not a valid action
            NoteDBError: If the action fails; nothing is written in that case
        """
        action = parse_action(action)
        with self._lock:
            result = action.apply(self)
        logger.debug(f"Executed {action.action}")
        self.notifier.publish(action.notifications(result))
        return result

    def query(self, name: str, **params: Any) -> Any:
        """Run a named read-only query.

        Streaming queries return a generator; abandoning or closing it
        releases the underlying connection.

        Raises:
            ValueError: If the query name is unknown
        """
        return run_query(self, name, params)

    def get_table_data(
        self,
        table_oid: int,
        parent_row_oid: Optional[int] = None,
        page_num: int = 1,
        page_size: Optional[int] = None,
    ) -> Iterator[TableDataEntry]:
        """Stream a page of a table, using the configured page sizes.

        Raises:
            ValueError: If the page number or size is out of range
        """
        if page_size is None:
            page_size = self.config.default_page_size
        if page_size > self.config.max_page_size:
            raise ValueError(f"Page size {page_size} exceeds the maximum of {self.config.max_page_size}")
        return self.rows.get_table_data(table_oid, parent_row_oid, page_num, page_size)

    def __repr__(self) -> str:
        return f"NoteDB(path={str(self.path)!r})"


def connect(path: Union[str, Path], config: Optional[ProjectConfig] = None) -> NoteDB:
    """Open a NoteDB database file.

    Args:
        path: Path to the database file; created if missing
        config: Optional project configuration

    Returns:
        NoteDB instance

    Examples:
        >>> db = connect("notes.db")
        >>> db.query("get_table_list")
    """
    return NoteDB(path, config)
