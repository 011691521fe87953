"""NoteDB managers."""

from notedb.managers.base import BaseManager, ConnectionContext
from notedb.managers.table import TableManager
from notedb.managers.column import ColumnManager
from notedb.managers.row import RowManager
from notedb.managers.validation import ValidationEngine
from notedb.managers.dropdown import DropdownManager

__all__ = [
    "BaseManager",
    "ConnectionContext",
    "TableManager",
    "ColumnManager",
    "RowManager",
    "ValidationEngine",
    "DropdownManager",
]
