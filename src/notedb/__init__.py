"""NoteDB - typed, relational and hierarchical note tables on SQLite."""

from notedb.core.database import NoteDB, connect
from notedb.core.errors import (
    NoteDBError,
    NotFoundError,
    NameRequiredError,
    CyclicInheritanceError,
    InvalidSubtypeError,
    InvalidColumnTypeError,
)

try:
    from importlib.metadata import version
    __version__ = version("notedb")
except Exception:
    # Package metadata is missing when running from a source checkout
    __version__ = "0.1.0"

__all__ = [
    "NoteDB",
    "connect",
    "NoteDBError",
    "NotFoundError",
    "NameRequiredError",
    "CyclicInheritanceError",
    "InvalidSubtypeError",
    "InvalidColumnTypeError",
]
