"""Core NoteDB functionality."""

from notedb.core.database import NoteDB, connect
from notedb.core.errors import (
    NoteDBError,
    NotFoundError,
    NameRequiredError,
    CyclicInheritanceError,
    InvalidSubtypeError,
    InvalidColumnTypeError,
)

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
