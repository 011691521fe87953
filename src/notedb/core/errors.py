"""Structural errors raised by NoteDB operations.

Constraint violations on cells are never raised; they are reported as
``FailedValidation`` entries on the cell instead.
"""


class NoteDBError(Exception):
    """Base class for errors that abort a single NoteDB operation."""

    pass


class NotFoundError(NoteDBError, LookupError):
    """Raised when a table, column, row or dropdown list oid is unknown."""

    pass


class NameRequiredError(NoteDBError, ValueError):
    """Raised when a required name is empty or only whitespace."""

    pass


class CyclicInheritanceError(NoteDBError):
    """Raised when a master table list would make the inheritance graph cyclic."""

    pass


class InvalidSubtypeError(NoteDBError):
    """Raised when a retype target is not the base type or one of its subtypes."""

    pass


class InvalidColumnTypeError(NoteDBError):
    """Raised when a cell operation does not fit the column's type."""

    pass
