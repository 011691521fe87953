"""Name validation utilities for NoteDB entities.

Table, column and dropdown list names are free-form display text; the only
requirement is that they are not blank.
"""

from typing import Optional

from notedb.core.errors import NameRequiredError


def validate_name(name: Optional[str], entity_type: str = "entity") -> str:
    """Validate that a name is present and return it stripped.

    Args:
        name: The name to validate
        entity_type: Type of entity (table, column, ...) for error messages

    Raises:
        NameRequiredError: If the name is missing, empty or only whitespace
    """
    if name is None or not name.strip():
        raise NameRequiredError(f"{entity_type.capitalize()} name cannot be empty")
    return name.strip()


def is_valid_name(name: Optional[str]) -> bool:
    """Check if a name is valid without raising an exception."""
    try:
        validate_name(name)
        return True
    except NameRequiredError:
        return False
