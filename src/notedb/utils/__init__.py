"""Utility functions for NoteDB."""

from notedb.utils.name_validator import validate_name, is_valid_name

__all__ = ["validate_name", "is_valid_name"]
