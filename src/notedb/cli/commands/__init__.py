"""CLI command modules."""

from . import table, column, row, cell, data

__all__ = [
    "table",
    "column",
    "row",
    "cell",
    "data",
]
