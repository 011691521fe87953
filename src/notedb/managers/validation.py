"""Cell-level constraint checking for NoteDB.

Failures are advisory: they are attached to cells when a cell is written
or read and never prevent a value from being stored.
"""

import json
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Set

from notedb.managers.base import BaseManager, ConnectionContext
from notedb.managers.dropdown import DropdownManager, parse_multi_select
from notedb.models import Column, ColumnTypeMode, FailedValidation, Primitive
from notedb.models.column_type import is_blob_type

logger = logging.getLogger(__name__)

VALUE_REQUIRED = "value is required."
VALUE_NOT_UNIQUE = "value must be unique."
UNSTABLE_PRIMARY_KEY = "primary key must be a stable, non-blob type."
PRIMARY_KEY_NOT_UNIQUE = "primary key for this row is not unique."

BOOLEAN_VALUES = {"true", "false", "1", "0"}


def _placeholders(values) -> str:
    return ", ".join("?" for _ in values)


class ValidationEngine(BaseManager):
    """Computes the failed validations of cells from current stored state.

    Checks run in a fixed order and accumulate: nullability, uniqueness,
    primary key, then type-specific checks. Duplicate values and key
    collisions are computed once per column (or table) and cached for the
    lifetime of the engine, so one engine should serve one read stream or
    one write.
    """

    def __init__(self, context: ConnectionContext, dropdowns: Optional[DropdownManager] = None):
        super().__init__(context)
        self.dropdowns = dropdowns or DropdownManager(context)
        self._duplicates: Dict[int, Set[str]] = {}
        self._key_collisions: Dict[int, Set[int]] = {}
        self._tables: Dict[int, bool] = {}

    def validate_cell(
        self,
        table_oid: int,
        column: Column,
        row_oid: int,
        value: Optional[str],
        blob_size: Optional[int] = None,
    ) -> List[FailedValidation]:
        """Failed validations of one cell of a row viewed through ``table_oid``.

        Args:
            table_oid: Table whose columns the row is being viewed with
            column: The cell's column
            row_oid: The cell's row
            value: Stored text value
            blob_size: Size of the stored blob, if any
        """
        column_type = column.column_type
        is_blob = is_blob_type(column_type)
        if column_type.mode == ColumnTypeMode.CHILD_TABLE:
            has_value = True
        elif is_blob:
            has_value = blob_size is not None
        else:
            has_value = value is not None

        key_columns = [c for c in self.dropdowns.columns_of(table_oid) if c.is_primary_key]
        composite_key = len(key_columns) > 1

        failures: List[str] = []

        if column.requires_value and not has_value:
            failures.append(VALUE_REQUIRED)

        if (
            (column.is_unique or (column.is_primary_key and not composite_key))
            and value is not None
            and value in self._duplicate_values(column)
        ):
            failures.append(VALUE_NOT_UNIQUE)

        if column.is_primary_key:
            if is_blob or column_type.mode == ColumnTypeMode.CHILD_TABLE:
                failures.append(UNSTABLE_PRIMARY_KEY)
            if composite_key and row_oid in self._colliding_rows(table_oid, key_columns):
                failures.append(PRIMARY_KEY_NOT_UNIQUE)

        failures.extend(self.type_failures(column, value, blob_size))
        return [FailedValidation(description=d) for d in failures]

    def type_failures(self, column: Column, value: Optional[str], blob_size: Optional[int] = None) -> List[str]:
        """Type-specific failures of a stored value, including values left stale by a type change."""
        column_type = column.column_type
        mode = column_type.mode

        if mode == ColumnTypeMode.PRIMITIVE:
            primitive = column_type.primitive
            if primitive in (Primitive.FILE, Primitive.IMAGE):
                if value is not None and blob_size is None:
                    return ["value is not a file."]
                return []
            if value is None:
                return ["value is stored as a file."] if blob_size is not None else []
            return self._primitive_failures(primitive, value)

        elif mode == ColumnTypeMode.SINGLE_SELECT_DROPDOWN:
            labels = self.dropdowns.option_labels(column_type.list_oid)
            if labels is None:
                return ["dropdown list no longer exists."]
            if value is not None and value not in labels:
                return ["value is not a valid option."]
            return []

        elif mode == ColumnTypeMode.MULTI_SELECT_DROPDOWN:
            labels = self.dropdowns.option_labels(column_type.list_oid)
            if labels is None:
                return ["dropdown list no longer exists."]
            selected = parse_multi_select(value)
            if selected is None:
                return ["value is not a valid list of options."]
            if any(oid not in labels for oid in selected):
                return ["value is not a valid option."]
            return []

        elif mode in (ColumnTypeMode.REFERENCE, ColumnTypeMode.CHILD_OBJECT):
            if not self._table_exists(column_type.table_oid):
                return ["referenced table no longer exists."]
            if value is None:
                return []
            try:
                target_row = int(value)
            except ValueError:
                return ["referenced row does not exist."]
            if not self.context.rows.is_row_visible(column_type.table_oid, target_row):
                return ["referenced row does not exist."]
            return []

        elif mode == ColumnTypeMode.CHILD_TABLE:
            if column_type.table_oid is None or not self._table_exists(column_type.table_oid):
                return ["child table no longer exists."]
            return []

        raise ValueError(f"Unknown column type mode: {mode}")

    @staticmethod
    def _primitive_failures(primitive: str, value: str) -> List[str]:
        if primitive == Primitive.BOOLEAN:
            if value.strip().lower() not in BOOLEAN_VALUES:
                return ["value is not a valid boolean."]
        elif primitive == Primitive.INTEGER:
            try:
                int(value)
            except ValueError:
                return ["value is not a valid integer."]
        elif primitive == Primitive.NUMBER:
            try:
                float(value)
            except ValueError:
                return ["value is not a valid number."]
        elif primitive == Primitive.DATE:
            try:
                date.fromisoformat(value)
            except ValueError:
                return ["value is not a valid date."]
        elif primitive == Primitive.TIMESTAMP:
            try:
                datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return ["value is not a valid timestamp."]
        elif primitive == Primitive.JSON:
            try:
                json.loads(value)
            except ValueError:
                return ["value is not valid JSON."]
        return []

    def _table_exists(self, table_oid: int) -> bool:
        if table_oid not in self._tables:
            self._tables[table_oid] = self.context.tables.table_exists(table_oid)
        return self._tables[table_oid]

    def _duplicate_values(self, column: Column) -> Set[str]:
        """Values held by more than one row that can see the column."""
        if column.oid not in self._duplicates:
            with self._read() as conn:
                visible = self._bound(conn).tables.get_descendants(column.table_oid, include_self=True)
                cursor = conn.execute(
                    f"""
                    SELECT c.value FROM table_cell c
                    JOIN table_row r ON r.oid = c.row_oid
                    WHERE c.column_oid = ? AND c.value IS NOT NULL
                      AND r.subtype_oid IN ({_placeholders(visible)})
                    GROUP BY c.value
                    HAVING COUNT(*) > 1
                    """,
                    (column.oid, *visible),
                )
                self._duplicates[column.oid] = {row["value"] for row in cursor.fetchall()}
        return self._duplicates[column.oid]

    def _colliding_rows(self, table_oid: int, key_columns: List[Column]) -> Set[int]:
        """Rows of the table whose complete primary-key tuple is shared with another row."""
        if table_oid not in self._key_collisions:
            key_oids = [c.oid for c in key_columns]
            with self._read() as conn:
                visible = self._bound(conn).tables.get_descendants(table_oid, include_self=True)
                cursor = conn.execute(
                    f"""
                    SELECT r.oid AS row_oid, c.column_oid, c.value FROM table_row r
                    LEFT JOIN table_cell c
                      ON c.row_oid = r.oid AND c.column_oid IN ({_placeholders(key_oids)})
                    WHERE r.subtype_oid IN ({_placeholders(visible)})
                    """,
                    (*key_oids, *visible),
                )
                keys: Dict[int, Dict[int, Optional[str]]] = {}
                for row in cursor.fetchall():
                    cells = keys.setdefault(row["row_oid"], {})
                    if row["column_oid"] is not None:
                        cells[row["column_oid"]] = row["value"]

            rows_by_key: Dict[tuple, List[int]] = {}
            for row_oid, cells in keys.items():
                key = tuple(cells.get(oid) for oid in key_oids)
                if None not in key:
                    rows_by_key.setdefault(key, []).append(row_oid)
            self._key_collisions[table_oid] = {
                row_oid for rows in rows_by_key.values() if len(rows) > 1 for row_oid in rows
            }
        return self._key_collisions[table_oid]
