"""Dropdown lists, reference values and cell display rendering for NoteDB."""

import json
import logging
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from notedb.core.connection import DatabaseConnection
from notedb.core.errors import InvalidColumnTypeError, NotFoundError
from notedb.managers.base import BaseManager, ConnectionContext
from notedb.models import Column, ColumnTypeMode, DropdownList, DropdownValue, Primitive
from notedb.utils.name_validator import validate_name

logger = logging.getLogger(__name__)

DropdownInput = Union[str, DropdownValue, dict]


def format_size(size: Optional[int]) -> Optional[str]:
    """Human-readable byte count, e.g. ``"12.5 KB"``."""
    if size is None:
        return None
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return None


def parse_multi_select(value: Optional[str]) -> Optional[List[str]]:
    """Option oids of a multi-select value, or ``None`` if it is not a JSON list."""
    if value is None:
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        return None
    if not isinstance(parsed, list) or not all(isinstance(v, (int, str)) for v in parsed):
        return None
    return [str(v) for v in parsed]


class DropdownManager(BaseManager):
    """Manages option lists and resolves the legal and displayed values of cells.

    An instance caches option lists, column lists and row display values
    for its lifetime; read streams create one instance per stream so every
    cell of the stream is rendered against the same snapshot.
    """

    def __init__(self, context: ConnectionContext):
        super().__init__(context)
        self._options: Dict[int, Optional[Dict[str, str]]] = {}
        self._columns: Dict[int, List[Column]] = {}
        self._row_displays: Dict[Tuple[int, int], Optional[str]] = {}
        self._rendering: Set[Tuple[int, int]] = set()

    # Option lists

    def create_dropdown_list(self, name: str, values: Optional[List[DropdownInput]] = None) -> int:
        """Create an option list.

        Raises:
            NameRequiredError: If the name is blank
        """
        name = validate_name(name, "dropdown list")
        with self._write() as conn:
            cursor = conn.execute("INSERT INTO metadata_dropdown_list (name) VALUES (?)", (name,))
            list_oid = cursor.lastrowid
            if values:
                self._set_values(conn, list_oid, values)
        logger.info(f"Created dropdown list '{name}' ({list_oid})")
        return list_oid

    def get_dropdown_list(self, list_oid: int) -> DropdownList:
        """Get an option list with its options in stored order.

        Raises:
            NotFoundError: If the list doesn't exist
        """
        with self._read() as conn:
            row = conn.execute(
                "SELECT oid, name FROM metadata_dropdown_list WHERE oid = ?", (list_oid,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Dropdown list {list_oid} does not exist")
            return DropdownList(oid=row["oid"], name=row["name"], values=self._list_values(conn, list_oid))

    def set_dropdown_values(self, list_oid: int, values: List[DropdownInput]) -> None:
        """Replace the options of a list.

        Options carrying a ``true_value`` keep their oid and take the new
        label; options without one are created; options left out are
        removed. The stored order is the given order.

        Raises:
            NotFoundError: If the list doesn't exist
        """
        with self._write() as conn:
            if conn.execute("SELECT 1 FROM metadata_dropdown_list WHERE oid = ?", (list_oid,)).fetchone() is None:
                raise NotFoundError(f"Dropdown list {list_oid} does not exist")
            self._set_values(conn, list_oid, values)
        self._options.pop(list_oid, None)

    def edit_column_dropdown_values(self, table_oid: int, column_oid: int, values: List[DropdownInput]) -> int:
        """Replace the options of a dropdown column's list, creating the list if needed.

        Returns:
            The list oid

        Raises:
            NotFoundError: If the column isn't visible in the table
            InvalidColumnTypeError: If the column is not a dropdown
        """
        with self._write() as conn:
            context = self._bound(conn)
            column = context.columns.get_visible_column(table_oid, column_oid)
            if column.column_type.mode not in (
                ColumnTypeMode.SINGLE_SELECT_DROPDOWN,
                ColumnTypeMode.MULTI_SELECT_DROPDOWN,
            ):
                raise InvalidColumnTypeError(f"Column {column_oid} is not a dropdown column")

            list_oid = column.column_type.list_oid
            if list_oid is None or conn.execute(
                "SELECT 1 FROM metadata_dropdown_list WHERE oid = ?", (list_oid,)
            ).fetchone() is None:
                list_oid = context.dropdowns.create_dropdown_list(column.name, [])
                conn.execute(
                    "UPDATE metadata_table_column SET type_ref_oid = ? WHERE oid = ?",
                    (list_oid, column_oid),
                )
            self._set_values(conn, list_oid, values)

        self._options.pop(list_oid, None)
        logger.info(f"Set {len(values)} dropdown values on column {column_oid}")
        return list_oid

    # Legal values

    def get_dropdown_values(self, column_oid: int) -> Iterator[DropdownValue]:
        """Stream the legal values of a column.

        Dropdown columns yield their options in stored order. Reference and
        child-object columns yield one entry per row of the target table, in
        row order, with the row oid as true value and the row's display
        value. Other columns yield nothing.

        Raises:
            NotFoundError: If the column doesn't exist
        """
        with self._read() as conn:
            context = self._bound(conn)
            column = context.columns.get_column(column_oid)
            column_type = column.column_type
            mode = column_type.mode

            if mode in (ColumnTypeMode.SINGLE_SELECT_DROPDOWN, ColumnTypeMode.MULTI_SELECT_DROPDOWN):
                if column_type.list_oid is not None:
                    yield from self._list_values(conn, column_type.list_oid)
            elif mode in (ColumnTypeMode.REFERENCE, ColumnTypeMode.CHILD_OBJECT):
                if not context.tables.table_exists(column_type.table_oid):
                    return
                renderer = DropdownManager(context)
                for row_oid in context.rows.visible_row_oids(column_type.table_oid):
                    yield DropdownValue(
                        true_value=str(row_oid),
                        display_value=renderer.row_display_value(column_type.table_oid, row_oid),
                    )
            elif mode in (ColumnTypeMode.PRIMITIVE, ColumnTypeMode.CHILD_TABLE):
                return
            else:
                raise ValueError(f"Unknown column type mode: {mode}")

    def option_labels(self, list_oid: Optional[int]) -> Optional[Dict[str, str]]:
        """Map of option oid (as text) to label, or ``None`` if the list is gone."""
        if list_oid is None:
            return None
        if list_oid not in self._options:
            with self._read() as conn:
                exists = conn.execute(
                    "SELECT 1 FROM metadata_dropdown_list WHERE oid = ?", (list_oid,)
                ).fetchone()
                self._options[list_oid] = (
                    {v.true_value: v.display_value for v in self._list_values(conn, list_oid)}
                    if exists else None
                )
        return self._options[list_oid]

    # Display rendering

    def columns_of(self, table_oid: int) -> List[Column]:
        """Visible columns of a table, cached for this instance."""
        if table_oid not in self._columns:
            self._columns[table_oid] = self.context.columns.list_columns(table_oid)
        return self._columns[table_oid]

    def display_value(
        self,
        column: Column,
        row_oid: int,
        value: Optional[str],
        blob_size: Optional[int] = None,
    ) -> Optional[str]:
        """Render a stored cell value for display.

        Values that no longer fit the column type are shown as stored.
        """
        column_type = column.column_type
        mode = column_type.mode

        if mode == ColumnTypeMode.PRIMITIVE:
            if column_type.primitive in (Primitive.FILE, Primitive.IMAGE):
                return format_size(blob_size)
            if column_type.primitive == Primitive.BOOLEAN and value is not None:
                lowered = value.strip().lower()
                if lowered in ("true", "1"):
                    return "True"
                if lowered in ("false", "0"):
                    return "False"
            return value

        elif mode == ColumnTypeMode.SINGLE_SELECT_DROPDOWN:
            if value is None:
                return None
            labels = self.option_labels(column_type.list_oid) or {}
            return labels.get(value, value)

        elif mode == ColumnTypeMode.MULTI_SELECT_DROPDOWN:
            if value is None:
                return None
            selected = parse_multi_select(value)
            if selected is None:
                return value
            labels = self.option_labels(column_type.list_oid) or {}
            return "[" + ", ".join(labels.get(oid) or oid for oid in selected) + "]"

        elif mode in (ColumnTypeMode.REFERENCE, ColumnTypeMode.CHILD_OBJECT):
            if value is None:
                return None
            try:
                target_row = int(value)
            except ValueError:
                return value
            if not self.context.rows.is_row_visible(column_type.table_oid, target_row):
                return value
            return self.row_display_value(column_type.table_oid, target_row)

        elif mode == ColumnTypeMode.CHILD_TABLE:
            if column_type.table_oid is None:
                return None
            if not self.context.tables.table_exists(column_type.table_oid):
                return None
            child_rows = self.context.rows.child_row_oids(column_type.table_oid, row_oid)
            displays = [self.row_display_value(column_type.table_oid, oid) or "" for oid in child_rows]
            return "[" + ", ".join(displays) + "]"

        raise ValueError(f"Unknown column type mode: {mode}")

    def row_display_value(self, table_oid: int, row_oid: int) -> Optional[str]:
        """Display value of a row as seen through a table.

        Built from the table's primary-key columns: one key gives that
        cell's display value, several give a JSON object of column name to
        display value. Without a primary key the first column is used.
        """
        key = (table_oid, row_oid)
        if key in self._row_displays:
            return self._row_displays[key]
        if key in self._rendering:
            # Reference cycle between display columns
            return str(row_oid)

        self._rendering.add(key)
        try:
            columns = self.columns_of(table_oid)
            display_columns = [c for c in columns if c.is_primary_key] or columns[:1]
            cells = self.context.rows.stored_cells(row_oid)
            displays = {}
            for column in display_columns:
                value, blob_size = cells.get(column.oid, (None, None))
                displays[column.name] = self.display_value(column, row_oid, value, blob_size)
        finally:
            self._rendering.discard(key)

        if not displays:
            result = None
        elif len(displays) == 1:
            result = next(iter(displays.values()))
        else:
            result = json.dumps(displays)
        self._row_displays[key] = result
        return result

    def _list_values(self, conn: DatabaseConnection, list_oid: int) -> List[DropdownValue]:
        cursor = conn.execute(
            """
            SELECT oid, display_value FROM metadata_dropdown_value
            WHERE list_oid = ?
            ORDER BY value_ordering, oid
            """,
            (list_oid,),
        )
        return [
            DropdownValue(true_value=str(row["oid"]), display_value=row["display_value"])
            for row in cursor.fetchall()
        ]

    def _set_values(self, conn: DatabaseConnection, list_oid: int, values: List[DropdownInput]) -> None:
        existing = {v.true_value for v in self._list_values(conn, list_oid)}
        kept: Set[str] = set()

        for ordering, raw in enumerate(values):
            value = self._coerce_value(raw)
            if value.true_value is not None and value.true_value in existing:
                conn.execute(
                    "UPDATE metadata_dropdown_value SET display_value = ?, value_ordering = ? WHERE oid = ?",
                    (value.display_value, ordering, int(value.true_value)),
                )
                kept.add(value.true_value)
            else:
                conn.execute(
                    """
                    INSERT INTO metadata_dropdown_value (list_oid, value_ordering, display_value)
                    VALUES (?, ?, ?)
                    """,
                    (list_oid, ordering, value.display_value),
                )

        conn.executemany(
            "DELETE FROM metadata_dropdown_value WHERE oid = ?",
            [(int(oid),) for oid in existing - kept],
        )

    @staticmethod
    def _coerce_value(raw: DropdownInput) -> DropdownValue:
        if isinstance(raw, DropdownValue):
            return raw
        if isinstance(raw, dict):
            return DropdownValue.model_validate(raw)
        return DropdownValue(display_value=str(raw))
