"""Column management for NoteDB."""

import logging
from typing import Any, List, Optional, Tuple

from notedb.core.connection import DatabaseConnection
from notedb.core.errors import NotFoundError
from notedb.managers.base import BaseManager
from notedb.models import Column, ColumnTypeMode
from notedb.models.column_type import (
    ChildTableColumnType,
    MultiSelectDropdownColumnType,
    SingleSelectDropdownColumnType,
    column_type_from_storage,
    column_type_to_storage,
    parse_column_type,
)
from notedb.utils.name_validator import validate_name

logger = logging.getLogger(__name__)

COLUMN_FIELDS = """
    oid, table_oid, name, column_ordering, column_style, column_width,
    type_mode, type_primitive, type_ref_oid, is_nullable, is_unique, is_primary_key
"""


def row_to_column(row) -> Column:
    """Build a Column model from a ``metadata_table_column`` row."""
    return Column(
        oid=row["oid"],
        table_oid=row["table_oid"],
        name=row["name"],
        column_ordering=row["column_ordering"],
        column_style=row["column_style"],
        column_width=row["column_width"],
        column_type=column_type_from_storage(row["type_mode"], row["type_primitive"], row["type_ref_oid"]),
        is_nullable=bool(row["is_nullable"]),
        is_unique=bool(row["is_unique"]),
        is_primary_key=bool(row["is_primary_key"]),
    )


class ColumnManager(BaseManager):
    """Manages columns within tables.

    Orderings are dense and 0-based within the table that defines the
    column; every insert, move and delete renumbers the table's columns.
    """

    def list_columns(self, table_oid: int) -> List[Column]:
        """List the columns visible in a table.

        Columns inherited from masters come first, from the root of the
        hierarchy down, followed by the table's own columns. Within each
        table, columns are ordered by their ordering.

        Raises:
            NotFoundError: If the table doesn't exist
        """
        with self._read() as conn:
            tables = self._bound(conn).tables
            if not tables.table_exists(table_oid):
                raise NotFoundError(f"Table {table_oid} does not exist")
            columns: List[Column] = []
            for oid in tables.get_lineage(table_oid):
                columns.extend(self._own_columns(conn, oid))
            return columns

    def get_column(self, column_oid: int) -> Column:
        """Get a column by oid.

        Raises:
            NotFoundError: If the column doesn't exist
        """
        with self._read() as conn:
            return self._get_column(conn, column_oid)

    def get_visible_column(self, table_oid: int, column_oid: int) -> Column:
        """Get a column defined on a table or one of its masters.

        Raises:
            NotFoundError: If the table or column doesn't exist, or the column isn't visible in the table
        """
        with self._read() as conn:
            return self._visible_column(conn, table_oid, column_oid)

    def create_column(
        self,
        table_oid: int,
        name: str,
        column_type: Any,
        column_ordering: Optional[int] = None,
        column_style: str = "",
        is_nullable: bool = True,
        is_unique: bool = False,
        is_primary_key: bool = False,
    ) -> int:
        """Create a column in a table.

        Args:
            table_oid: Table to add the column to
            name: Column name
            column_type: Column type model or dict
            column_ordering: 0-based position; ``None`` appends at the end
            column_style: Opaque display style
            is_nullable: Whether NULL values are allowed
            is_unique: Whether values must be unique
            is_primary_key: Whether the column is part of the primary key

        Returns:
            The new column's oid

        Raises:
            NameRequiredError: If the name is blank
            NotFoundError: If the table, or a table or list the type refers to, doesn't exist
        """
        name = validate_name(name, "column")
        column_type = parse_column_type(column_type)

        with self._write() as conn:
            context = self._bound(conn)
            if not context.tables.table_exists(table_oid):
                raise NotFoundError(f"Table {table_oid} does not exist")
            column_type = self._resolve_type(conn, table_oid, name, column_type, previous=None)
            mode, primitive, ref_oid = column_type_to_storage(column_type)

            cursor = conn.execute(
                f"""
                INSERT INTO metadata_table_column (
                    table_oid, name, column_ordering, column_style, type_mode,
                    type_primitive, type_ref_oid, is_nullable, is_unique, is_primary_key
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    table_oid, name, -1, column_style or "", mode, primitive, ref_oid,
                    int(is_nullable), int(is_unique), int(is_primary_key),
                ),
            )
            column_oid = cursor.lastrowid

            order = [c.oid for c in self._own_columns(conn, table_oid) if c.oid != column_oid]
            order.insert(self._clamp(column_ordering, len(order)), column_oid)
            self._renumber(conn, order)

        logger.info(f"Created column '{name}' ({column_oid}) of type {mode} in table {table_oid}")
        return column_oid

    def edit_column(
        self,
        table_oid: int,
        column_oid: int,
        name: str,
        column_type: Any,
        column_style: str = "",
        is_nullable: bool = True,
        is_unique: bool = False,
        is_primary_key: bool = False,
    ) -> None:
        """Update a column's metadata in place.

        Stored cell values are left untouched when the type changes; cells
        that no longer fit the new type report a failed validation. A child
        table or object rows owned through the column are deleted once the
        new type no longer points at them.

        Raises:
            NameRequiredError: If the name is blank
            NotFoundError: If the column isn't visible in the table
        """
        name = validate_name(name, "column")
        column_type = parse_column_type(column_type)

        with self._write() as conn:
            column = self._visible_column(conn, table_oid, column_oid)
            column_type = self._resolve_type(conn, column.table_oid, name, column_type, previous=column)
            owned_table, owned_rows = self._owned_by(conn, column, column_type)
            mode, primitive, ref_oid = column_type_to_storage(column_type)
            conn.execute(
                """
                UPDATE metadata_table_column
                SET name = ?, column_style = ?, type_mode = ?, type_primitive = ?, type_ref_oid = ?,
                    is_nullable = ?, is_unique = ?, is_primary_key = ?
                WHERE oid = ?
                """,
                (
                    name, column_style or "", mode, primitive, ref_oid,
                    int(is_nullable), int(is_unique), int(is_primary_key), column_oid,
                ),
            )
            self._release(conn, column_oid, owned_table, owned_rows)

        logger.info(f"Edited column {column_oid} in table {column.table_oid}")

    def edit_column_width(self, table_oid: int, column_oid: int, column_width: int) -> None:
        """Set a column's display width in pixels.

        Raises:
            NotFoundError: If the column isn't visible in the table
            ValueError: If the width is negative
        """
        if column_width < 0:
            raise ValueError(f"Column width must not be negative, got {column_width}")

        with self._write() as conn:
            self._visible_column(conn, table_oid, column_oid)
            conn.execute(
                "UPDATE metadata_table_column SET column_width = ? WHERE oid = ?",
                (column_width, column_oid),
            )

    def reorder_column(
        self,
        table_oid: int,
        column_oid: int,
        old_ordering: Optional[int],
        new_ordering: Optional[int],
    ) -> None:
        """Move a column to a new position within its table.

        ``new_ordering`` is the column's final 0-based position; ``None``
        moves it to the end. The stored ordering is authoritative; a stale
        ``old_ordering`` is tolerated.

        Raises:
            NotFoundError: If the column isn't visible in the table
        """
        with self._write() as conn:
            column = self._visible_column(conn, table_oid, column_oid)
            if old_ordering is not None and old_ordering != column.column_ordering:
                logger.debug(
                    f"Column {column_oid} is at {column.column_ordering}, not {old_ordering}; "
                    f"moving from its stored position"
                )
            order = [c.oid for c in self._own_columns(conn, column.table_oid) if c.oid != column_oid]
            order.insert(self._clamp(new_ordering, len(order)), column_oid)
            self._renumber(conn, order)

        logger.info(f"Moved column {column_oid} in table {column.table_oid} to {new_ordering}")

    def delete_column(self, table_oid: int, column_oid: int) -> None:
        """Delete a column and all of its cells.

        A child table owned by the column is deleted with it, and so are
        object rows created through its cells.

        Raises:
            NotFoundError: If the column isn't visible in the table
        """
        with self._write() as conn:
            column = self._visible_column(conn, table_oid, column_oid)
            owned_table, owned_rows = self._owned_by(conn, column)

            conn.execute("DELETE FROM metadata_table_column WHERE oid = ?", (column_oid,))
            self._renumber(conn, [c.oid for c in self._own_columns(conn, column.table_oid)])
            self._release(conn, column_oid, owned_table, owned_rows)

        logger.info(f"Deleted column {column_oid} from table {column.table_oid}")

    def _owned_by(
        self, conn: DatabaseConnection, column: Column, column_type=None
    ) -> Tuple[Optional[int], List[int]]:
        """The child table and object rows owned through the column.

        Nothing is reported while ``column_type`` still refers to the same table.
        """
        previous = column.column_type
        if column_type is not None and column_type.mode == previous.mode:
            if getattr(column_type, "table_oid", None) == getattr(previous, "table_oid", None):
                return None, []

        owned_table = None
        owned_rows: List[int] = []
        if previous.mode == ColumnTypeMode.CHILD_TABLE and previous.table_oid is not None:
            row = conn.execute(
                "SELECT oid FROM metadata_table WHERE oid = ? AND parent_table_oid = ?",
                (previous.table_oid, column.table_oid),
            ).fetchone()
            owned_table = row["oid"] if row else None
        elif previous.mode == ColumnTypeMode.CHILD_OBJECT:
            cursor = conn.execute(
                """
                SELECT r.oid FROM table_cell c
                JOIN table_row r ON r.parent_row_oid = c.row_oid AND CAST(r.oid AS TEXT) = c.value
                WHERE c.column_oid = ?
                """,
                (column.oid,),
            )
            owned_rows = [row["oid"] for row in cursor.fetchall()]
        return owned_table, owned_rows

    def _release(
        self, conn: DatabaseConnection, column_oid: int, owned_table: Optional[int], owned_rows: List[int]
    ) -> None:
        """Delete a child table and object rows that lost their owning column."""
        context = self._bound(conn)
        if owned_rows:
            conn.executemany(
                "DELETE FROM table_cell WHERE column_oid = ? AND value = ?",
                [(column_oid, str(oid)) for oid in owned_rows],
            )
            rows = context.rows
            rows.delete_rows(rows.collect_owned_rows(owned_rows))
            logger.debug(f"Deleted {len(owned_rows)} object rows owned through column {column_oid}")
        if owned_table is not None:
            context.tables.delete_table(owned_table)

    def _get_column(self, conn: DatabaseConnection, column_oid: int) -> Column:
        row = conn.execute(
            f"SELECT {COLUMN_FIELDS} FROM metadata_table_column WHERE oid = ?", (column_oid,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Column {column_oid} does not exist")
        return row_to_column(row)

    def _visible_column(self, conn: DatabaseConnection, table_oid: int, column_oid: int) -> Column:
        """The column, provided it is defined on the table or one of its masters."""
        column = self._get_column(conn, column_oid)
        tables = self._bound(conn).tables
        if not tables.table_exists(table_oid):
            raise NotFoundError(f"Table {table_oid} does not exist")
        if column.table_oid not in tables.get_lineage(table_oid):
            raise NotFoundError(f"Column {column_oid} does not belong to table {table_oid}")
        return column

    def _own_columns(self, conn: DatabaseConnection, table_oid: int) -> List[Column]:
        cursor = conn.execute(
            f"""
            SELECT {COLUMN_FIELDS} FROM metadata_table_column
            WHERE table_oid = ?
            ORDER BY column_ordering, oid
            """,
            (table_oid,),
        )
        return [row_to_column(row) for row in cursor.fetchall()]

    def _renumber(self, conn: DatabaseConnection, column_oids: List[int]) -> None:
        conn.executemany(
            "UPDATE metadata_table_column SET column_ordering = ? WHERE oid = ?",
            [(i, oid) for i, oid in enumerate(column_oids)],
        )

    @staticmethod
    def _clamp(ordering: Optional[int], length: int) -> int:
        if ordering is None:
            return length
        return max(0, min(ordering, length))

    def _resolve_type(
        self,
        conn: DatabaseConnection,
        table_oid: int,
        name: str,
        column_type,
        previous: Optional[Column],
    ):
        """Check the tables and lists a type refers to, creating owned ones when absent."""
        context = self._bound(conn)
        mode = column_type.mode
        previous_type = previous.column_type if previous else None

        if mode in (ColumnTypeMode.SINGLE_SELECT_DROPDOWN, ColumnTypeMode.MULTI_SELECT_DROPDOWN):
            list_oid = column_type.list_oid
            if list_oid is None:
                if previous_type is not None and previous_type.mode in (
                    ColumnTypeMode.SINGLE_SELECT_DROPDOWN,
                    ColumnTypeMode.MULTI_SELECT_DROPDOWN,
                ) and previous_type.list_oid is not None:
                    list_oid = previous_type.list_oid
                else:
                    list_oid = context.dropdowns.create_dropdown_list(name, [])
            else:
                context.dropdowns.get_dropdown_list(list_oid)
            if mode == ColumnTypeMode.SINGLE_SELECT_DROPDOWN:
                return SingleSelectDropdownColumnType(list_oid=list_oid)
            return MultiSelectDropdownColumnType(list_oid=list_oid)

        elif mode in (ColumnTypeMode.REFERENCE, ColumnTypeMode.CHILD_OBJECT):
            if not context.tables.table_exists(column_type.table_oid):
                raise NotFoundError(f"Table {column_type.table_oid} does not exist")
            return column_type

        elif mode == ColumnTypeMode.CHILD_TABLE:
            child_oid = column_type.table_oid
            if child_oid is None:
                if (
                    previous_type is not None
                    and previous_type.mode == ColumnTypeMode.CHILD_TABLE
                    and previous_type.table_oid is not None
                ):
                    child_oid = previous_type.table_oid
                else:
                    child_oid = context.tables.create_table(name, [], parent_table_oid=table_oid)
            elif not context.tables.table_exists(child_oid):
                raise NotFoundError(f"Table {child_oid} does not exist")
            return ChildTableColumnType(table_oid=child_oid)

        elif mode == ColumnTypeMode.PRIMITIVE:
            return column_type

        raise ValueError(f"Unknown column type mode: {mode}")
