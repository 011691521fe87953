"""Row and cell management for NoteDB."""

import base64
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from notedb.core.connection import DatabaseConnection
from notedb.core.errors import InvalidColumnTypeError, InvalidSubtypeError, NotFoundError
from notedb.managers.base import BaseManager
from notedb.managers.validation import ValidationEngine
from notedb.models import (
    CellUpdateResult,
    CellValue,
    Column,
    ColumnTypeMode,
    RowDataEntry,
    RowExists,
    RowStart,
    TableDataEntry,
)
from notedb.models.column_type import is_blob_type

logger = logging.getLogger(__name__)


def _placeholders(values) -> str:
    return ", ".join("?" for _ in values)


class RowManager(BaseManager):
    """Manages rows, cells and row streams.

    Each row has a home table (where it was created) and a subtype pointer
    (the most specific table it has been retyped into). A row is visible in
    every table of its subtype's lineage. Row order is one explicit sequence
    shared by all rows; inserting shifts the positions of later rows but
    never their oids.
    """

    # Streams

    def get_table_data(
        self,
        table_oid: int,
        parent_row_oid: Optional[int] = None,
        page_num: int = 1,
        page_size: int = 100,
    ) -> Iterator[TableDataEntry]:
        """Stream one page of a table's rows.

        Each row produces a ``RowStart`` followed by one ``CellValue`` per
        visible column. Pages and row indexes are 1-based. The page is read
        inside one snapshot, so concurrent edits never change the column
        set mid-stream.

        Args:
            table_oid: Table to read
            parent_row_oid: Owning row for child tables, ``None`` for top-level rows
            page_num: 1-based page number
            page_size: Maximum number of rows in the page

        Raises:
            ValueError: If ``page_num`` or ``page_size`` is less than 1
            NotFoundError: If the table doesn't exist (raised when the stream starts)
        """
        if page_num < 1:
            raise ValueError(f"Page number must be at least 1, got {page_num}")
        if page_size < 1:
            raise ValueError(f"Page size must be at least 1, got {page_size}")
        return self._stream_table_data(table_oid, parent_row_oid, page_num, page_size)

    def _stream_table_data(
        self, table_oid: int, parent_row_oid: Optional[int], page_num: int, page_size: int
    ) -> Iterator[TableDataEntry]:
        with self._read() as conn:
            context = self._bound(conn)
            validation = ValidationEngine(context)
            columns = validation.dropdowns.columns_of(table_oid)
            visible = context.tables.get_descendants(table_oid, include_self=True)
            offset = (page_num - 1) * page_size

            cursor = conn.execute(
                f"""
                SELECT oid FROM table_row
                WHERE subtype_oid IN ({_placeholders(visible)}) AND parent_row_oid IS ?
                ORDER BY row_ordering
                LIMIT ? OFFSET ?
                """,
                (*visible, parent_row_oid, page_size, offset),
            )
            row_oids = [row["oid"] for row in cursor.fetchall()]

            for i, row_oid in enumerate(row_oids):
                yield RowStart(row_oid=row_oid, row_index=offset + i + 1)
                yield from self._cell_values(conn, validation, table_oid, row_oid, columns)

    def get_table_row(self, table_oid: int, row_oid: int) -> Iterator[RowDataEntry]:
        """Stream a single row of a table.

        The first entry is a ``RowExists`` marker. If the row is gone (or no
        longer visible in the table) the stream ends there; otherwise the
        marker names the row's concrete subtype and one ``CellValue`` follows
        per column of ``table_oid``.
        """
        with self._read() as conn:
            subtype_oid = self._visible_subtype(conn, table_oid, row_oid)
            if subtype_oid is None:
                yield RowExists(row_exists=False, table_oid=table_oid)
                return

            validation = ValidationEngine(self._bound(conn))
            columns = validation.dropdowns.columns_of(table_oid)
            yield RowExists(row_exists=True, table_oid=subtype_oid)
            yield from self._cell_values(conn, validation, table_oid, row_oid, columns)

    def get_object_data(self, obj_type_oid: int, obj_row_oid: int) -> Iterator[RowDataEntry]:
        """Stream an object row with the columns of its concrete subtype.

        Same shape as :meth:`get_table_row`.
        """
        with self._read() as conn:
            subtype_oid = self._visible_subtype(conn, obj_type_oid, obj_row_oid)
            if subtype_oid is None:
                yield RowExists(row_exists=False, table_oid=obj_type_oid)
                return

            validation = ValidationEngine(self._bound(conn))
            columns = validation.dropdowns.columns_of(subtype_oid)
            yield RowExists(row_exists=True, table_oid=subtype_oid)
            yield from self._cell_values(conn, validation, subtype_oid, obj_row_oid, columns)

    def _cell_values(
        self,
        conn: DatabaseConnection,
        validation: ValidationEngine,
        table_oid: int,
        row_oid: int,
        columns: List[Column],
    ) -> Iterator[CellValue]:
        stored = self._stored_cells(conn, row_oid)
        for column in columns:
            value, blob_size = stored.get(column.oid, (None, None))
            holds_text = not is_blob_type(column.column_type) and column.column_type.mode != ColumnTypeMode.CHILD_TABLE
            yield CellValue(
                table_oid=column.table_oid,
                row_oid=row_oid,
                column_oid=column.oid,
                column_name=column.name,
                column_type=column.column_type,
                column_ordering=column.column_ordering,
                true_value=value if holds_text else None,
                display_value=validation.dropdowns.display_value(column, row_oid, value, blob_size),
                failed_validations=validation.validate_cell(table_oid, column, row_oid, value, blob_size),
            )

    # Row mutations

    def push_row(self, table_oid: int, parent_row_oid: Optional[int] = None) -> int:
        """Append a new row with all cells null.

        Raises:
            NotFoundError: If the table or parent row doesn't exist
        """
        with self._write() as conn:
            self._require_row_target(conn, table_oid, parent_row_oid)
            cursor = conn.execute("SELECT COALESCE(MAX(row_ordering), 0) + 1 AS next FROM table_row")
            row_oid = self._insert_row(conn, table_oid, parent_row_oid, cursor.fetchone()["next"])

        logger.debug(f"Pushed row {row_oid} to table {table_oid}")
        return row_oid

    def insert_row(self, table_oid: int, parent_row_oid: Optional[int], before_row_oid: int) -> int:
        """Insert a new row immediately before another row.

        Raises:
            NotFoundError: If the table or parent row doesn't exist, or ``before_row_oid``
                isn't a row of the table under the same parent
        """
        with self._write() as conn:
            self._require_row_target(conn, table_oid, parent_row_oid)
            before = conn.execute(
                "SELECT row_ordering, parent_row_oid FROM table_row WHERE oid = ?", (before_row_oid,)
            ).fetchone()
            if (
                before is None
                or before["parent_row_oid"] != parent_row_oid
                or self._visible_subtype(conn, table_oid, before_row_oid) is None
            ):
                raise NotFoundError(f"Row {before_row_oid} does not exist in table {table_oid}")

            ordering = before["row_ordering"]
            conn.execute(
                "UPDATE table_row SET row_ordering = row_ordering + 1 WHERE row_ordering >= ?",
                (ordering,),
            )
            row_oid = self._insert_row(conn, table_oid, parent_row_oid, ordering)

        logger.debug(f"Inserted row {row_oid} before row {before_row_oid} in table {table_oid}")
        return row_oid

    def delete_row(self, table_oid: int, row_oid: int) -> None:
        """Delete a row with its cells, child-table rows and owned object rows.

        Raises:
            NotFoundError: If the row isn't visible in the table
        """
        with self._write() as conn:
            if self._visible_subtype(conn, table_oid, row_oid) is None:
                raise NotFoundError(f"Row {row_oid} does not exist in table {table_oid}")
            rows = self._bound(conn).rows
            row_oids = rows.collect_owned_rows([row_oid])
            rows.delete_rows(row_oids)

        logger.debug(f"Deleted row {row_oid} from table {table_oid} with {len(row_oids) - 1} owned rows")

    def retype_row(self, base_type_oid: int, base_row_oid: int, new_subtype_oid: int) -> int:
        """Change the most specific table of a row.

        The target must be the base type or one of its subtypes, and must
        lie under the row's home table. No cells are deleted: cells of
        columns that stop applying are hidden and reappear if the row is
        retyped back.

        Returns:
            The row's previous subtype

        Raises:
            NotFoundError: If the row isn't visible in the base type
            InvalidSubtypeError: If the target is not a permitted subtype
        """
        with self._write() as conn:
            tables = self._bound(conn).tables
            old_subtype = self._visible_subtype(conn, base_type_oid, base_row_oid)
            if old_subtype is None:
                raise NotFoundError(f"Row {base_row_oid} does not exist in table {base_type_oid}")
            home_oid = conn.execute(
                "SELECT table_oid FROM table_row WHERE oid = ?", (base_row_oid,)
            ).fetchone()["table_oid"]

            allowed = set(tables.get_descendants(base_type_oid, include_self=True))
            allowed &= set(tables.get_descendants(home_oid, include_self=True))
            if new_subtype_oid not in allowed:
                raise InvalidSubtypeError(
                    f"Table {new_subtype_oid} is not a subtype of table {base_type_oid} for row {base_row_oid}"
                )
            conn.execute(
                "UPDATE table_row SET subtype_oid = ? WHERE oid = ?", (new_subtype_oid, base_row_oid)
            )

        logger.debug(f"Retyped row {base_row_oid} from {old_subtype} to {new_subtype_oid}")
        return old_subtype

    # Cell mutations

    def update_cell_primitive(
        self, table_oid: int, row_oid: int, column_oid: int, value: Optional[str]
    ) -> CellUpdateResult:
        """Store a pre-normalized text value in a cell.

        The value is stored even when it fails validation.

        Returns:
            The previous value and the cell's failed validations after the write

        Raises:
            NotFoundError: If the row or column isn't visible in the table
            InvalidColumnTypeError: If the column holds files, a child object or a child table
        """
        with self._write() as conn:
            context = self._bound(conn)
            column = self._writable_cell(conn, table_oid, row_oid, column_oid)
            if is_blob_type(column.column_type) or column.column_type.mode in (
                ColumnTypeMode.CHILD_OBJECT,
                ColumnTypeMode.CHILD_TABLE,
            ):
                raise InvalidColumnTypeError(
                    f"Column {column_oid} of type {column.column_type.mode} does not store text values"
                )
            previous = self._stored_cells(conn, row_oid).get(column_oid, (None, None))[0]
            self._store_value(conn, row_oid, column_oid, value)
            failures = ValidationEngine(context).validate_cell(table_oid, column, row_oid, value)

        logger.debug(f"Updated cell ({row_oid}, {column_oid}) in table {table_oid}")
        return CellUpdateResult(previous_value=previous, failed_validations=failures)

    def update_cell_blob(
        self, table_oid: int, row_oid: int, column_oid: int, file_path: Union[str, Path]
    ) -> CellUpdateResult:
        """Store the contents of a file in a File or Image cell.

        Raises:
            NotFoundError: If the row or column isn't visible in the table
            InvalidColumnTypeError: If the column is not a File or Image column
            FileNotFoundError: If the file doesn't exist
        """
        with self._write() as conn:
            context = self._bound(conn)
            column = self._writable_cell(conn, table_oid, row_oid, column_oid)
            if not is_blob_type(column.column_type):
                raise InvalidColumnTypeError(f"Column {column_oid} does not store files")
            data = Path(file_path).read_bytes()
            conn.execute(
                """
                INSERT INTO table_cell (row_oid, column_oid, value, blob_value, blob_size)
                VALUES (?, ?, NULL, ?, ?)
                ON CONFLICT (row_oid, column_oid) DO UPDATE
                SET value = NULL, blob_value = excluded.blob_value, blob_size = excluded.blob_size
                """,
                (row_oid, column_oid, data, len(data)),
            )
            failures = ValidationEngine(context).validate_cell(table_oid, column, row_oid, None, len(data))

        logger.debug(f"Stored {len(data)} bytes in cell ({row_oid}, {column_oid})")
        return CellUpdateResult(previous_value=None, failed_validations=failures)

    def get_blob_value(self, table_oid: int, row_oid: int, column_oid: int) -> Optional[str]:
        """Base64 text of a cell's file, or ``None`` if the cell holds none."""
        data = self._read_blob(table_oid, row_oid, column_oid)
        return base64.b64encode(data).decode("ascii") if data is not None else None

    def download_blob_value(
        self, table_oid: int, row_oid: int, column_oid: int, file_path: Union[str, Path]
    ) -> Path:
        """Write a cell's file to ``file_path``.

        Raises:
            NotFoundError: If the cell holds no file
        """
        data = self._read_blob(table_oid, row_oid, column_oid)
        if data is None:
            raise NotFoundError(f"Cell ({row_oid}, {column_oid}) holds no file")
        path = Path(file_path)
        path.write_bytes(data)
        return path

    def set_object_cell(
        self,
        table_oid: int,
        row_oid: int,
        column_oid: int,
        obj_type_oid: Optional[int] = None,
        obj_row_oid: Optional[int] = None,
    ) -> Tuple[int, int]:
        """Link a child-object cell to an object row.

        With ``obj_row_oid`` the existing row is linked. Otherwise a new
        object row of ``obj_type_oid`` (default: the column's object type) is
        created and owned by the cell's row. An owned object row that gets
        replaced is deleted.

        Returns:
            (object type oid, object row oid) of the linked row

        Raises:
            NotFoundError: If a row, column or table doesn't exist
            InvalidColumnTypeError: If the column is not a child-object column
            InvalidSubtypeError: If the object is not of the column's type
        """
        with self._write() as conn:
            tables = self._bound(conn).tables
            column = self._writable_cell(conn, table_oid, row_oid, column_oid)
            if column.column_type.mode != ColumnTypeMode.CHILD_OBJECT:
                raise InvalidColumnTypeError(f"Column {column_oid} is not a child-object column")
            base_oid = column.column_type.table_oid
            if not tables.table_exists(base_oid):
                raise NotFoundError(f"Table {base_oid} does not exist")
            allowed = tables.get_descendants(base_oid, include_self=True)

            if obj_row_oid is not None:
                obj_type_oid = self._visible_subtype(conn, obj_type_oid or base_oid, obj_row_oid)
                if obj_type_oid is None:
                    raise NotFoundError(f"Row {obj_row_oid} is not an object of the requested type")
                if obj_type_oid not in allowed:
                    raise InvalidSubtypeError(f"Table {obj_type_oid} is not a subtype of table {base_oid}")
            else:
                obj_type_oid = obj_type_oid if obj_type_oid is not None else base_oid
                if obj_type_oid not in allowed:
                    raise InvalidSubtypeError(f"Table {obj_type_oid} is not a subtype of table {base_oid}")
                cursor = conn.execute("SELECT COALESCE(MAX(row_ordering), 0) + 1 AS next FROM table_row")
                obj_row_oid = self._insert_row(conn, obj_type_oid, row_oid, cursor.fetchone()["next"])

            previous = self._stored_cells(conn, row_oid).get(column_oid, (None, None))[0]
            self._store_value(conn, row_oid, column_oid, str(obj_row_oid))
            if previous is not None and previous != str(obj_row_oid):
                self._delete_owned_object(conn, row_oid, previous)

        logger.debug(f"Linked object row {obj_row_oid} to cell ({row_oid}, {column_oid})")
        return obj_type_oid, obj_row_oid

    def unset_object_cell(self, table_oid: int, row_oid: int, column_oid: int) -> Optional[int]:
        """Clear a child-object cell, deleting the object row if the cell owned it.

        Returns:
            The oid of the object row that was unlinked, if any

        Raises:
            NotFoundError: If the row or column isn't visible in the table
            InvalidColumnTypeError: If the column is not a child-object column
        """
        with self._write() as conn:
            column = self._writable_cell(conn, table_oid, row_oid, column_oid)
            if column.column_type.mode != ColumnTypeMode.CHILD_OBJECT:
                raise InvalidColumnTypeError(f"Column {column_oid} is not a child-object column")
            previous = self._stored_cells(conn, row_oid).get(column_oid, (None, None))[0]
            conn.execute(
                "DELETE FROM table_cell WHERE row_oid = ? AND column_oid = ?", (row_oid, column_oid)
            )
            if previous is not None:
                self._delete_owned_object(conn, row_oid, previous)

        logger.debug(f"Unset object cell ({row_oid}, {column_oid})")
        return int(previous) if previous is not None and previous.isdigit() else None

    # Lookups shared with other managers

    def is_row_visible(self, table_oid: int, row_oid: int) -> bool:
        """Whether the row exists and can be seen through the table."""
        with self._read() as conn:
            return self._visible_subtype(conn, table_oid, row_oid) is not None

    def visible_row_oids(self, table_oid: int) -> List[int]:
        """Every row visible in the table, whatever its parent, in row order."""
        with self._read() as conn:
            visible = self._bound(conn).tables.get_descendants(table_oid, include_self=True)
            cursor = conn.execute(
                f"""
                SELECT oid FROM table_row
                WHERE subtype_oid IN ({_placeholders(visible)})
                ORDER BY row_ordering
                """,
                tuple(visible),
            )
            return [row["oid"] for row in cursor.fetchall()]

    def child_row_oids(self, table_oid: int, parent_row_oid: int) -> List[int]:
        """Rows of a child table owned by ``parent_row_oid``, in row order."""
        with self._read() as conn:
            visible = self._bound(conn).tables.get_descendants(table_oid, include_self=True)
            cursor = conn.execute(
                f"""
                SELECT oid FROM table_row
                WHERE subtype_oid IN ({_placeholders(visible)}) AND parent_row_oid = ?
                ORDER BY row_ordering
                """,
                (*visible, parent_row_oid),
            )
            return [row["oid"] for row in cursor.fetchall()]

    def stored_cells(self, row_oid: int) -> Dict[int, Tuple[Optional[str], Optional[int]]]:
        """Map of column oid to (text value, blob size) for every stored cell of a row."""
        with self._read() as conn:
            return self._stored_cells(conn, row_oid)

    def collect_owned_rows(self, row_oids: List[int]) -> List[int]:
        """The given rows followed by every row they own, transitively."""
        with self._read() as conn:
            order = list(dict.fromkeys(row_oids))
            seen = set(order)
            i = 0
            while i < len(order):
                cursor = conn.execute(
                    "SELECT oid FROM table_row WHERE parent_row_oid = ? ORDER BY row_ordering",
                    (order[i],),
                )
                for row in cursor.fetchall():
                    if row["oid"] not in seen:
                        seen.add(row["oid"])
                        order.append(row["oid"])
                i += 1
            return order

    def delete_rows(self, row_oids: List[int]) -> None:
        """Delete rows and their cells; owned rows must be included by the caller."""
        with self._write() as conn:
            conn.executemany(
                "DELETE FROM table_row WHERE oid = ?", [(oid,) for oid in reversed(row_oids)]
            )

    def repair_subtypes(self) -> int:
        """Reset rows whose subtype no longer lies under their home table.

        Returns:
            Number of rows reset
        """
        with self._write() as conn:
            tables = self._bound(conn).tables
            cursor = conn.execute(
                "SELECT DISTINCT table_oid, subtype_oid FROM table_row WHERE subtype_oid != table_oid"
            )
            repaired = 0
            for row in cursor.fetchall():
                if row["table_oid"] not in tables.get_lineage(row["subtype_oid"]):
                    result = conn.execute(
                        "UPDATE table_row SET subtype_oid = table_oid WHERE table_oid = ? AND subtype_oid = ?",
                        (row["table_oid"], row["subtype_oid"]),
                    )
                    repaired += result.rowcount
        if repaired:
            logger.info(f"Reset the subtype of {repaired} rows after an inheritance change")
        return repaired

    # Helpers operating on an open connection

    def _visible_subtype(self, conn: DatabaseConnection, table_oid: int, row_oid: int) -> Optional[int]:
        """The row's subtype if the row can be seen through the table, else ``None``."""
        row = conn.execute("SELECT subtype_oid FROM table_row WHERE oid = ?", (row_oid,)).fetchone()
        if row is None:
            return None
        if table_oid not in self._bound(conn).tables.get_lineage(row["subtype_oid"]):
            return None
        return row["subtype_oid"]

    def _require_row_target(self, conn: DatabaseConnection, table_oid: int, parent_row_oid: Optional[int]) -> None:
        if not self._bound(conn).tables.table_exists(table_oid):
            raise NotFoundError(f"Table {table_oid} does not exist")
        if parent_row_oid is not None:
            cursor = conn.execute("SELECT 1 FROM table_row WHERE oid = ?", (parent_row_oid,))
            if cursor.fetchone() is None:
                raise NotFoundError(f"Row {parent_row_oid} does not exist")

    def _insert_row(
        self, conn: DatabaseConnection, table_oid: int, parent_row_oid: Optional[int], ordering: int
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO table_row (table_oid, subtype_oid, parent_row_oid, row_ordering)
            VALUES (?, ?, ?, ?)
            """,
            (table_oid, table_oid, parent_row_oid, ordering),
        )
        return cursor.lastrowid

    def _writable_cell(self, conn: DatabaseConnection, table_oid: int, row_oid: int, column_oid: int) -> Column:
        column = self._bound(conn).columns.get_visible_column(table_oid, column_oid)
        if self._visible_subtype(conn, table_oid, row_oid) is None:
            raise NotFoundError(f"Row {row_oid} does not exist in table {table_oid}")
        return column

    def _stored_cells(self, conn: DatabaseConnection, row_oid: int) -> Dict[int, Tuple[Optional[str], Optional[int]]]:
        cursor = conn.execute(
            "SELECT column_oid, value, blob_size FROM table_cell WHERE row_oid = ?", (row_oid,)
        )
        return {row["column_oid"]: (row["value"], row["blob_size"]) for row in cursor.fetchall()}

    def _store_value(self, conn: DatabaseConnection, row_oid: int, column_oid: int, value: Optional[str]) -> None:
        conn.execute(
            """
            INSERT INTO table_cell (row_oid, column_oid, value) VALUES (?, ?, ?)
            ON CONFLICT (row_oid, column_oid) DO UPDATE
            SET value = excluded.value, blob_value = NULL, blob_size = NULL
            """,
            (row_oid, column_oid, value),
        )

    def _delete_owned_object(self, conn: DatabaseConnection, owner_row_oid: int, value: str) -> None:
        """Delete the object row a cell pointed at, if the cell's row owned it."""
        try:
            obj_row_oid = int(value)
        except ValueError:
            return
        cursor = conn.execute(
            "SELECT 1 FROM table_row WHERE oid = ? AND parent_row_oid = ?", (obj_row_oid, owner_row_oid)
        )
        if cursor.fetchone() is not None:
            rows = self._bound(conn).rows
            rows.delete_rows(rows.collect_owned_rows([obj_row_oid]))

    def _read_blob(self, table_oid: int, row_oid: int, column_oid: int) -> Optional[bytes]:
        with self._read() as conn:
            self._writable_cell(conn, table_oid, row_oid, column_oid)
            row = conn.execute(
                "SELECT blob_value FROM table_cell WHERE row_oid = ? AND column_oid = ?",
                (row_oid, column_oid),
            ).fetchone()
            return bytes(row["blob_value"]) if row and row["blob_value"] is not None else None
