"""Table and inheritance management for NoteDB."""

import logging
from typing import Dict, Iterator, List, Optional, Set

from notedb.core.connection import DatabaseConnection
from notedb.core.errors import CyclicInheritanceError, NotFoundError
from notedb.managers.base import BaseManager
from notedb.models import BasicMetadata, HierarchyMetadata, MasterListOption, Table
from notedb.utils.name_validator import validate_name

logger = logging.getLogger(__name__)


class TableManager(BaseManager):
    """Manages tables, object types and the master/subtype graph.

    The master graph is stored as (inheritor, master) edges. A table sees the
    columns of every transitive master, and a row homed in a subtype is
    visible in each of the subtype's transitive masters.
    """

    def list_tables(self) -> List[BasicMetadata]:
        """List top-level tables (not object types, not child tables) sorted by name."""
        with self._read() as conn:
            cursor = conn.execute(
                """
                SELECT oid, name FROM metadata_table
                WHERE is_object_type = 0 AND parent_table_oid IS NULL
                ORDER BY name COLLATE NOCASE, oid
                """
            )
            return [BasicMetadata(oid=row["oid"], name=row["name"]) for row in cursor.fetchall()]

    def list_object_types(self) -> List[HierarchyMetadata]:
        """List object types in inheritance-tree order."""
        with self._read() as conn:
            candidates = self._candidates(conn, include_tables=False)
            return [
                HierarchyMetadata(oid=oid, name=candidates[oid], hierarchy_level=level)
                for oid, level in self._tree_order(conn, candidates)
            ]

    def table_exists(self, table_oid: int) -> bool:
        """Check if a table exists."""
        with self._read() as conn:
            cursor = conn.execute("SELECT 1 FROM metadata_table WHERE oid = ?", (table_oid,))
            return cursor.fetchone() is not None

    def get_table_metadata(self, table_oid: int) -> Table:
        """Get a table with its direct master list.

        Raises:
            NotFoundError: If the table doesn't exist
        """
        with self._read() as conn:
            row = conn.execute(
                "SELECT oid, name, is_object_type, parent_table_oid FROM metadata_table WHERE oid = ?",
                (table_oid,),
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Table {table_oid} does not exist")
            return Table(
                oid=row["oid"],
                name=row["name"],
                is_object_type=bool(row["is_object_type"]),
                parent_table_oid=row["parent_table_oid"],
                master_table_oids=self._masters(conn, table_oid),
            )

    def create_table(
        self,
        name: str,
        master_table_oids: Optional[List[int]] = None,
        is_object_type: bool = False,
        parent_table_oid: Optional[int] = None,
    ) -> int:
        """Create a new table or object type.

        Args:
            name: Display name of the table
            master_table_oids: Tables to inherit columns from
            is_object_type: Whether this is an object type
            parent_table_oid: Owning table when the table backs a child-table column

        Returns:
            The new table's oid

        Raises:
            NameRequiredError: If the name is blank
            NotFoundError: If a master table doesn't exist
            CyclicInheritanceError: If the master list would create a cycle
        """
        name = validate_name(name, "table")
        masters = self._dedupe(master_table_oids or [])

        with self._write() as conn:
            for master_oid in masters:
                self._require_table(conn, master_oid)
            if parent_table_oid is not None:
                self._require_table(conn, parent_table_oid)

            cursor = conn.execute(
                "INSERT INTO metadata_table (name, is_object_type, parent_table_oid) VALUES (?, ?, ?)",
                (name, int(is_object_type), parent_table_oid),
            )
            table_oid = cursor.lastrowid
            # A fresh table has no subtypes, so only a self reference can close a cycle
            self._check_masters(conn, table_oid, masters)
            self._write_masters(conn, table_oid, masters)

        kind = "object type" if is_object_type else "table"
        logger.info(f"Created {kind} '{name}' ({table_oid}) with masters {masters}")
        return table_oid

    def edit_table_metadata(self, table_oid: int, name: str, master_table_oids: Optional[List[int]] = None) -> None:
        """Rename a table and replace its master list.

        Rows whose subtype no longer lies under their home table are reset
        to the home table.

        Raises:
            NameRequiredError: If the name is blank
            NotFoundError: If the table or a master table doesn't exist
            CyclicInheritanceError: If the master list would create a cycle
        """
        name = validate_name(name, "table")
        masters = self._dedupe(master_table_oids or [])

        with self._write() as conn:
            self._require_table(conn, table_oid)
            for master_oid in masters:
                self._require_table(conn, master_oid)
            self._check_masters(conn, table_oid, masters)

            conn.execute("UPDATE metadata_table SET name = ? WHERE oid = ?", (name, table_oid))
            if masters != self._masters(conn, table_oid):
                conn.execute(
                    "DELETE FROM metadata_table_inheritance WHERE inheritor_table_oid = ?",
                    (table_oid,),
                )
                self._write_masters(conn, table_oid, masters)
                self._bound(conn).rows.repair_subtypes()

        logger.info(f"Edited table {table_oid}: name '{name}', masters {masters}")

    def delete_table(self, table_oid: int) -> None:
        """Delete a table with its columns, rows and owned child tables.

        The affected set is computed in full before anything is deleted.
        Subtypes lose this table from their master list but keep their own
        columns and rows.

        Raises:
            NotFoundError: If the table doesn't exist
        """
        with self._write() as conn:
            self._require_table(conn, table_oid)

            # Phase 1: collect everything the delete reaches
            table_oids = self._owned_tables(conn, table_oid)
            rows = self._bound(conn).rows
            homed_rows = []
            for oid in table_oids:
                cursor = conn.execute("SELECT oid FROM table_row WHERE table_oid = ?", (oid,))
                homed_rows.extend(r["oid"] for r in cursor.fetchall())
            row_oids = rows.collect_owned_rows(homed_rows)
            detached = [
                oid for oid in self._inheritors(conn, table_oid) if oid not in table_oids
            ]

            # Phase 2: apply
            rows.delete_rows(row_oids)
            conn.executemany(
                "DELETE FROM metadata_table_inheritance WHERE inheritor_table_oid = ? OR master_table_oid = ?",
                [(oid, oid) for oid in table_oids],
            )
            rows.repair_subtypes()
            conn.executemany(
                "DELETE FROM metadata_table_column WHERE table_oid = ?",
                [(oid,) for oid in table_oids],
            )
            # Owned child tables go first so the parent reference never dangles
            conn.executemany(
                "DELETE FROM metadata_table WHERE oid = ?",
                [(oid,) for oid in reversed(table_oids)],
            )

        logger.info(
            f"Deleted table {table_oid} with {len(table_oids) - 1} child tables "
            f"and {len(row_oids)} rows; detached subtypes {detached}"
        )

    def get_subtype_list(self, table_oid: int) -> Iterator[HierarchyMetadata]:
        """Stream every transitive subtype of a table, depth first.

        Direct subtypes have ``hierarchy_level`` 1. A subtype reachable
        through several paths is listed once, at its first occurrence.

        Raises:
            NotFoundError: If the table doesn't exist
        """
        with self._read() as conn:
            self._require_table(conn, table_oid)
            seen: Set[int] = {table_oid}
            stack = [(oid, name, 1) for oid, name in reversed(self._inheritors_named(conn, table_oid))]
            while stack:
                oid, name, level = stack.pop()
                if oid in seen:
                    continue
                seen.add(oid)
                yield HierarchyMetadata(oid=oid, name=name, hierarchy_level=level)
                stack.extend(
                    (child_oid, child_name, level + 1)
                    for child_oid, child_name in reversed(self._inheritors_named(conn, oid))
                )

    def get_master_list_options(
        self, table_oid: Optional[int] = None, allow_inheritance_from_tables: bool = False
    ) -> Iterator[MasterListOption]:
        """Stream the candidate masters for a table in inheritance-tree order.

        Candidates are the object types, plus the top-level tables when
        ``allow_inheritance_from_tables`` is set. A candidate is disabled when
        it is the table itself or one of its transitive subtypes, since
        choosing it would close a cycle.

        Raises:
            NotFoundError: If ``table_oid`` is given and doesn't exist
        """
        with self._read() as conn:
            disabled: Set[int] = set()
            if table_oid is not None:
                self._require_table(conn, table_oid)
                disabled = {table_oid, *self._descendants(conn, table_oid)}

            candidates = self._candidates(conn, include_tables=allow_inheritance_from_tables)
            for oid, level in self._tree_order(conn, candidates):
                yield MasterListOption(
                    oid=oid,
                    name=candidates[oid],
                    hierarchy_level=level,
                    is_disabled=oid in disabled,
                )

    def get_masters(self, table_oid: int) -> List[int]:
        """Direct masters of a table, in declared order."""
        with self._read() as conn:
            return self._masters(conn, table_oid)

    def get_lineage(self, table_oid: int) -> List[int]:
        """The table's transitive masters, root first, followed by the table itself."""
        with self._read() as conn:
            return self._lineage(conn, table_oid)

    def get_descendants(self, table_oid: int, include_self: bool = False) -> List[int]:
        """Transitive subtypes of a table in depth-first order."""
        with self._read() as conn:
            descendants = self._descendants(conn, table_oid)
            return [table_oid, *descendants] if include_self else descendants

    # Graph helpers operating on an open connection

    def _require_table(self, conn: DatabaseConnection, table_oid: int) -> None:
        cursor = conn.execute("SELECT 1 FROM metadata_table WHERE oid = ?", (table_oid,))
        if cursor.fetchone() is None:
            raise NotFoundError(f"Table {table_oid} does not exist")

    @staticmethod
    def _dedupe(oids: List[int]) -> List[int]:
        return list(dict.fromkeys(oids))

    def _masters(self, conn: DatabaseConnection, table_oid: int) -> List[int]:
        cursor = conn.execute(
            """
            SELECT master_table_oid FROM metadata_table_inheritance
            WHERE inheritor_table_oid = ?
            ORDER BY master_ordering
            """,
            (table_oid,),
        )
        return [row["master_table_oid"] for row in cursor.fetchall()]

    def _inheritors(self, conn: DatabaseConnection, table_oid: int) -> List[int]:
        return [oid for oid, _ in self._inheritors_named(conn, table_oid)]

    def _inheritors_named(self, conn: DatabaseConnection, table_oid: int) -> List[tuple]:
        cursor = conn.execute(
            """
            SELECT t.oid, t.name FROM metadata_table_inheritance i
            JOIN metadata_table t ON t.oid = i.inheritor_table_oid
            WHERE i.master_table_oid = ?
            ORDER BY t.name COLLATE NOCASE, t.oid
            """,
            (table_oid,),
        )
        return [(row["oid"], row["name"]) for row in cursor.fetchall()]

    def _descendants(self, conn: DatabaseConnection, table_oid: int) -> List[int]:
        """Depth-first walk down the inheritor edges; each table visited once."""
        seen: Set[int] = {table_oid}
        order: List[int] = []
        stack = list(reversed(self._inheritors(conn, table_oid)))
        while stack:
            oid = stack.pop()
            if oid in seen:
                continue
            seen.add(oid)
            order.append(oid)
            stack.extend(reversed(self._inheritors(conn, oid)))
        return order

    def _lineage(self, conn: DatabaseConnection, table_oid: int) -> List[int]:
        """Post-order walk up the master edges, so every master precedes its inheritors."""
        order: List[int] = []
        seen: Set[int] = set()

        def visit(oid: int) -> None:
            if oid in seen:
                return
            seen.add(oid)
            for master_oid in self._masters(conn, oid):
                visit(master_oid)
            order.append(oid)

        visit(table_oid)
        return order

    def _check_masters(self, conn: DatabaseConnection, table_oid: int, masters: List[int]) -> None:
        if not masters:
            return
        forbidden = {table_oid, *self._descendants(conn, table_oid)}
        for master_oid in masters:
            if master_oid in forbidden:
                raise CyclicInheritanceError(
                    f"Table {master_oid} cannot be a master of table {table_oid}: "
                    f"it would make the table inherit from itself"
                )

    def _write_masters(self, conn: DatabaseConnection, table_oid: int, masters: List[int]) -> None:
        conn.executemany(
            """
            INSERT INTO metadata_table_inheritance (inheritor_table_oid, master_table_oid, master_ordering)
            VALUES (?, ?, ?)
            """,
            [(table_oid, master_oid, i) for i, master_oid in enumerate(masters)],
        )

    def _owned_tables(self, conn: DatabaseConnection, table_oid: int) -> List[int]:
        """The table followed by every child table it owns, transitively."""
        order = [table_oid]
        i = 0
        while i < len(order):
            cursor = conn.execute(
                "SELECT oid FROM metadata_table WHERE parent_table_oid = ? ORDER BY oid",
                (order[i],),
            )
            order.extend(row["oid"] for row in cursor.fetchall() if row["oid"] not in order)
            i += 1
        return order

    def _candidates(self, conn: DatabaseConnection, include_tables: bool) -> Dict[int, str]:
        sql = "SELECT oid, name FROM metadata_table WHERE parent_table_oid IS NULL"
        if not include_tables:
            sql += " AND is_object_type = 1"
        return {row["oid"]: row["name"] for row in conn.execute(sql).fetchall()}

    def _tree_order(self, conn: DatabaseConnection, candidates: Dict[int, str]) -> List[tuple]:
        """(oid, level) pairs: roots by name, then each table's inheritors beneath it."""
        roots = [
            oid for oid in candidates
            if not any(m in candidates for m in self._masters(conn, oid))
        ]
        roots.sort(key=lambda oid: (candidates[oid].lower(), oid))

        result: List[tuple] = []
        seen: Set[int] = set()
        stack = [(oid, 0) for oid in reversed(roots)]
        while stack:
            oid, level = stack.pop()
            if oid in seen:
                continue
            seen.add(oid)
            result.append((oid, level))
            stack.extend(
                (child_oid, level + 1)
                for child_oid in reversed(self._inheritors(conn, oid))
                if child_oid in candidates
            )
        return result
