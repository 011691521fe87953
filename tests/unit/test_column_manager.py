"""Tests for ColumnManager."""

import pytest

from notedb.core.errors import NameRequiredError, NotFoundError
from notedb.managers.column import ColumnManager

TEXT = {"mode": "primitive", "primitive": "text"}
INTEGER = {"mode": "primitive", "primitive": "integer"}


class TestColumnManager:
    """Test column management functionality."""

    @pytest.fixture
    def column_manager(self, context):
        """Create a ColumnManager instance."""
        return ColumnManager(context)

    @pytest.fixture
    def table_oid(self, context):
        """Create an empty table."""
        return context.tables.create_table("Monsters")

    def _orderings(self, column_manager, table_oid):
        return [(c.name, c.column_ordering) for c in column_manager.list_columns(table_oid)]

    def test_create_columns_append(self, column_manager, table_oid):
        """Test that columns without an ordering are appended."""
        column_manager.create_column(table_oid, "Name", TEXT)
        column_manager.create_column(table_oid, "HP", INTEGER)

        assert self._orderings(column_manager, table_oid) == [("Name", 0), ("HP", 1)]

    def test_create_column_fields(self, column_manager, table_oid):
        """Test the stored fields of a new column."""
        oid = column_manager.create_column(
            table_oid, " Name ", TEXT, column_style="bold", is_nullable=False, is_unique=True
        )

        column = column_manager.get_column(oid)
        assert column.name == "Name"
        assert column.table_oid == table_oid
        assert column.column_style == "bold"
        assert column.column_width == 100
        assert column.column_type.mode == "primitive"
        assert column.column_type.primitive == "text"
        assert not column.is_nullable
        assert column.is_unique
        assert not column.is_primary_key

    def test_insert_column_shifts_later_columns(self, column_manager, table_oid):
        """Test inserting a column in the middle of a table."""
        for name in ("Name", "HP", "Level"):
            column_manager.create_column(table_oid, name, TEXT)

        column_manager.create_column(table_oid, "Damage", INTEGER, column_ordering=1)

        assert self._orderings(column_manager, table_oid) == [
            ("Name", 0),
            ("Damage", 1),
            ("HP", 2),
            ("Level", 3),
        ]

    def test_ordering_is_clamped(self, column_manager, table_oid):
        """Test that out-of-range orderings stay dense."""
        column_manager.create_column(table_oid, "Name", TEXT)
        column_manager.create_column(table_oid, "Last", TEXT, column_ordering=50)
        column_manager.create_column(table_oid, "First", TEXT, column_ordering=-3)

        assert self._orderings(column_manager, table_oid) == [("First", 0), ("Name", 1), ("Last", 2)]

    def test_reorder_column(self, column_manager, table_oid):
        """Test moving a column to a new position and to the end."""
        oids = [column_manager.create_column(table_oid, name, TEXT) for name in ("A", "B", "C", "D")]

        column_manager.reorder_column(table_oid, oids[3], 3, 0)
        assert [n for n, _ in self._orderings(column_manager, table_oid)] == ["D", "A", "B", "C"]

        column_manager.reorder_column(table_oid, oids[0], 1, None)
        assert self._orderings(column_manager, table_oid) == [("D", 0), ("B", 1), ("C", 2), ("A", 3)]

    def test_reorder_with_stale_old_ordering(self, column_manager, table_oid):
        """Test that the stored position wins over a stale one."""
        oids = [column_manager.create_column(table_oid, name, TEXT) for name in ("A", "B", "C")]

        column_manager.reorder_column(table_oid, oids[0], 2, 1)

        assert [n for n, _ in self._orderings(column_manager, table_oid)] == ["B", "A", "C"]

    def test_delete_column_renumbers(self, column_manager, table_oid):
        """Test that deleting a column keeps orderings dense."""
        oids = [column_manager.create_column(table_oid, name, TEXT) for name in ("A", "B", "C")]

        column_manager.delete_column(table_oid, oids[1])

        assert self._orderings(column_manager, table_oid) == [("A", 0), ("C", 1)]
        with pytest.raises(NotFoundError):
            column_manager.get_column(oids[1])

    def test_delete_column_removes_cells(self, column_manager, table_oid, context):
        """Test that a deleted column's cells are gone."""
        name = column_manager.create_column(table_oid, "Name", TEXT)
        hp = column_manager.create_column(table_oid, "HP", INTEGER)
        row_oid = context.rows.push_row(table_oid)
        context.rows.update_cell_primitive(table_oid, row_oid, name, "Goblin")
        context.rows.update_cell_primitive(table_oid, row_oid, hp, "7")

        column_manager.delete_column(table_oid, hp)

        assert context.rows.stored_cells(row_oid) == {name: ("Goblin", None)}

    def test_blank_column_name(self, column_manager, table_oid):
        """Test that blank column names are rejected."""
        with pytest.raises(NameRequiredError):
            column_manager.create_column(table_oid, "  ", TEXT)

    def test_unknown_table(self, column_manager):
        """Test creating a column on a table that doesn't exist."""
        with pytest.raises(NotFoundError):
            column_manager.create_column(42, "Name", TEXT)
        with pytest.raises(NotFoundError):
            column_manager.list_columns(42)

    def test_inherited_columns_first(self, column_manager, context):
        """Test that master columns precede a table's own columns."""
        items = context.tables.create_table("Items")
        weapons = context.tables.create_table("Weapons", [items])
        column_manager.create_column(weapons, "Damage", INTEGER)
        column_manager.create_column(items, "Name", TEXT)
        column_manager.create_column(items, "Weight", INTEGER)

        assert [c.name for c in column_manager.list_columns(weapons)] == ["Name", "Weight", "Damage"]
        assert [c.name for c in column_manager.list_columns(items)] == ["Name", "Weight"]

    def test_visible_column(self, column_manager, context):
        """Test that a subtype's column is not visible in its master."""
        items = context.tables.create_table("Items")
        weapons = context.tables.create_table("Weapons", [items])
        name = column_manager.create_column(items, "Name", TEXT)
        damage = column_manager.create_column(weapons, "Damage", INTEGER)

        assert column_manager.get_visible_column(weapons, name).name == "Name"
        with pytest.raises(NotFoundError):
            column_manager.get_visible_column(items, damage)

    def test_edit_column(self, column_manager, table_oid, context):
        """Test editing a column in place without converting values."""
        oid = column_manager.create_column(table_oid, "HP", TEXT)
        row_oid = context.rows.push_row(table_oid)
        context.rows.update_cell_primitive(table_oid, row_oid, oid, "lots")

        column_manager.edit_column(table_oid, oid, "Hit Points", INTEGER, is_nullable=False)

        column = column_manager.get_column(oid)
        assert column.name == "Hit Points"
        assert column.column_type.primitive == "integer"
        assert not column.is_nullable
        assert context.rows.stored_cells(row_oid)[oid] == ("lots", None)

    def test_edit_column_width_is_idempotent(self, column_manager, table_oid):
        """Test that repeating a width edit changes nothing."""
        oid = column_manager.create_column(table_oid, "Name", TEXT)

        column_manager.edit_column_width(table_oid, oid, 240)
        column_manager.edit_column_width(table_oid, oid, 240)

        assert column_manager.get_column(oid).column_width == 240

    def test_negative_column_width(self, column_manager, table_oid):
        """Test that a negative width is rejected."""
        oid = column_manager.create_column(table_oid, "Name", TEXT)
        with pytest.raises(ValueError):
            column_manager.edit_column_width(table_oid, oid, -1)

    def test_dropdown_column_creates_list(self, column_manager, table_oid, context):
        """Test that a dropdown column without a list gets its own."""
        oid = column_manager.create_column(table_oid, "Element", {"mode": "single_select_dropdown"})

        column = column_manager.get_column(oid)
        assert column.column_type.list_oid is not None
        dropdown_list = context.dropdowns.get_dropdown_list(column.column_type.list_oid)
        assert dropdown_list.name == "Element"
        assert dropdown_list.values == []

    def test_dropdown_column_keeps_list_on_edit(self, column_manager, table_oid):
        """Test that switching between dropdown kinds keeps the list."""
        oid = column_manager.create_column(table_oid, "Tags", {"mode": "single_select_dropdown"})
        list_oid = column_manager.get_column(oid).column_type.list_oid

        column_manager.edit_column(table_oid, oid, "Tags", {"mode": "multi_select_dropdown"})

        column_type = column_manager.get_column(oid).column_type
        assert column_type.mode == "multi_select_dropdown"
        assert column_type.list_oid == list_oid

    def test_reference_to_unknown_table(self, column_manager, table_oid):
        """Test that a reference to a missing table is rejected."""
        with pytest.raises(NotFoundError):
            column_manager.create_column(table_oid, "Owner", {"mode": "reference", "table_oid": 999})
        assert column_manager.list_columns(table_oid) == []

    def test_child_table_column_creates_owned_table(self, column_manager, table_oid, context):
        """Test that a child-table column owns a hidden table."""
        oid = column_manager.create_column(table_oid, "Attacks", {"mode": "child_table"})

        child_oid = column_manager.get_column(oid).column_type.table_oid
        child = context.tables.get_table_metadata(child_oid)
        assert child.name == "Attacks"
        assert child.parent_table_oid == table_oid
        assert [t.oid for t in context.tables.list_tables()] == [table_oid]

    def test_delete_child_table_column(self, column_manager, table_oid, context):
        """Test that deleting a child-table column deletes its table and rows."""
        oid = column_manager.create_column(table_oid, "Attacks", {"mode": "child_table"})
        child_oid = column_manager.get_column(oid).column_type.table_oid
        parent_row = context.rows.push_row(table_oid)
        child_row = context.rows.push_row(child_oid, parent_row)

        column_manager.delete_column(table_oid, oid)

        assert not context.tables.table_exists(child_oid)
        assert not context.rows.is_row_visible(child_oid, child_row)
        assert context.rows.is_row_visible(table_oid, parent_row)

    def test_child_table_replaced_on_type_change(self, column_manager, table_oid, context):
        """Test that switching a child-table column away deletes its table."""
        oid = column_manager.create_column(table_oid, "Attacks", {"mode": "child_table"})
        first_child = column_manager.get_column(oid).column_type.table_oid
        parent_row = context.rows.push_row(table_oid)
        child_row = context.rows.push_row(first_child, parent_row)

        column_manager.edit_column(table_oid, oid, "Attacks", TEXT)

        assert not context.tables.table_exists(first_child)
        assert not context.rows.is_row_visible(first_child, child_row)

        column_manager.edit_column(table_oid, oid, "Attacks", {"mode": "child_table"})
        second_child = column_manager.get_column(oid).column_type.table_oid
        assert second_child != first_child

        column_manager.delete_column(table_oid, oid)
        assert not context.tables.table_exists(second_child)

    def test_child_table_kept_on_rename(self, column_manager, table_oid, context):
        """Test that editing a child-table column without a type change keeps its table."""
        oid = column_manager.create_column(table_oid, "Attacks", {"mode": "child_table"})
        child_oid = column_manager.get_column(oid).column_type.table_oid
        parent_row = context.rows.push_row(table_oid)
        child_row = context.rows.push_row(child_oid, parent_row)

        column_manager.edit_column(table_oid, oid, "Moves", {"mode": "child_table"})

        assert column_manager.get_column(oid).column_type.table_oid == child_oid
        assert context.rows.child_row_oids(child_oid, parent_row) == [child_row]

    def test_delete_child_object_column(self, column_manager, table_oid, context):
        """Test that deleting a child-object column deletes the object rows it created."""
        stats_type = context.tables.create_table("Stats", is_object_type=True)
        oid = column_manager.create_column(table_oid, "Stats", {"mode": "child_object", "table_oid": stats_type})
        owner = context.rows.push_row(table_oid)
        _, owned = context.rows.set_object_cell(table_oid, owner, oid)
        shared = context.rows.push_row(stats_type)
        linker = context.rows.push_row(table_oid)
        context.rows.set_object_cell(table_oid, linker, oid, obj_row_oid=shared)

        column_manager.delete_column(table_oid, oid)

        assert not context.rows.is_row_visible(stats_type, owned)
        assert context.rows.visible_row_oids(stats_type) == [shared]
        assert context.rows.visible_row_oids(table_oid) == [owner, linker]

    def test_child_object_rows_deleted_on_type_change(self, column_manager, table_oid, context):
        """Test that switching a child-object column away deletes its object rows."""
        stats_type = context.tables.create_table("Stats", is_object_type=True)
        gear_type = context.tables.create_table("Gear", is_object_type=True)
        oid = column_manager.create_column(table_oid, "Stats", {"mode": "child_object", "table_oid": stats_type})
        owner = context.rows.push_row(table_oid)
        _, owned = context.rows.set_object_cell(table_oid, owner, oid)

        column_manager.edit_column(table_oid, oid, "Stats", {"mode": "child_object", "table_oid": stats_type})
        assert context.rows.is_row_visible(stats_type, owned)

        column_manager.edit_column(table_oid, oid, "Gear", {"mode": "child_object", "table_oid": gear_type})

        assert context.rows.visible_row_oids(stats_type) == []
        assert oid not in context.rows.stored_cells(owner)
        assert context.rows.visible_row_oids(gear_type) == []
