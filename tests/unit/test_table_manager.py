"""Tests for TableManager."""

import pytest

from notedb.core.errors import CyclicInheritanceError, NameRequiredError, NotFoundError
from notedb.managers.table import TableManager


class TestTableManager:
    """Test table management functionality."""

    @pytest.fixture
    def table_manager(self, context):
        """Create a TableManager instance."""
        return TableManager(context)

    def test_list_tables_empty(self, table_manager):
        """Test listing tables in empty database."""
        assert table_manager.list_tables() == []

    def test_create_table(self, table_manager):
        """Test creating a table."""
        oid = table_manager.create_table("  Monsters ")

        table = table_manager.get_table_metadata(oid)
        assert table.name == "Monsters"
        assert table.master_table_oids == []
        assert not table.is_object_type
        assert table.parent_table_oid is None

    def test_list_tables_sorted_by_name(self, table_manager):
        """Test that tables are listed case-insensitively by name."""
        table_manager.create_table("beta")
        table_manager.create_table("Alpha")
        table_manager.create_table("Gamma")

        assert [t.name for t in table_manager.list_tables()] == ["Alpha", "beta", "Gamma"]

    def test_blank_name(self, table_manager):
        """Test that blank names are rejected."""
        with pytest.raises(NameRequiredError):
            table_manager.create_table("   ")
        with pytest.raises(NameRequiredError):
            table_manager.create_table("")

    def test_unknown_master(self, table_manager):
        """Test that an unknown master is rejected and nothing is created."""
        with pytest.raises(NotFoundError):
            table_manager.create_table("Weapons", [999])
        assert table_manager.list_tables() == []

    def test_object_types_listed_separately(self, table_manager):
        """Test that object types are kept out of the table list."""
        table_manager.create_table("Notes")
        creature = table_manager.create_table("Creature", is_object_type=True)
        table_manager.create_table("Dragon", [creature], is_object_type=True)

        assert [t.name for t in table_manager.list_tables()] == ["Notes"]
        object_types = table_manager.list_object_types()
        assert [(t.name, t.hierarchy_level) for t in object_types] == [
            ("Creature", 0),
            ("Dragon", 1),
        ]

    def test_reject_cycle(self, table_manager):
        """Test that an edit closing a cycle is rejected."""
        items = table_manager.create_table("Items")
        weapons = table_manager.create_table("Weapons", [items])
        swords = table_manager.create_table("Swords", [weapons])

        with pytest.raises(CyclicInheritanceError):
            table_manager.edit_table_metadata(items, "Items", [weapons])
        with pytest.raises(CyclicInheritanceError):
            table_manager.edit_table_metadata(items, "Items", [swords])
        with pytest.raises(CyclicInheritanceError):
            table_manager.edit_table_metadata(items, "Items", [items])

        # Nothing changed
        assert table_manager.get_masters(items) == []

    def test_edit_table_metadata(self, table_manager):
        """Test renaming a table and replacing its masters."""
        items = table_manager.create_table("Items")
        gear = table_manager.create_table("Gear")
        weapons = table_manager.create_table("Weapons", [items])

        table_manager.edit_table_metadata(weapons, "Arms", [gear, items])

        table = table_manager.get_table_metadata(weapons)
        assert table.name == "Arms"
        assert table.master_table_oids == [gear, items]

    def test_edit_unknown_table(self, table_manager):
        """Test editing a table that doesn't exist."""
        with pytest.raises(NotFoundError):
            table_manager.edit_table_metadata(42, "Ghost", [])

    def test_subtype_list(self, table_manager):
        """Test listing transitive subtypes depth first."""
        items = table_manager.create_table("Items")
        weapons = table_manager.create_table("Weapons", [items])
        swords = table_manager.create_table("Swords", [weapons])
        armor = table_manager.create_table("Armor", [items])

        subtypes = [(s.oid, s.hierarchy_level) for s in table_manager.get_subtype_list(items)]
        assert subtypes == [(armor, 1), (weapons, 1), (swords, 2)]

    def test_subtype_list_lists_each_table_once(self, table_manager):
        """Test that a diamond subtype appears once."""
        base = table_manager.create_table("Base")
        left = table_manager.create_table("Left", [base])
        right = table_manager.create_table("Right", [base])
        bottom = table_manager.create_table("Bottom", [left, right])

        oids = [s.oid for s in table_manager.get_subtype_list(base)]
        assert sorted(oids) == sorted([left, right, bottom])
        assert oids.count(bottom) == 1

    def test_subtype_list_unknown_table(self, table_manager):
        """Test that the subtype stream raises for an unknown table."""
        with pytest.raises(NotFoundError):
            list(table_manager.get_subtype_list(42))

    def test_master_list_options(self, table_manager):
        """Test that exactly the table and its subtypes are disabled."""
        items = table_manager.create_table("Items")
        weapons = table_manager.create_table("Weapons", [items])
        swords = table_manager.create_table("Swords", [weapons])
        notes = table_manager.create_table("Notes")

        options = {
            o.oid: o.is_disabled
            for o in table_manager.get_master_list_options(weapons, allow_inheritance_from_tables=True)
        }
        assert options == {items: False, weapons: True, swords: True, notes: False}

    def test_master_list_options_object_types_only(self, table_manager):
        """Test that plain tables are excluded unless allowed."""
        table_manager.create_table("Notes")
        creature = table_manager.create_table("Creature", is_object_type=True)

        options = list(table_manager.get_master_list_options(None))
        assert [(o.oid, o.is_disabled) for o in options] == [(creature, False)]

    def test_lineage(self, table_manager):
        """Test that lineage lists the root master first."""
        items = table_manager.create_table("Items")
        weapons = table_manager.create_table("Weapons", [items])
        swords = table_manager.create_table("Swords", [weapons])

        assert table_manager.get_lineage(swords) == [items, weapons, swords]
        assert table_manager.get_descendants(items) == [weapons, swords]
        assert table_manager.get_descendants(items, include_self=True) == [items, weapons, swords]

    def test_delete_table_detaches_subtypes(self, table_manager, context):
        """Test that deleting a master keeps its subtypes and their rows."""
        items = table_manager.create_table("Items")
        weapons = table_manager.create_table("Weapons", [items])
        context.columns.create_column(weapons, "Damage", {"mode": "primitive", "primitive": "integer"})
        weapon_row = context.rows.push_row(weapons)
        item_row = context.rows.push_row(items)

        table_manager.delete_table(items)

        assert not table_manager.table_exists(items)
        assert table_manager.get_masters(weapons) == []
        assert [c.name for c in context.columns.list_columns(weapons)] == ["Damage"]
        assert context.rows.is_row_visible(weapons, weapon_row)
        assert not context.rows.is_row_visible(items, item_row)
        assert context.rows.visible_row_oids(weapons) == [weapon_row]

    def test_delete_unknown_table(self, table_manager):
        """Test deleting a table that doesn't exist."""
        with pytest.raises(NotFoundError):
            table_manager.delete_table(42)

    def test_master_change_resets_subtypes(self, table_manager, context):
        """Test that rows retyped into a detached subtype return to their home table."""
        items = table_manager.create_table("Items")
        weapons = table_manager.create_table("Weapons", [items])
        row_oid = context.rows.push_row(items)
        context.rows.retype_row(items, row_oid, weapons)

        table_manager.edit_table_metadata(weapons, "Weapons", [])

        marker = list(context.rows.get_table_row(items, row_oid))[0]
        assert marker.row_exists
        assert marker.table_oid == items
