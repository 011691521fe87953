"""Tests for RowManager."""

import base64

import pytest

from notedb.core.connection import DatabaseConnection
from notedb.core.errors import InvalidColumnTypeError, InvalidSubtypeError, NotFoundError
from notedb.managers.row import RowManager
from notedb.models import CellValue, RowExists, RowStart

TEXT = {"mode": "primitive", "primitive": "text"}
INTEGER = {"mode": "primitive", "primitive": "integer"}
FILE = {"mode": "primitive", "primitive": "file"}


def _rows(entries):
    """Group a table data stream into {row_oid: {column_name: cell}}."""
    rows = {}
    current = None
    for entry in entries:
        if isinstance(entry, RowStart):
            current = rows.setdefault(entry.row_oid, {})
        else:
            assert isinstance(entry, CellValue)
            current[entry.column_name] = entry
    return rows


class TestRowManager:
    """Test row and cell functionality."""

    @pytest.fixture
    def row_manager(self, context):
        """Create a RowManager instance."""
        return RowManager(context)

    @pytest.fixture
    def monsters(self, context):
        """Create a Monsters table with Name and HP columns."""
        table_oid = context.tables.create_table("Monsters")
        name = context.columns.create_column(table_oid, "Name", TEXT, is_unique=True, is_nullable=False)
        hp = context.columns.create_column(table_oid, "HP", INTEGER)
        return table_oid, name, hp

    def _row_order(self, row_manager, table_oid):
        return [e.row_oid for e in row_manager.get_table_data(table_oid) if isinstance(e, RowStart)]

    def test_push_rows(self, row_manager, monsters):
        """Test appending rows."""
        table_oid, _, _ = monsters
        first = row_manager.push_row(table_oid)
        second = row_manager.push_row(table_oid)

        assert self._row_order(row_manager, table_oid) == [first, second]

    def test_push_row_unknown_table(self, row_manager):
        """Test pushing a row into a table that doesn't exist."""
        with pytest.raises(NotFoundError):
            row_manager.push_row(42)

    def test_insert_row(self, row_manager, monsters):
        """Test inserting a row before another one."""
        table_oid, _, _ = monsters
        first = row_manager.push_row(table_oid)
        second = row_manager.push_row(table_oid)

        inserted = row_manager.insert_row(table_oid, None, second)

        assert self._row_order(row_manager, table_oid) == [first, inserted, second]

    def test_insert_row_before_unknown_row(self, row_manager, monsters):
        """Test inserting before a row that doesn't exist."""
        table_oid, _, _ = monsters
        with pytest.raises(NotFoundError):
            row_manager.insert_row(table_oid, None, 999)

    def test_insert_row_before_row_of_other_table(self, row_manager, monsters, context):
        """Test that the anchor row must be visible in the table."""
        table_oid, _, _ = monsters
        notes = context.tables.create_table("Notes")
        goblin = row_manager.push_row(table_oid)
        note = row_manager.push_row(notes)

        with pytest.raises(NotFoundError):
            row_manager.insert_row(table_oid, None, note)

        assert self._row_order(row_manager, table_oid) == [goblin]
        assert self._row_order(row_manager, notes) == [note]

    def test_insert_row_under_other_parent(self, row_manager, monsters, context):
        """Test that the anchor row must share the new row's parent."""
        table_oid, _, _ = monsters
        column = context.columns.create_column(table_oid, "Attacks", {"mode": "child_table"})
        child_table = context.columns.get_column(column).column_type.table_oid
        first = row_manager.push_row(table_oid)
        second = row_manager.push_row(table_oid)
        bite = row_manager.push_row(child_table, first)

        with pytest.raises(NotFoundError):
            row_manager.insert_row(child_table, second, bite)
        with pytest.raises(NotFoundError):
            row_manager.insert_row(child_table, None, bite)

        claw = row_manager.insert_row(child_table, first, bite)
        assert row_manager.child_row_oids(child_table, first) == [claw, bite]
        assert row_manager.child_row_oids(child_table, second) == []

    def test_table_data_stream(self, row_manager, monsters):
        """Test the shape of a table data stream."""
        table_oid, name, hp = monsters
        row_oid = row_manager.push_row(table_oid)
        row_manager.update_cell_primitive(table_oid, row_oid, name, "Goblin")

        entries = list(row_manager.get_table_data(table_oid, None, 1, 10))

        assert entries[0] == RowStart(row_oid=row_oid, row_index=1)
        assert [(e.column_name, e.true_value) for e in entries[1:]] == [("Name", "Goblin"), ("HP", None)]
        assert all(e.failed_validations == [] for e in entries[1:])
        assert entries[1].column_oid == name
        assert entries[2].column_ordering == 1

    def test_paging(self, row_manager, monsters):
        """Test 1-based pages and row indexes."""
        table_oid, _, _ = monsters
        oids = [row_manager.push_row(table_oid) for _ in range(5)]

        page = [e for e in row_manager.get_table_data(table_oid, None, 2, 2) if isinstance(e, RowStart)]

        assert [(e.row_oid, e.row_index) for e in page] == [(oids[2], 3), (oids[3], 4)]
        assert list(row_manager.get_table_data(table_oid, None, 4, 2)) == []

    def test_invalid_page_arguments(self, row_manager, monsters):
        """Test that page arguments are checked before streaming."""
        table_oid, _, _ = monsters
        with pytest.raises(ValueError):
            row_manager.get_table_data(table_oid, None, 0, 10)
        with pytest.raises(ValueError):
            row_manager.get_table_data(table_oid, None, 1, 0)

    def test_stream_closed_early(self, row_manager, monsters, monkeypatch):
        """Test that closing a stream before the end releases its connection."""
        table_oid, name, _ = monsters
        for _ in range(3):
            row_manager.push_row(table_oid)

        closed = []
        original_close = DatabaseConnection.close

        def close(self):
            closed.append(self.path)
            original_close(self)

        monkeypatch.setattr(DatabaseConnection, "close", close)

        stream = row_manager.get_table_data(table_oid)
        assert isinstance(next(stream), RowStart)
        assert closed == []

        stream.close()
        assert len(closed) == 1

        row_oid = row_manager.push_row(table_oid)
        row_manager.update_cell_primitive(table_oid, row_oid, name, "Goblin")
        assert _rows(row_manager.get_table_data(table_oid))[row_oid]["Name"].true_value == "Goblin"

    def test_stream_unaffected_by_column_changes(self, row_manager, monsters, context):
        """Test that a stream keeps the columns it started with."""
        table_oid, name, hp = monsters
        oids = [row_manager.push_row(table_oid) for _ in range(3)]
        for oid in oids:
            row_manager.update_cell_primitive(table_oid, oid, hp, "7")

        stream = row_manager.get_table_data(table_oid)
        entries = [next(stream)]
        context.columns.create_column(table_oid, "Level", INTEGER)
        context.columns.delete_column(table_oid, hp)
        entries.extend(stream)

        streamed = _rows(entries)
        assert list(streamed) == oids
        assert all(list(cells) == ["Name", "HP"] for cells in streamed.values())
        assert all(cells["HP"].true_value == "7" for cells in streamed.values())

        fresh = _rows(row_manager.get_table_data(table_oid))
        assert all(list(cells) == ["Name", "Level"] for cells in fresh.values())

    def test_cell_round_trip(self, row_manager, monsters):
        """Test that a stored value reads back unchanged."""
        table_oid, name, _ = monsters
        row_oid = row_manager.push_row(table_oid)

        for value in ("Goblin", "", "  spaced  ", None):
            row_manager.update_cell_primitive(table_oid, row_oid, name, value)
            cells = _rows(row_manager.get_table_data(table_oid))[row_oid]
            assert cells["Name"].true_value == value

    def test_update_returns_previous_value(self, row_manager, monsters):
        """Test the result of a cell update."""
        table_oid, name, hp = monsters
        row_oid = row_manager.push_row(table_oid)

        first = row_manager.update_cell_primitive(table_oid, row_oid, name, "Goblin")
        second = row_manager.update_cell_primitive(table_oid, row_oid, name, "Orc")
        invalid = row_manager.update_cell_primitive(table_oid, row_oid, hp, "many")

        assert first.previous_value is None
        assert second.previous_value == "Goblin"
        assert [f.description for f in invalid.failed_validations] == ["value is not a valid integer."]

    def test_update_unknown_row(self, row_manager, monsters):
        """Test updating a cell of a row that doesn't exist."""
        table_oid, name, _ = monsters
        with pytest.raises(NotFoundError):
            row_manager.update_cell_primitive(table_oid, 999, name, "Goblin")

    def test_get_table_row(self, row_manager, monsters):
        """Test reading a single row."""
        table_oid, name, _ = monsters
        row_oid = row_manager.push_row(table_oid)
        row_manager.update_cell_primitive(table_oid, row_oid, name, "Goblin")

        entries = list(row_manager.get_table_row(table_oid, row_oid))

        assert entries[0] == RowExists(row_exists=True, table_oid=table_oid)
        assert [e.display_value for e in entries[1:]] == ["Goblin", None]

    def test_get_missing_row(self, row_manager, monsters):
        """Test that a missing row yields only a negative marker."""
        table_oid, _, _ = monsters

        entries = list(row_manager.get_table_row(table_oid, 999))

        assert entries == [RowExists(row_exists=False, table_oid=table_oid)]

    def test_delete_row(self, row_manager, monsters):
        """Test deleting a row with its cells."""
        table_oid, name, _ = monsters
        keep = row_manager.push_row(table_oid)
        gone = row_manager.push_row(table_oid)
        row_manager.update_cell_primitive(table_oid, gone, name, "Goblin")

        row_manager.delete_row(table_oid, gone)

        assert self._row_order(row_manager, table_oid) == [keep]
        assert row_manager.stored_cells(gone) == {}
        with pytest.raises(NotFoundError):
            row_manager.delete_row(table_oid, gone)

    def test_delete_row_cascades_to_child_rows(self, row_manager, context, monsters):
        """Test that child-table rows go with their owner."""
        table_oid, _, _ = monsters
        column = context.columns.create_column(table_oid, "Attacks", {"mode": "child_table"})
        child_table = context.columns.get_column(column).column_type.table_oid
        owner = row_manager.push_row(table_oid)
        other = row_manager.push_row(table_oid)
        owned = [row_manager.push_row(child_table, owner) for _ in range(2)]
        kept = row_manager.push_row(child_table, other)

        row_manager.delete_row(table_oid, owner)

        assert not any(row_manager.is_row_visible(child_table, oid) for oid in owned)
        assert row_manager.child_row_oids(child_table, other) == [kept]

    def test_child_table_rows_scoped_to_parent(self, row_manager, context, monsters):
        """Test that a child table is read one parent row at a time."""
        table_oid, _, _ = monsters
        column = context.columns.create_column(table_oid, "Attacks", {"mode": "child_table"})
        child_table = context.columns.get_column(column).column_type.table_oid
        first = row_manager.push_row(table_oid)
        second = row_manager.push_row(table_oid)
        bite = row_manager.push_row(child_table, first)
        claw = row_manager.push_row(child_table, second)

        assert list(_rows(row_manager.get_table_data(child_table, first))) == [bite]
        assert list(_rows(row_manager.get_table_data(child_table, second))) == [claw]
        assert list(_rows(row_manager.get_table_data(child_table, None))) == []

    def test_text_update_rejected_for_file_column(self, row_manager, monsters, context):
        """Test that file and child-table cells don't take text values."""
        table_oid, _, _ = monsters
        portrait = context.columns.create_column(table_oid, "Portrait", FILE)
        attacks = context.columns.create_column(table_oid, "Attacks", {"mode": "child_table"})
        row_oid = row_manager.push_row(table_oid)

        with pytest.raises(InvalidColumnTypeError):
            row_manager.update_cell_primitive(table_oid, row_oid, portrait, "picture")
        with pytest.raises(InvalidColumnTypeError):
            row_manager.update_cell_primitive(table_oid, row_oid, attacks, "[]")

    def test_text_update_rejected_for_child_object_column(self, row_manager, monsters, context):
        """Test that object links can only change through the object cell operations."""
        table_oid, _, _ = monsters
        stats_type = context.tables.create_table("Stats", is_object_type=True)
        stats = context.columns.create_column(table_oid, "Stats", {"mode": "child_object", "table_oid": stats_type})
        row_oid = row_manager.push_row(table_oid)
        _, obj_row = row_manager.set_object_cell(table_oid, row_oid, stats)
        other = row_manager.push_row(stats_type)

        with pytest.raises(InvalidColumnTypeError):
            row_manager.update_cell_primitive(table_oid, row_oid, stats, str(other))

        assert row_manager.stored_cells(row_oid)[stats] == (str(obj_row), None)
        assert row_manager.is_row_visible(stats_type, obj_row)

    def test_blob_cell(self, row_manager, monsters, context, temp_dir):
        """Test storing and reading back a file."""
        table_oid, name, _ = monsters
        portrait = context.columns.create_column(table_oid, "Portrait", FILE)
        row_oid = row_manager.push_row(table_oid)
        source = temp_dir / "goblin.png"
        source.write_bytes(b"\x89PNG goblin")

        row_manager.update_cell_blob(table_oid, row_oid, portrait, source)

        assert row_manager.get_blob_value(table_oid, row_oid, portrait) == base64.b64encode(
            b"\x89PNG goblin"
        ).decode("ascii")
        cells = _rows(row_manager.get_table_data(table_oid))[row_oid]
        assert cells["Portrait"].true_value is None
        assert cells["Portrait"].display_value == "11 B"

        target = row_manager.download_blob_value(table_oid, row_oid, portrait, temp_dir / "copy.png")
        assert target.read_bytes() == b"\x89PNG goblin"

        with pytest.raises(InvalidColumnTypeError):
            row_manager.update_cell_blob(table_oid, row_oid, name, source)

    def test_empty_blob_cell(self, row_manager, monsters, context, temp_dir):
        """Test reading a file cell that holds nothing."""
        table_oid, _, _ = monsters
        portrait = context.columns.create_column(table_oid, "Portrait", FILE)
        row_oid = row_manager.push_row(table_oid)

        assert row_manager.get_blob_value(table_oid, row_oid, portrait) is None
        with pytest.raises(NotFoundError):
            row_manager.download_blob_value(table_oid, row_oid, portrait, temp_dir / "none")


class TestRetype:
    """Test retyping rows between a table and its subtypes."""

    @pytest.fixture
    def items(self, context):
        """Create Items with a Weapons subtype, each with one column."""
        items = context.tables.create_table("Items")
        weapons = context.tables.create_table("Weapons", [items])
        name = context.columns.create_column(items, "Name", TEXT)
        damage = context.columns.create_column(weapons, "Damage", INTEGER)
        return items, weapons, name, damage

    def test_retype_shows_subtype_columns(self, context, items):
        """Test that a retyped row is visible in the subtype."""
        items_oid, weapons, name, damage = items
        row_oid = context.rows.push_row(items_oid)

        previous = context.rows.retype_row(items_oid, row_oid, weapons)

        assert previous == items_oid
        entries = list(context.rows.get_object_data(items_oid, row_oid))
        assert entries[0] == RowExists(row_exists=True, table_oid=weapons)
        assert [e.column_name for e in entries[1:]] == ["Name", "Damage"]
        assert context.rows.visible_row_oids(weapons) == [row_oid]
        assert context.rows.visible_row_oids(items_oid) == [row_oid]

    def test_retype_hides_and_restores_cells(self, context, items):
        """Test that retyping back to the master keeps hidden cells."""
        items_oid, weapons, name, damage = items
        row_oid = context.rows.push_row(items_oid)
        context.rows.retype_row(items_oid, row_oid, weapons)
        context.rows.update_cell_primitive(weapons, row_oid, damage, "12")

        context.rows.retype_row(items_oid, row_oid, items_oid)
        assert not context.rows.is_row_visible(weapons, row_oid)
        with pytest.raises(NotFoundError):
            context.rows.update_cell_primitive(weapons, row_oid, damage, "13")

        context.rows.retype_row(items_oid, row_oid, weapons)
        cells = _rows(context.rows.get_table_data(weapons))[row_oid]
        assert cells["Damage"].true_value == "12"

    def test_retype_to_unrelated_table(self, context, items):
        """Test that only the base type and its subtypes are allowed."""
        items_oid, _, _, _ = items
        notes = context.tables.create_table("Notes")
        row_oid = context.rows.push_row(items_oid)

        with pytest.raises(InvalidSubtypeError):
            context.rows.retype_row(items_oid, row_oid, notes)

    def test_retype_above_home_table(self, context, items):
        """Test that a row can't be retyped into a master of its home table."""
        items_oid, weapons, _, _ = items
        row_oid = context.rows.push_row(weapons)

        with pytest.raises(InvalidSubtypeError):
            context.rows.retype_row(items_oid, row_oid, items_oid)
