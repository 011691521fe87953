"""Tests for NoteDB models."""

import pytest
from pydantic import ValidationError

from notedb.models import (
    BasicMetadata,
    CellValue,
    ChildTableColumnType,
    Column,
    MultiSelectDropdownColumnType,
    Notification,
    NotificationKind,
    PrimitiveColumnType,
    ReferenceColumnType,
    SingleSelectDropdownColumnType,
    parse_column_type,
)
from notedb.models.column_type import (
    column_type_from_storage,
    column_type_to_storage,
    is_blob_type,
)


class TestColumnType:
    """Test the column type variants."""

    def test_parse_primitive(self):
        """Test parsing a primitive column type."""
        column_type = parse_column_type({"mode": "primitive", "primitive": "text"})
        assert isinstance(column_type, PrimitiveColumnType)
        assert column_type.primitive == "text"

    def test_parse_camel_case_payload(self):
        """Test parsing the wire shape of a dropdown type."""
        column_type = parse_column_type({"mode": "single_select_dropdown", "listOid": 4})
        assert isinstance(column_type, SingleSelectDropdownColumnType)
        assert column_type.list_oid == 4

    def test_parse_passes_models_through(self):
        """Test that a model is returned unchanged."""
        column_type = ReferenceColumnType(table_oid=3)
        assert parse_column_type(column_type) is column_type

    def test_parse_unknown_mode(self):
        """Test that an unknown mode is rejected."""
        with pytest.raises(ValidationError):
            parse_column_type({"mode": "spreadsheet"})

    def test_parse_unknown_primitive(self):
        """Test that an unknown primitive kind is rejected."""
        with pytest.raises(ValidationError):
            parse_column_type({"mode": "primitive", "primitive": "decimal"})

    def test_reference_requires_table(self):
        """Test that a reference type needs a table oid."""
        with pytest.raises(ValidationError):
            parse_column_type({"mode": "reference"})

    def test_owned_types_default_to_none(self):
        """Test that dropdown and child-table types may omit their target."""
        assert parse_column_type({"mode": "multi_select_dropdown"}).list_oid is None
        assert parse_column_type({"mode": "child_table"}).table_oid is None

    def test_storage_flattening(self):
        """Test flattening types into their stored columns."""
        assert column_type_to_storage(PrimitiveColumnType(primitive="integer")) == (
            "primitive",
            "integer",
            None,
        )
        assert column_type_to_storage(MultiSelectDropdownColumnType(list_oid=2)) == (
            "multi_select_dropdown",
            None,
            2,
        )
        assert column_type_to_storage(ReferenceColumnType(table_oid=9)) == ("reference", None, 9)

    def test_storage_rebuild(self):
        """Test rebuilding types from their stored columns."""
        assert column_type_from_storage("child_table", None, 7) == ChildTableColumnType(table_oid=7)
        assert column_type_from_storage("primitive", "json", None) == PrimitiveColumnType(primitive="json")

        with pytest.raises(ValueError):
            column_type_from_storage("spreadsheet", None, None)

    def test_is_blob_type(self):
        """Test which types keep their payload in the blob slot."""
        assert is_blob_type(PrimitiveColumnType(primitive="file"))
        assert is_blob_type(PrimitiveColumnType(primitive="image"))
        assert not is_blob_type(PrimitiveColumnType(primitive="text"))
        assert not is_blob_type(ChildTableColumnType(table_oid=1))


class TestMetadataModels:
    """Test table, column and stream models."""

    def test_primary_key_implies_required_and_unique(self):
        """Test the implicit constraints of a primary key."""
        column = Column(
            oid=1,
            table_oid=1,
            name="Name",
            column_ordering=0,
            column_type=PrimitiveColumnType(primitive="text"),
            is_primary_key=True,
        )
        assert column.is_nullable
        assert column.requires_value
        assert column.requires_unique

    def test_column_defaults(self):
        """Test default column flags and width."""
        column = Column(
            oid=1,
            table_oid=1,
            name="Notes",
            column_ordering=0,
            column_type={"mode": "primitive", "primitive": "text"},
        )
        assert column.column_width == 100
        assert column.column_style == ""
        assert not column.requires_value
        assert not column.requires_unique

    def test_extra_fields_rejected(self):
        """Test that unknown fields are rejected."""
        with pytest.raises(ValidationError):
            BasicMetadata(oid=1, name="Monsters", colour="red")

    def test_camel_case_dump(self):
        """Test the wire shape of a cell."""
        cell = CellValue(
            table_oid=1,
            row_oid=2,
            column_oid=3,
            column_name="Name",
            column_type=PrimitiveColumnType(primitive="text"),
            column_ordering=0,
            true_value="Goblin",
            display_value="Goblin",
        )
        data = cell.model_dump(by_alias=True)
        assert data["tableOid"] == 1
        assert data["trueValue"] == "Goblin"
        assert data["failedValidations"] == []
        assert data["columnType"] == {"mode": "primitive", "primitive": "text"}

    def test_notification_enum_values(self):
        """Test that notification kinds are stored as plain values."""
        notification = Notification(kind=NotificationKind.TABLE_DATA, table_oid=1, deep=True)
        assert notification.kind == "table_data"
        assert notification.row_oid is None
