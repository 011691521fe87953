"""Column type variants for NoteDB.

A column type is one of six closed variants, discriminated by ``mode``.
Every consumer dispatches on ``ColumnTypeMode`` and raises on an unknown
mode, so adding a variant means visiting every dispatch site.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import Field, TypeAdapter

from .base import NoteDBBaseModel


class ColumnTypeMode(str, Enum):
    """Storage discriminator for column types."""

    PRIMITIVE = "primitive"
    SINGLE_SELECT_DROPDOWN = "single_select_dropdown"
    MULTI_SELECT_DROPDOWN = "multi_select_dropdown"
    REFERENCE = "reference"
    CHILD_OBJECT = "child_object"
    CHILD_TABLE = "child_table"


class Primitive(str, Enum):
    """Primitive value kinds."""

    ANY = "any"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    DATE = "date"
    TIMESTAMP = "timestamp"
    TEXT = "text"
    JSON = "json"
    FILE = "file"
    IMAGE = "image"


# Kinds whose payload lives in the blob slot of a cell
BLOB_PRIMITIVES = {Primitive.FILE.value, Primitive.IMAGE.value}


class PrimitiveColumnType(NoteDBBaseModel):
    """A serialized scalar or a blob."""

    mode: Literal["primitive"] = "primitive"
    primitive: Primitive = Field(description="Primitive value kind")


class SingleSelectDropdownColumnType(NoteDBBaseModel):
    """Exactly one value from an option list."""

    mode: Literal["single_select_dropdown"] = "single_select_dropdown"
    list_oid: Optional[int] = Field(
        default=None, description="Option list; created for the column when omitted"
    )


class MultiSelectDropdownColumnType(NoteDBBaseModel):
    """Zero or more values from an option list."""

    mode: Literal["multi_select_dropdown"] = "multi_select_dropdown"
    list_oid: Optional[int] = Field(
        default=None, description="Option list; created for the column when omitted"
    )


class ReferenceColumnType(NoteDBBaseModel):
    """Foreign key to a row in another table."""

    mode: Literal["reference"] = "reference"
    table_oid: int = Field(description="Referenced table")


class ChildObjectColumnType(NoteDBBaseModel):
    """Owned one-to-one object row."""

    mode: Literal["child_object"] = "child_object"
    table_oid: int = Field(description="Object type of the child row")


class ChildTableColumnType(NoteDBBaseModel):
    """Owned one-to-many row set."""

    mode: Literal["child_table"] = "child_table"
    table_oid: Optional[int] = Field(
        default=None, description="Child table; created for the column when omitted"
    )


ColumnType = Annotated[
    Union[
        PrimitiveColumnType,
        SingleSelectDropdownColumnType,
        MultiSelectDropdownColumnType,
        ReferenceColumnType,
        ChildObjectColumnType,
        ChildTableColumnType,
    ],
    Field(discriminator="mode"),
]

column_type_adapter: TypeAdapter = TypeAdapter(ColumnType)


def parse_column_type(data) -> ColumnType:
    """Validate a dict (or an existing model) into a column type variant."""
    if isinstance(data, NoteDBBaseModel):
        return data
    return column_type_adapter.validate_python(data)


def column_type_to_storage(column_type: ColumnType) -> Tuple[str, Optional[str], Optional[int]]:
    """Flatten a column type into (mode, primitive, referenced oid)."""
    mode = column_type.mode
    if mode == ColumnTypeMode.PRIMITIVE:
        return mode, column_type.primitive, None
    elif mode in (ColumnTypeMode.SINGLE_SELECT_DROPDOWN, ColumnTypeMode.MULTI_SELECT_DROPDOWN):
        return mode, None, column_type.list_oid
    elif mode in (ColumnTypeMode.REFERENCE, ColumnTypeMode.CHILD_OBJECT, ColumnTypeMode.CHILD_TABLE):
        return mode, None, column_type.table_oid
    raise ValueError(f"Unknown column type mode: {mode}")


def column_type_from_storage(mode: str, primitive: Optional[str], ref_oid: Optional[int]) -> ColumnType:
    """Rebuild a column type from its stored (mode, primitive, referenced oid)."""
    if mode == ColumnTypeMode.PRIMITIVE:
        return PrimitiveColumnType(primitive=primitive)
    elif mode == ColumnTypeMode.SINGLE_SELECT_DROPDOWN:
        return SingleSelectDropdownColumnType(list_oid=ref_oid)
    elif mode == ColumnTypeMode.MULTI_SELECT_DROPDOWN:
        return MultiSelectDropdownColumnType(list_oid=ref_oid)
    elif mode == ColumnTypeMode.REFERENCE:
        return ReferenceColumnType(table_oid=ref_oid)
    elif mode == ColumnTypeMode.CHILD_OBJECT:
        return ChildObjectColumnType(table_oid=ref_oid)
    elif mode == ColumnTypeMode.CHILD_TABLE:
        return ChildTableColumnType(table_oid=ref_oid)
    raise ValueError(f"Unknown column type mode: {mode}")


def is_blob_type(column_type: ColumnType) -> bool:
    """Whether cells of this type hold a blob rather than a text value."""
    return column_type.mode == ColumnTypeMode.PRIMITIVE and column_type.primitive in BLOB_PRIMITIVES
