"""Table, column and dropdown models for NoteDB."""

from typing import List, Optional

from pydantic import Field

from .base import NoteDBBaseModel
from .column_type import ColumnType


class BasicMetadata(NoteDBBaseModel):
    """The most bare-bones table metadata, used for populating lists of tables."""

    oid: int = Field(description="Table oid")
    name: str = Field(description="Table name")


class HierarchyMetadata(NoteDBBaseModel):
    """A table annotated with its depth in an inheritance walk."""

    oid: int = Field(description="Table oid")
    name: str = Field(description="Table name")
    hierarchy_level: int = Field(description="Depth below the starting point of the walk")


class MasterListOption(NoteDBBaseModel):
    """A candidate master table for a table's master list."""

    oid: int = Field(description="Candidate table oid")
    name: str = Field(description="Candidate table name")
    hierarchy_level: int = Field(description="Depth in the inheritance tree")
    is_disabled: bool = Field(description="Whether choosing it would create a cycle")


class Table(NoteDBBaseModel):
    """Represents a table or object type."""

    oid: int = Field(description="Table oid")
    name: str = Field(description="Table name")
    is_object_type: bool = Field(default=False, description="Whether this is an object type")
    parent_table_oid: Optional[int] = Field(
        default=None, description="Owning table when this backs a child-table column"
    )
    master_table_oids: List[int] = Field(
        default_factory=list, description="Tables this table inherits columns from"
    )


class Column(NoteDBBaseModel):
    """Represents a column in a table."""

    oid: int = Field(description="Column oid")
    table_oid: int = Field(description="Table defining the column")
    name: str = Field(description="Column name")
    column_ordering: int = Field(description="Dense 0-based position within its table")
    column_style: str = Field(default="", description="Opaque display style")
    column_width: int = Field(default=100, description="Display width in pixels")
    column_type: ColumnType = Field(description="Column type variant")
    is_nullable: bool = Field(default=True, description="Whether NULL values are allowed")
    is_unique: bool = Field(default=False, description="Whether values must be unique")
    is_primary_key: bool = Field(default=False, description="Whether this is part of the primary key")

    @property
    def requires_value(self) -> bool:
        """Primary keys are implicitly non-nullable."""
        return self.is_primary_key or not self.is_nullable

    @property
    def requires_unique(self) -> bool:
        """Primary keys are implicitly unique."""
        return self.is_primary_key or self.is_unique


class DropdownValue(NoteDBBaseModel):
    """A legal value for a dropdown, reference or child-object cell."""

    true_value: Optional[str] = Field(default=None, description="Stored representation")
    display_value: Optional[str] = Field(default=None, description="Human-readable rendering")


class DropdownList(NoteDBBaseModel):
    """A named option list."""

    oid: int = Field(description="List oid")
    name: str = Field(description="List name")
    values: List[DropdownValue] = Field(default_factory=list, description="Options in stored order")
