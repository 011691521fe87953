"""Stream entry models for table data reads."""

from typing import List, Optional, Union

from pydantic import Field

from .base import NoteDBBaseModel
from .column_type import ColumnType


class FailedValidation(NoteDBBaseModel):
    """An advisory constraint failure attached to a cell."""

    description: str = Field(description="Human-readable failure")


class RowStart(NoteDBBaseModel):
    """Marks the start of a row in a table data stream."""

    row_oid: int = Field(description="Row oid")
    row_index: int = Field(description="1-based position of the row in the table")


class RowExists(NoteDBBaseModel):
    """First entry of a single-row stream."""

    row_exists: bool = Field(description="Whether the row currently exists")
    table_oid: int = Field(description="Concrete subtype of the row, or the requested table")


class CellValue(NoteDBBaseModel):
    """One cell of a row."""

    table_oid: int = Field(description="Table defining the column")
    row_oid: int = Field(description="Row oid")
    column_oid: int = Field(description="Column oid")
    column_name: str = Field(description="Column name")
    column_type: ColumnType = Field(description="Column type variant")
    column_ordering: int = Field(description="Column position within its table")
    true_value: Optional[str] = Field(default=None, description="Raw stored value")
    display_value: Optional[str] = Field(default=None, description="Rendered value")
    failed_validations: List[FailedValidation] = Field(
        default_factory=list, description="Advisory constraint failures"
    )


TableDataEntry = Union[RowStart, CellValue]
RowDataEntry = Union[RowExists, CellValue]


class CellUpdateResult(NoteDBBaseModel):
    """Outcome of a cell write."""

    previous_value: Optional[str] = Field(default=None, description="Value before the write")
    failed_validations: List[FailedValidation] = Field(
        default_factory=list, description="Failures of the cell after the write"
    )
