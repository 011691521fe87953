"""Core data models for NoteDB."""

from .base import NoteDBBaseModel
from .column_type import (
    ColumnType,
    ColumnTypeMode,
    Primitive,
    PrimitiveColumnType,
    SingleSelectDropdownColumnType,
    MultiSelectDropdownColumnType,
    ReferenceColumnType,
    ChildObjectColumnType,
    ChildTableColumnType,
    parse_column_type,
)
from .table import (
    BasicMetadata,
    HierarchyMetadata,
    MasterListOption,
    Table,
    Column,
    DropdownValue,
    DropdownList,
)
from .data import (
    FailedValidation,
    RowStart,
    RowExists,
    CellValue,
    CellUpdateResult,
    TableDataEntry,
    RowDataEntry,
)
from .notification import Notification, NotificationKind

__all__ = [
    "NoteDBBaseModel",
    "ColumnType",
    "ColumnTypeMode",
    "Primitive",
    "PrimitiveColumnType",
    "SingleSelectDropdownColumnType",
    "MultiSelectDropdownColumnType",
    "ReferenceColumnType",
    "ChildObjectColumnType",
    "ChildTableColumnType",
    "parse_column_type",
    "BasicMetadata",
    "HierarchyMetadata",
    "MasterListOption",
    "Table",
    "Column",
    "DropdownValue",
    "DropdownList",
    "FailedValidation",
    "RowStart",
    "RowExists",
    "CellValue",
    "CellUpdateResult",
    "TableDataEntry",
    "RowDataEntry",
    "Notification",
    "NotificationKind",
]
