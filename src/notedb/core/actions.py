"""Mutating operations of NoteDB, addressed by name.

Each action is a pydantic model discriminated by its camelCase ``action``
name. ``apply`` runs it against a :class:`~notedb.core.database.NoteDB` and
``notifications`` describes what consumers should re-fetch afterwards.
"""

from abc import abstractmethod
from typing import TYPE_CHECKING, Annotated, Any, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from notedb.core.notifications import table_data_changed, table_list_changed, table_row_changed
from notedb.models import ColumnType, DropdownValue, Notification, NoteDBBaseModel

if TYPE_CHECKING:
    from notedb.core.database import NoteDB


class BaseAction(NoteDBBaseModel):
    """Common interface of all actions.

    Subclasses implement :meth:`apply` and override :meth:`notifications`
    when consumers have something to re-fetch.
    """

    @abstractmethod
    def apply(self, db: "NoteDB") -> Any:
        """Run the action and return its result."""

    def notifications(self, result: Any) -> List[Notification]:
        """Notifications to publish after ``apply`` returned ``result``."""
        return []


# Tables and object types


class CreateTable(BaseAction):
    action: Literal["createTable"] = "createTable"
    table_name: str
    master_table_oids: List[int] = Field(default_factory=list)

    def apply(self, db: "NoteDB") -> int:
        return db.tables.create_table(self.table_name, self.master_table_oids)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_list_changed()]


class EditTableMetadata(BaseAction):
    action: Literal["editTableMetadata"] = "editTableMetadata"
    table_oid: int
    table_name: str
    master_table_oids: List[int] = Field(default_factory=list)

    def apply(self, db: "NoteDB") -> None:
        db.tables.edit_table_metadata(self.table_oid, self.table_name, self.master_table_oids)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_list_changed(), table_data_changed(self.table_oid, deep=True)]


class DeleteTable(BaseAction):
    action: Literal["deleteTable"] = "deleteTable"
    table_oid: int

    def apply(self, db: "NoteDB") -> None:
        db.tables.delete_table(self.table_oid)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_list_changed(), table_data_changed(self.table_oid, deep=True)]


class CreateObjectType(BaseAction):
    action: Literal["createObjectType"] = "createObjectType"
    obj_type_name: str
    master_table_oids: List[int] = Field(default_factory=list)

    def apply(self, db: "NoteDB") -> int:
        return db.tables.create_table(self.obj_type_name, self.master_table_oids, is_object_type=True)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_list_changed()]


class EditObjectTypeMetadata(BaseAction):
    action: Literal["editObjectTypeMetadata"] = "editObjectTypeMetadata"
    obj_type_oid: int
    obj_type_name: str
    master_table_oids: List[int] = Field(default_factory=list)

    def apply(self, db: "NoteDB") -> None:
        db.tables.edit_table_metadata(self.obj_type_oid, self.obj_type_name, self.master_table_oids)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_list_changed(), table_data_changed(self.obj_type_oid, deep=True)]


class DeleteObjectType(BaseAction):
    action: Literal["deleteObjectType"] = "deleteObjectType"
    obj_type_oid: int

    def apply(self, db: "NoteDB") -> None:
        db.tables.delete_table(self.obj_type_oid)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_list_changed(), table_data_changed(self.obj_type_oid, deep=True)]


# Columns


class CreateTableColumn(BaseAction):
    action: Literal["createTableColumn"] = "createTableColumn"
    table_oid: int
    column_ordering: Optional[int] = None
    column_name: str
    column_type: ColumnType
    column_style: str = ""
    is_nullable: bool = True
    is_unique: bool = False
    is_primary_key: bool = False

    def apply(self, db: "NoteDB") -> int:
        return db.columns.create_column(
            self.table_oid,
            self.column_name,
            self.column_type,
            column_ordering=self.column_ordering,
            column_style=self.column_style,
            is_nullable=self.is_nullable,
            is_unique=self.is_unique,
            is_primary_key=self.is_primary_key,
        )

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


class EditTableColumnMetadata(BaseAction):
    action: Literal["editTableColumnMetadata"] = "editTableColumnMetadata"
    table_oid: int
    column_oid: int
    column_name: str
    column_type: ColumnType
    column_style: str = ""
    is_nullable: bool = True
    is_unique: bool = False
    is_primary_key: bool = False

    def apply(self, db: "NoteDB") -> None:
        db.columns.edit_column(
            self.table_oid,
            self.column_oid,
            self.column_name,
            self.column_type,
            column_style=self.column_style,
            is_nullable=self.is_nullable,
            is_unique=self.is_unique,
            is_primary_key=self.is_primary_key,
        )

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


class EditTableColumnWidth(BaseAction):
    action: Literal["editTableColumnWidth"] = "editTableColumnWidth"
    table_oid: int
    column_oid: int
    column_width: int

    def apply(self, db: "NoteDB") -> None:
        db.columns.edit_column_width(self.table_oid, self.column_oid, self.column_width)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


class EditTableColumnDropdownValues(BaseAction):
    action: Literal["editTableColumnDropdownValues"] = "editTableColumnDropdownValues"
    table_oid: int
    column_oid: int
    dropdown_values: List[DropdownValue]

    def apply(self, db: "NoteDB") -> int:
        return db.dropdowns.edit_column_dropdown_values(self.table_oid, self.column_oid, self.dropdown_values)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


class ReorderTableColumn(BaseAction):
    action: Literal["reorderTableColumn"] = "reorderTableColumn"
    table_oid: int
    column_oid: int
    old_ordering: Optional[int] = None
    new_ordering: Optional[int] = None

    def apply(self, db: "NoteDB") -> None:
        db.columns.reorder_column(self.table_oid, self.column_oid, self.old_ordering, self.new_ordering)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


class DeleteTableColumn(BaseAction):
    action: Literal["deleteTableColumn"] = "deleteTableColumn"
    table_oid: int
    column_oid: int

    def apply(self, db: "NoteDB") -> None:
        db.columns.delete_column(self.table_oid, self.column_oid)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


# Rows


class PushTableRow(BaseAction):
    action: Literal["pushTableRow"] = "pushTableRow"
    table_oid: int
    parent_row_oid: Optional[int] = None

    def apply(self, db: "NoteDB") -> int:
        return db.rows.push_row(self.table_oid, self.parent_row_oid)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


class InsertTableRow(BaseAction):
    action: Literal["insertTableRow"] = "insertTableRow"
    table_oid: int
    parent_row_oid: Optional[int] = None
    row_oid: int

    def apply(self, db: "NoteDB") -> int:
        return db.rows.insert_row(self.table_oid, self.parent_row_oid, self.row_oid)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


class RetypeTableRow(BaseAction):
    action: Literal["retypeTableRow"] = "retypeTableRow"
    base_obj_type_oid: int
    base_row_oid: int
    new_obj_type_oid: int

    def apply(self, db: "NoteDB") -> int:
        return db.rows.retype_row(self.base_obj_type_oid, self.base_row_oid, self.new_obj_type_oid)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.base_obj_type_oid, deep=True)]


class DeleteTableRow(BaseAction):
    action: Literal["deleteTableRow"] = "deleteTableRow"
    table_oid: int
    row_oid: int

    def apply(self, db: "NoteDB") -> None:
        db.rows.delete_row(self.table_oid, self.row_oid)

    def notifications(self, result: Any) -> List[Notification]:
        return [table_data_changed(self.table_oid, deep=True)]


# Cells


class UpdateTableCellStoredAsPrimitiveValue(BaseAction):
    action: Literal["updateTableCellStoredAsPrimitiveValue"] = "updateTableCellStoredAsPrimitiveValue"
    table_oid: int
    row_oid: int
    column_oid: int
    value: Optional[str] = None

    def apply(self, db: "NoteDB"):
        return db.rows.update_cell_primitive(self.table_oid, self.row_oid, self.column_oid, self.value)

    def notifications(self, result: Any) -> List[Notification]:
        return [
            table_data_changed(self.table_oid, deep=False),
            table_row_changed(self.table_oid, self.row_oid),
        ]


class UpdateTableCellStoredAsBlob(BaseAction):
    action: Literal["updateTableCellStoredAsBlob"] = "updateTableCellStoredAsBlob"
    table_oid: int
    row_oid: int
    column_oid: int
    file_path: str

    def apply(self, db: "NoteDB"):
        return db.rows.update_cell_blob(self.table_oid, self.row_oid, self.column_oid, self.file_path)

    def notifications(self, result: Any) -> List[Notification]:
        return [
            table_data_changed(self.table_oid, deep=False),
            table_row_changed(self.table_oid, self.row_oid),
        ]


class SetTableObjectCell(BaseAction):
    action: Literal["setTableObjectCell"] = "setTableObjectCell"
    table_oid: int
    row_oid: int
    column_oid: int
    obj_type_oid: Optional[int] = None
    obj_row_oid: Optional[int] = None

    def apply(self, db: "NoteDB"):
        return db.rows.set_object_cell(
            self.table_oid, self.row_oid, self.column_oid, self.obj_type_oid, self.obj_row_oid
        )

    def notifications(self, result: Any) -> List[Notification]:
        return [
            table_data_changed(self.table_oid, deep=False),
            table_row_changed(self.table_oid, self.row_oid),
        ]


class UnsetTableObjectCell(BaseAction):
    action: Literal["unsetTableObjectCell"] = "unsetTableObjectCell"
    table_oid: int
    row_oid: int
    column_oid: int

    def apply(self, db: "NoteDB"):
        return db.rows.unset_object_cell(self.table_oid, self.row_oid, self.column_oid)

    def notifications(self, result: Any) -> List[Notification]:
        return [
            table_data_changed(self.table_oid, deep=False),
            table_row_changed(self.table_oid, self.row_oid),
        ]


Action = Annotated[
    Union[
        CreateTable,
        EditTableMetadata,
        DeleteTable,
        CreateObjectType,
        EditObjectTypeMetadata,
        DeleteObjectType,
        CreateTableColumn,
        EditTableColumnMetadata,
        EditTableColumnWidth,
        EditTableColumnDropdownValues,
        ReorderTableColumn,
        DeleteTableColumn,
        PushTableRow,
        InsertTableRow,
        RetypeTableRow,
        DeleteTableRow,
        UpdateTableCellStoredAsPrimitiveValue,
        UpdateTableCellStoredAsBlob,
        SetTableObjectCell,
        UnsetTableObjectCell,
    ],
    Field(discriminator="action"),
]

action_adapter: TypeAdapter = TypeAdapter(Action)


def parse_action(data: Union[BaseAction, dict]) -> BaseAction:
    """Validate a camelCase (or snake_case) payload into an action model."""
    if isinstance(data, BaseAction):
        return data
    return action_adapter.validate_python(data)
