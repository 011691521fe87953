"""Read-only operations of NoteDB, addressed by name."""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from pydantic.alias_generators import to_snake

if TYPE_CHECKING:
    from notedb.core.database import NoteDB


def get_table_list(db: "NoteDB"):
    return db.tables.list_tables()


def get_object_type_list(db: "NoteDB"):
    return db.tables.list_object_types()


def get_table_metadata(db: "NoteDB", table_oid: int):
    return db.tables.get_table_metadata(table_oid)


def get_table_column_list(db: "NoteDB", table_oid: int):
    return db.columns.list_columns(table_oid)


def get_table_column_dropdown_values(db: "NoteDB", column_oid: int, table_oid: Optional[int] = None):
    if table_oid is not None:
        db.columns.get_visible_column(table_oid, column_oid)
    return db.dropdowns.get_dropdown_values(column_oid)


def get_subtype_list(db: "NoteDB", table_oid: int):
    return db.tables.get_subtype_list(table_oid)


def get_master_list_option_dropdown_values(
    db: "NoteDB", table_oid: Optional[int] = None, allow_inheritance_from_tables: bool = False
):
    return db.tables.get_master_list_options(table_oid, allow_inheritance_from_tables)


def get_table_data(
    db: "NoteDB",
    table_oid: int,
    parent_row_oid: Optional[int] = None,
    page_num: int = 1,
    page_size: Optional[int] = None,
):
    return db.get_table_data(table_oid, parent_row_oid, page_num, page_size)


def get_table_row(db: "NoteDB", table_oid: int, row_oid: int):
    return db.rows.get_table_row(table_oid, row_oid)


def get_object_data(db: "NoteDB", obj_type_oid: int, obj_row_oid: int):
    return db.rows.get_object_data(obj_type_oid, obj_row_oid)


def get_blob_value(db: "NoteDB", table_oid: int, row_oid: int, column_oid: int):
    return db.rows.get_blob_value(table_oid, row_oid, column_oid)


QUERIES: Dict[str, Callable[..., Any]] = {
    "get_table_list": get_table_list,
    "get_object_type_list": get_object_type_list,
    "get_table_metadata": get_table_metadata,
    "get_table_column_list": get_table_column_list,
    "get_table_column_dropdown_values": get_table_column_dropdown_values,
    "get_subtype_list": get_subtype_list,
    "get_master_list_option_dropdown_values": get_master_list_option_dropdown_values,
    "get_table_data": get_table_data,
    "get_table_row": get_table_row,
    "get_object_data": get_object_data,
    "get_blob_value": get_blob_value,
}


def run_query(db: "NoteDB", name: str, params: Dict[str, Any]) -> Any:
    """Run a named query; parameter names may be snake_case or camelCase.

    Raises:
        ValueError: If the query name is unknown
    """
    handler = QUERIES.get(name)
    if handler is None:
        raise ValueError(f"Unknown query: {name}")
    return handler(db, **{to_snake(key): value for key, value in params.items()})
