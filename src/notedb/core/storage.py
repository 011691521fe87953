"""SQLite schema for NoteDB database files."""

from pathlib import Path

from notedb.core.connection import DatabaseConnection

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS metadata_table (
    oid INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    is_object_type INTEGER NOT NULL DEFAULT 0,
    parent_table_oid INTEGER REFERENCES metadata_table(oid) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS metadata_table_inheritance (
    inheritor_table_oid INTEGER NOT NULL REFERENCES metadata_table(oid) ON DELETE CASCADE,
    master_table_oid INTEGER NOT NULL REFERENCES metadata_table(oid) ON DELETE CASCADE,
    master_ordering INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (inheritor_table_oid, master_table_oid)
);

CREATE TABLE IF NOT EXISTS metadata_dropdown_list (
    oid INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS metadata_dropdown_value (
    oid INTEGER PRIMARY KEY AUTOINCREMENT,
    list_oid INTEGER NOT NULL REFERENCES metadata_dropdown_list(oid) ON DELETE CASCADE,
    value_ordering INTEGER NOT NULL,
    display_value TEXT
);

CREATE TABLE IF NOT EXISTS metadata_table_column (
    oid INTEGER PRIMARY KEY AUTOINCREMENT,
    table_oid INTEGER NOT NULL REFERENCES metadata_table(oid) ON DELETE CASCADE,
    name TEXT NOT NULL,
    column_ordering INTEGER NOT NULL,
    column_style TEXT NOT NULL DEFAULT '',
    column_width INTEGER NOT NULL DEFAULT 100,
    type_mode TEXT NOT NULL,
    type_primitive TEXT,
    type_ref_oid INTEGER,
    is_nullable INTEGER NOT NULL DEFAULT 1,
    is_unique INTEGER NOT NULL DEFAULT 0,
    is_primary_key INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS table_row (
    oid INTEGER PRIMARY KEY AUTOINCREMENT,
    table_oid INTEGER NOT NULL REFERENCES metadata_table(oid) ON DELETE CASCADE,
    subtype_oid INTEGER NOT NULL REFERENCES metadata_table(oid),
    parent_row_oid INTEGER REFERENCES table_row(oid) ON DELETE CASCADE,
    row_ordering INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS table_cell (
    row_oid INTEGER NOT NULL REFERENCES table_row(oid) ON DELETE CASCADE,
    column_oid INTEGER NOT NULL REFERENCES metadata_table_column(oid) ON DELETE CASCADE,
    value TEXT,
    blob_value BLOB,
    blob_size INTEGER,
    PRIMARY KEY (row_oid, column_oid)
);

CREATE INDEX IF NOT EXISTS idx_inheritance_master ON metadata_table_inheritance(master_table_oid);
CREATE INDEX IF NOT EXISTS idx_column_table ON metadata_table_column(table_oid, column_ordering);
CREATE INDEX IF NOT EXISTS idx_row_subtype ON table_row(subtype_oid, row_ordering);
CREATE INDEX IF NOT EXISTS idx_row_parent ON table_row(parent_row_oid);
CREATE INDEX IF NOT EXISTS idx_cell_column ON table_cell(column_oid, value);
"""


def initialize_schema(conn: DatabaseConnection) -> None:
    """Create the NoteDB schema on a connection if it does not exist yet."""
    version = conn.execute("PRAGMA user_version").fetchone()[0]
    if version >= SCHEMA_VERSION:
        return
    conn.executescript(SCHEMA)
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")


def initialize_database(path: Path) -> None:
    """Create or upgrade the NoteDB database file at ``path``."""
    with DatabaseConnection(path) as conn:
        initialize_schema(conn)
