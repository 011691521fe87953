"""Utility functions for CLI commands."""

import logging
import os
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
from rich.console import Console

from notedb.config import Config, ProjectConfig
from notedb.core.database import NoteDB
from notedb.models import ColumnType, Primitive, parse_column_type

console = Console()

OWNED_TYPE_SPECS = {
    "select": {"mode": "single_select_dropdown"},
    "multiselect": {"mode": "multi_select_dropdown"},
    "childtable": {"mode": "child_table"},
}

REFERENCED_TYPE_SPECS = {
    "ref": "reference",
    "object": "child_object",
    "select": "single_select_dropdown",
    "multiselect": "multi_select_dropdown",
    "childtable": "child_table",
}


def find_project_root(start: Path) -> Optional[Path]:
    """Walk up from ``start`` to the first directory holding ``.notedb/config.toml``."""
    for directory in (start, *start.parents):
        if (directory / ".notedb" / "config.toml").exists():
            return directory
    return None


def get_config_with_data():
    """Get config and load data for the current project.

    Returns:
        tuple: (config, config_data)
    """
    env_dir = os.environ.get("NOTEDB_PROJECT_DIR")
    project_root = Path(env_dir) if env_dir else find_project_root(Path.cwd())
    if not project_root:
        console.print("[red]❌ Not in a NoteDB project directory[/red]")
        raise typer.Exit(1)

    config = Config(project_root)
    try:
        config_data = config.load()
    except FileNotFoundError:
        console.print("[red]❌ Config file not found. Run 'notedb init' first.[/red]")
        raise typer.Exit(1)

    configure_logging(config_data)
    return config, config_data


def configure_logging(config_data: ProjectConfig) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=getattr(logging, config_data.log_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def validate_required_arg(value: Optional[Any], arg_name: str, ctx: typer.Context) -> Any:
    """Validate a required argument and show help if missing.

    Raises:
        typer.Exit: If value is None
    """
    if value is None:
        console.print(ctx.get_help())
        console.print(f"\n[red]❌ Error: Missing argument '{arg_name.upper()}'.[/red]")
        raise typer.Exit(1)
    return value


def fail(error: Exception) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]❌ {error}[/red]")
    raise typer.Exit(1)


def get_notedb_instance() -> NoteDB:
    """Open the database of the current project."""
    config, config_data = get_config_with_data()
    return NoteDB(config.database_path, config_data)


def parse_type_spec(spec: str) -> ColumnType:
    """Parse a CLI column type.

    Formats: a primitive kind (``text``, ``integer``, ``file`` ...),
    ``select``/``multiselect``/``childtable`` for a new owned list or table,
    or ``KIND:OID`` with KIND in ref, object, select, multiselect, childtable.

    Raises:
        ValueError: If the type is not recognised
    """
    kind, _, oid = spec.strip().lower().partition(":")
    if oid:
        if kind not in REFERENCED_TYPE_SPECS:
            raise ValueError(f"Unknown column type '{spec}'")
        mode = REFERENCED_TYPE_SPECS[kind]
        key = "list_oid" if "dropdown" in mode else "table_oid"
        return parse_column_type({"mode": mode, key: int(oid)})
    if kind in OWNED_TYPE_SPECS:
        return parse_column_type(OWNED_TYPE_SPECS[kind])
    try:
        return parse_column_type({"mode": "primitive", "primitive": Primitive(kind).value})
    except ValueError:
        raise ValueError(
            f"Unknown column type '{spec}'. Use one of: "
            f"{', '.join(p.value for p in Primitive)}, select, multiselect, childtable, "
            f"ref:OID, object:OID"
        )


def describe_type(column_type: ColumnType) -> str:
    """Short text form of a column type, the inverse of :func:`parse_type_spec`."""
    if column_type.mode == "primitive":
        return column_type.primitive
    for kind, mode in REFERENCED_TYPE_SPECS.items():
        if mode == column_type.mode:
            oid = getattr(column_type, "list_oid", None) or getattr(column_type, "table_oid", None)
            return f"{kind}:{oid}" if oid is not None else kind
    return column_type.mode


def show_env_config():
    """Display active environment variable configuration."""
    env_vars = {
        "NOTEDB_PROJECT_DIR": os.environ.get("NOTEDB_PROJECT_DIR"),
        "NOTEDB_DATABASE_PATH": os.environ.get("NOTEDB_DATABASE_PATH"),
        "NOTEDB_PAGE_SIZE": os.environ.get("NOTEDB_PAGE_SIZE"),
        "NOTEDB_MAX_PAGE_SIZE": os.environ.get("NOTEDB_MAX_PAGE_SIZE"),
        "NOTEDB_LOG_LEVEL": os.environ.get("NOTEDB_LOG_LEVEL"),
    }

    active = {k: v for k, v in env_vars.items() if v}
    if active:
        console.print("\n[yellow]Active environment variables:[/yellow]")
        for key, value in active.items():
            console.print(f"  {key}={value}")
    else:
        console.print("\n[dim]No NoteDB environment variables set[/dim]")
