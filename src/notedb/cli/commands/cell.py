"""Cell editing commands for NoteDB CLI."""

import typer
from pathlib import Path
from typing import Optional

from notedb.core.errors import NoteDBError
from notedb.models import CellUpdateResult
from notedb.cli.utils import console, fail, get_notedb_instance, validate_required_arg

app = typer.Typer(help="Cell editing commands", invoke_without_command=True)


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def _report(result: CellUpdateResult) -> None:
    for failure in result.failed_validations:
        console.print(f"[yellow]⚠️  {failure.description}[/yellow]")


@app.command(name="set")
def set_value(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    row_oid: Optional[int] = typer.Argument(None, help="Row oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Column oid"),
    value: Optional[str] = typer.Argument(None, help="New value; omit together with --null to clear"),
    null: bool = typer.Option(False, "--null", help="Clear the cell"),
):
    """Set the value of a cell.

    Values are stored as given; dropdown cells take the option oid, multi-select
    cells a JSON list of option oids and reference cells a row oid.
    """
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    row_oid = validate_required_arg(row_oid, "row_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    if not null:
        value = validate_required_arg(value, "value", ctx)
    db = get_notedb_instance()

    try:
        result = db.execute(
            {
                "action": "updateTableCellStoredAsPrimitiveValue",
                "tableOid": table_oid,
                "rowOid": row_oid,
                "columnOid": column_oid,
                "value": None if null else value,
            }
        )
    except NoteDBError as e:
        fail(e)

    console.print(f"[green]✅ Updated cell (previous value: {result.previous_value})[/green]")
    _report(result)


@app.command()
def upload(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    row_oid: Optional[int] = typer.Argument(None, help="Row oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Column oid"),
    file_path: Optional[Path] = typer.Argument(None, help="File to store in the cell"),
):
    """Store a file in a File or Image cell."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    row_oid = validate_required_arg(row_oid, "row_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    file_path = validate_required_arg(file_path, "file_path", ctx)
    db = get_notedb_instance()

    try:
        result = db.execute(
            {
                "action": "updateTableCellStoredAsBlob",
                "tableOid": table_oid,
                "rowOid": row_oid,
                "columnOid": column_oid,
                "filePath": str(file_path),
            }
        )
    except (NoteDBError, OSError) as e:
        fail(e)

    console.print(f"[green]✅ Stored {file_path.name} in cell[/green]")
    _report(result)


@app.command()
def download(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    row_oid: Optional[int] = typer.Argument(None, help="Row oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Column oid"),
    file_path: Optional[Path] = typer.Argument(None, help="Where to write the file"),
):
    """Write the file stored in a cell to disk."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    row_oid = validate_required_arg(row_oid, "row_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    file_path = validate_required_arg(file_path, "file_path", ctx)
    db = get_notedb_instance()

    try:
        path = db.rows.download_blob_value(table_oid, row_oid, column_oid, file_path)
    except (NoteDBError, OSError) as e:
        fail(e)

    console.print(f"[green]✅ Wrote {path}[/green]")


@app.command()
def link(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    row_oid: Optional[int] = typer.Argument(None, help="Row oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Child-object column oid"),
    obj_type: Optional[int] = typer.Option(
        None, "--type", "-t", help="Object type of the object (default: the column's type)"
    ),
    obj_row: Optional[int] = typer.Option(
        None, "--object", "-o", help="Existing object row to link; a new one is created when omitted"
    ),
):
    """Attach an object to a child-object cell."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    row_oid = validate_required_arg(row_oid, "row_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    db = get_notedb_instance()

    try:
        obj_type_oid, obj_row_oid = db.execute(
            {
                "action": "setTableObjectCell",
                "tableOid": table_oid,
                "rowOid": row_oid,
                "columnOid": column_oid,
                "objTypeOid": obj_type,
                "objRowOid": obj_row,
            }
        )
    except NoteDBError as e:
        fail(e)

    console.print(f"[green]✅ Linked object row {obj_row_oid} of type {obj_type_oid}[/green]")


@app.command()
def unlink(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    row_oid: Optional[int] = typer.Argument(None, help="Row oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Child-object column oid"),
):
    """Clear a child-object cell."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    row_oid = validate_required_arg(row_oid, "row_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    db = get_notedb_instance()

    try:
        db.execute(
            {
                "action": "unsetTableObjectCell",
                "tableOid": table_oid,
                "rowOid": row_oid,
                "columnOid": column_oid,
            }
        )
    except NoteDBError as e:
        fail(e)

    console.print("[green]✅ Cleared object cell[/green]")
