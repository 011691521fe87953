"""Row management commands for NoteDB CLI."""

import typer
from typing import Optional

from notedb.core.errors import NoteDBError
from notedb.cli.utils import console, fail, get_notedb_instance, validate_required_arg

app = typer.Typer(help="Row management commands", invoke_without_command=True)


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@app.command()
def push(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    parent: Optional[int] = typer.Option(
        None, "--parent", "-p", help="Owning row when the table is a child table"
    ),
):
    """Append a new empty row to a table."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    db = get_notedb_instance()

    try:
        row_oid = db.execute({"action": "pushTableRow", "tableOid": table_oid, "parentRowOid": parent})
    except NoteDBError as e:
        fail(e)

    console.print(f"[green]✅ Added row {row_oid} to table {table_oid}[/green]")


@app.command()
def insert(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    before: Optional[int] = typer.Argument(None, help="Row oid to insert before"),
    parent: Optional[int] = typer.Option(
        None, "--parent", "-p", help="Owning row when the table is a child table"
    ),
):
    """Insert a new empty row before an existing row."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    before = validate_required_arg(before, "before", ctx)
    db = get_notedb_instance()

    try:
        row_oid = db.execute(
            {"action": "insertTableRow", "tableOid": table_oid, "parentRowOid": parent, "rowOid": before}
        )
    except NoteDBError as e:
        fail(e)

    console.print(f"[green]✅ Inserted row {row_oid} before row {before}[/green]")


@app.command()
def retype(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table the row is viewed through"),
    row_oid: Optional[int] = typer.Argument(None, help="Row oid"),
    subtype_oid: Optional[int] = typer.Argument(None, help="New concrete type of the row"),
):
    """Change the concrete type of a row."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    row_oid = validate_required_arg(row_oid, "row_oid", ctx)
    subtype_oid = validate_required_arg(subtype_oid, "subtype_oid", ctx)
    db = get_notedb_instance()

    try:
        previous = db.execute(
            {
                "action": "retypeTableRow",
                "baseObjTypeOid": table_oid,
                "baseRowOid": row_oid,
                "newObjTypeOid": subtype_oid,
            }
        )
    except NoteDBError as e:
        fail(e)

    console.print(f"[green]✅ Row {row_oid} retyped from {previous} to {subtype_oid}[/green]")


@app.command()
def delete(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    row_oid: Optional[int] = typer.Argument(None, help="Row oid"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Force deletion without confirmation"
    ),
):
    """Delete a row with everything it owns."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    row_oid = validate_required_arg(row_oid, "row_oid", ctx)
    db = get_notedb_instance()

    # Confirmation
    if not force:
        confirm = typer.confirm(f"Are you sure you want to delete row {row_oid}?")
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    try:
        db.execute({"action": "deleteTableRow", "tableOid": table_oid, "rowOid": row_oid})
    except NoteDBError as e:
        fail(e)

    console.print(f"[green]✅ Deleted row {row_oid}[/green]")
