"""Column management commands for NoteDB CLI."""

import typer
from typing import List, Optional
from rich.table import Table as RichTable

from notedb.core.errors import NoteDBError
from notedb.cli.utils import (
    console,
    describe_type,
    fail,
    get_notedb_instance,
    parse_type_spec,
    validate_required_arg,
)

app = typer.Typer(help="Column management commands", invoke_without_command=True)


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@app.command(name="list")
def list_columns(
    ctx: typer.Context, table_oid: Optional[int] = typer.Argument(None, help="Table oid")
):
    """List all columns of a table, inherited columns first."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    db = get_notedb_instance()

    try:
        columns = db.query("get_table_column_list", table_oid=table_oid)
    except NoteDBError as e:
        fail(e)

    col_table = RichTable(title=f"Columns of table {table_oid}")
    col_table.add_column("OID", style="dim")
    col_table.add_column("Name", style="cyan")
    col_table.add_column("Type", style="green")
    col_table.add_column("Nullable", style="yellow")
    col_table.add_column("Unique", style="yellow")
    col_table.add_column("Primary Key", style="red")
    col_table.add_column("Defined In", style="blue")

    for col in columns:
        col_table.add_row(
            str(col.oid),
            col.name,
            describe_type(col.column_type),
            "Yes" if col.is_nullable else "No",
            "Yes" if col.is_unique else "No",
            "Yes" if col.is_primary_key else "No",
            "-" if col.table_oid == table_oid else str(col.table_oid),
        )

    console.print(col_table)


@app.command()
def add(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    name: Optional[str] = typer.Argument(None, help="Column name"),
    type: Optional[str] = typer.Argument(
        None, help="Column type (text, integer, select, ref:OID, object:OID, childtable ...)"
    ),
    position: Optional[int] = typer.Option(
        None, "--position", "-p", help="0-based position (default: last)"
    ),
    nullable: bool = typer.Option(
        True, "--nullable/--not-null", help="Allow NULL values"
    ),
    unique: bool = typer.Option(False, "--unique", "-u", help="Require unique values"),
    primary_key: bool = typer.Option(
        False, "--primary-key", "-k", help="Make the column part of the primary key"
    ),
):
    """Add a new column to a table."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    name = validate_required_arg(name, "name", ctx)
    type = validate_required_arg(type, "type", ctx)
    db = get_notedb_instance()

    try:
        column_type = parse_type_spec(type)
        column_oid = db.execute(
            {
                "action": "createTableColumn",
                "tableOid": table_oid,
                "columnOrdering": position,
                "columnName": name,
                "columnType": column_type.model_dump(),
                "isNullable": nullable,
                "isUnique": unique,
                "isPrimaryKey": primary_key,
            }
        )
    except (NoteDBError, ValueError) as e:
        fail(e)

    console.print(f"[green]✅ Added column '{name.strip()}' ({column_oid}) to table {table_oid}[/green]")


@app.command()
def edit(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Column oid"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New column name"),
    type: Optional[str] = typer.Option(None, "--type", "-t", help="New column type"),
    nullable: Optional[bool] = typer.Option(
        None, "--nullable/--not-null", help="Allow NULL values"
    ),
    unique: Optional[bool] = typer.Option(
        None, "--unique/--not-unique", help="Require unique values"
    ),
    primary_key: Optional[bool] = typer.Option(
        None, "--primary-key/--no-primary-key", help="Make the column part of the primary key"
    ),
):
    """Change a column's name, type or constraints."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    db = get_notedb_instance()

    try:
        current = db.columns.get_visible_column(table_oid, column_oid)
        column_type = parse_type_spec(type) if type else current.column_type
        db.execute(
            {
                "action": "editTableColumnMetadata",
                "tableOid": table_oid,
                "columnOid": column_oid,
                "columnName": name or current.name,
                "columnType": column_type.model_dump(),
                "columnStyle": current.column_style,
                "isNullable": current.is_nullable if nullable is None else nullable,
                "isUnique": current.is_unique if unique is None else unique,
                "isPrimaryKey": current.is_primary_key if primary_key is None else primary_key,
            }
        )
    except (NoteDBError, ValueError) as e:
        fail(e)

    console.print(f"[green]✅ Updated column {column_oid}[/green]")


@app.command()
def width(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Column oid"),
    pixels: Optional[int] = typer.Argument(None, help="Display width in pixels"),
):
    """Set a column's display width."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    pixels = validate_required_arg(pixels, "pixels", ctx)
    db = get_notedb_instance()

    try:
        db.execute(
            {
                "action": "editTableColumnWidth",
                "tableOid": table_oid,
                "columnOid": column_oid,
                "columnWidth": pixels,
            }
        )
    except (NoteDBError, ValueError) as e:
        fail(e)

    console.print(f"[green]✅ Column {column_oid} is now {pixels}px wide[/green]")


@app.command()
def move(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Column oid"),
    position: Optional[int] = typer.Argument(None, help="New 0-based position (default: last)"),
):
    """Move a column to a new position."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    db = get_notedb_instance()

    try:
        current = db.columns.get_visible_column(table_oid, column_oid)
        db.execute(
            {
                "action": "reorderTableColumn",
                "tableOid": table_oid,
                "columnOid": column_oid,
                "oldOrdering": current.column_ordering,
                "newOrdering": position,
            }
        )
    except (NoteDBError, ValueError) as e:
        fail(e)

    console.print(f"[green]✅ Moved column '{current.name}'[/green]")


@app.command()
def drop(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Column oid"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Force deletion without confirmation"
    ),
):
    """Drop a column and all of its cells."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    db = get_notedb_instance()

    # Confirmation
    if not force:
        confirm = typer.confirm(
            f"Are you sure you want to drop column {column_oid} from table {table_oid}?"
        )
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    try:
        db.execute({"action": "deleteTableColumn", "tableOid": table_oid, "columnOid": column_oid})
    except NoteDBError as e:
        fail(e)

    console.print(f"[green]✅ Dropped column {column_oid} from table {table_oid}[/green]")


@app.command()
def options(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    column_oid: Optional[int] = typer.Argument(None, help="Column oid"),
    values: Optional[List[str]] = typer.Argument(
        None, help="Option labels in order; omit to list the current legal values"
    ),
):
    """Show or replace the options of a dropdown column."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    column_oid = validate_required_arg(column_oid, "column_oid", ctx)
    db = get_notedb_instance()

    try:
        if values:
            current = {
                v.display_value: v.true_value
                for v in db.query("get_table_column_dropdown_values", column_oid=column_oid, table_oid=table_oid)
            }
            # Labels that already exist keep their stored value
            dropdown_values = [
                {"trueValue": current.get(label), "displayValue": label} for label in values
            ]
            db.execute(
                {
                    "action": "editTableColumnDropdownValues",
                    "tableOid": table_oid,
                    "columnOid": column_oid,
                    "dropdownValues": dropdown_values,
                }
            )
            console.print(f"[green]✅ Set {len(values)} options on column {column_oid}[/green]")
            return

        legal = list(db.query("get_table_column_dropdown_values", column_oid=column_oid, table_oid=table_oid))
    except (NoteDBError, ValueError) as e:
        fail(e)

    value_table = RichTable(title=f"Legal values of column {column_oid}")
    value_table.add_column("Value", style="dim")
    value_table.add_column("Display", style="cyan")
    for value in legal:
        value_table.add_row(value.true_value or "", value.display_value or "")
    console.print(value_table)
