"""Table and object type commands for NoteDB CLI."""

import typer
from typing import List, Optional
from rich.table import Table as RichTable

from notedb.core.errors import NoteDBError
from notedb.cli.utils import console, fail, get_notedb_instance, validate_required_arg

app = typer.Typer(help="Table and object type commands", invoke_without_command=True)


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@app.command(name="list")
def list_tables():
    """List all top-level tables."""
    db = get_notedb_instance()
    tables = db.query("get_table_list")

    if not tables:
        console.print("[yellow]No tables found[/yellow]")
        return

    table = RichTable(title="Tables")
    table.add_column("OID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Columns", style="green")

    for entry in tables:
        columns = db.query("get_table_column_list", table_oid=entry.oid)
        table.add_row(str(entry.oid), entry.name, str(len(columns)))

    console.print(table)


@app.command(name="types")
def list_object_types():
    """List object types as an inheritance tree."""
    db = get_notedb_instance()
    object_types = db.query("get_object_type_list")

    if not object_types:
        console.print("[yellow]No object types found[/yellow]")
        return

    table = RichTable(title="Object Types")
    table.add_column("OID", style="dim")
    table.add_column("Name", style="cyan")

    for entry in object_types:
        table.add_row(str(entry.oid), "  " * entry.hierarchy_level + entry.name)

    console.print(table)


@app.command()
def create(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Table name"),
    masters: Optional[List[int]] = typer.Option(
        None, "--master", "-m", help="Master table oid to inherit columns from (repeatable)"
    ),
    object_type: bool = typer.Option(
        False, "--object-type", "-o", help="Create an object type instead of a table"
    ),
):
    """Create a new table or object type."""
    name = validate_required_arg(name, "name", ctx)
    db = get_notedb_instance()

    if object_type:
        action = {"action": "createObjectType", "objTypeName": name, "masterTableOids": masters or []}
    else:
        action = {"action": "createTable", "tableName": name, "masterTableOids": masters or []}

    try:
        oid = db.execute(action)
    except (NoteDBError, ValueError) as e:
        fail(e)

    kind = "object type" if object_type else "table"
    console.print(f"[green]✅ Created {kind} '{name.strip()}' with oid {oid}[/green]")


@app.command()
def edit(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New table name"),
    masters: Optional[List[int]] = typer.Option(
        None, "--master", "-m", help="Master table oid (repeatable); replaces the master list"
    ),
    clear_masters: bool = typer.Option(
        False, "--clear-masters", help="Remove every master table"
    ),
):
    """Rename a table or change its master tables."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    db = get_notedb_instance()

    try:
        current = db.query("get_table_metadata", table_oid=table_oid)
        new_masters = [] if clear_masters else (masters or current.master_table_oids)
        if current.is_object_type:
            action = {
                "action": "editObjectTypeMetadata",
                "objTypeOid": table_oid,
                "objTypeName": name or current.name,
                "masterTableOids": new_masters,
            }
        else:
            action = {
                "action": "editTableMetadata",
                "tableOid": table_oid,
                "tableName": name or current.name,
                "masterTableOids": new_masters,
            }
        db.execute(action)
    except (NoteDBError, ValueError) as e:
        fail(e)

    console.print(f"[green]✅ Updated table {table_oid}[/green]")


@app.command()
def delete(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Force deletion without confirmation"
    ),
):
    """Delete a table with its columns, rows and child tables."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    db = get_notedb_instance()

    try:
        current = db.query("get_table_metadata", table_oid=table_oid)
    except NoteDBError as e:
        fail(e)

    # Confirmation
    if not force:
        confirm = typer.confirm(
            f"Are you sure you want to delete '{current.name}'? This will delete all its rows."
        )
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    if current.is_object_type:
        action = {"action": "deleteObjectType", "objTypeOid": table_oid}
    else:
        action = {"action": "deleteTable", "tableOid": table_oid}

    try:
        db.execute(action)
    except NoteDBError as e:
        fail(e)

    console.print(f"[green]✅ Deleted '{current.name}'[/green]")


@app.command()
def info(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
):
    """Show detailed information about a table."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    db = get_notedb_instance()

    try:
        metadata = db.query("get_table_metadata", table_oid=table_oid)
        subtypes = list(db.query("get_subtype_list", table_oid=table_oid))
    except NoteDBError as e:
        fail(e)

    console.print(f"\n[bold]{'Object type' if metadata.is_object_type else 'Table'}: {metadata.name}[/bold]")
    console.print(f"OID: {metadata.oid}")
    if metadata.parent_table_oid is not None:
        console.print(f"Owned by table: {metadata.parent_table_oid}")
    console.print(f"Masters: {', '.join(map(str, metadata.master_table_oids)) or 'None'}")
    console.print(f"Subtypes: {', '.join(s.name for s in subtypes) or 'None'}")


@app.command()
def subtypes(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
):
    """List every transitive subtype of a table."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    db = get_notedb_instance()

    try:
        entries = list(db.query("get_subtype_list", table_oid=table_oid))
    except NoteDBError as e:
        fail(e)

    if not entries:
        console.print("[yellow]No subtypes found[/yellow]")
        return

    for entry in entries:
        console.print(f"{'  ' * (entry.hierarchy_level - 1)}{entry.name} [dim]({entry.oid})[/dim]")


@app.command()
def masters(
    table_oid: Optional[int] = typer.Argument(None, help="Table oid being edited"),
    allow_tables: bool = typer.Option(
        False, "--allow-tables", help="Include top-level tables as candidates"
    ),
):
    """List the tables that can be chosen as masters."""
    db = get_notedb_instance()

    try:
        options = list(
            db.query(
                "get_master_list_option_dropdown_values",
                table_oid=table_oid,
                allow_inheritance_from_tables=allow_tables,
            )
        )
    except NoteDBError as e:
        fail(e)

    table = RichTable(title="Master Candidates")
    table.add_column("OID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Available", style="green")

    for option in options:
        table.add_row(
            str(option.oid),
            "  " * option.hierarchy_level + option.name,
            "No" if option.is_disabled else "Yes",
        )

    console.print(table)
