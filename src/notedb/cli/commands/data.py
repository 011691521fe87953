"""Table data viewing commands for NoteDB CLI."""

import typer
from typing import Iterable, List, Optional
from rich.table import Table as RichTable

from notedb.core.errors import NoteDBError
from notedb.models import CellValue, RowStart
from notedb.cli.utils import console, fail, get_notedb_instance, validate_required_arg

app = typer.Typer(help="Table data viewing commands", invoke_without_command=True)


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def _format_cell(cell: CellValue) -> str:
    text = cell.display_value if cell.display_value is not None else "[dim]NULL[/dim]"
    if cell.failed_validations:
        text += " [red]⚠[/red]"
    return text


def _print_cells(cells: Iterable[CellValue], title: str) -> List[str]:
    """Print a row as a two-column table; returns the failure descriptions."""
    table = RichTable(title=title)
    table.add_column("Column", style="cyan")
    table.add_column("Value")
    failures = []
    for cell in cells:
        table.add_row(cell.column_name, _format_cell(cell))
        failures.extend(f"{cell.column_name}: {f.description}" for f in cell.failed_validations)
    console.print(table)
    return failures


@app.command()
def show(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    page: int = typer.Option(1, "--page", "-p", help="1-based page number"),
    page_size: Optional[int] = typer.Option(
        None, "--page-size", "-s", help="Rows per page (default from config)"
    ),
    parent: Optional[int] = typer.Option(
        None, "--parent", help="Owning row when the table is a child table"
    ),
    errors: bool = typer.Option(
        False, "--errors", "-e", help="List failed validations below the table"
    ),
):
    """Show a page of a table's rows."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    db = get_notedb_instance()

    try:
        metadata = db.query("get_table_metadata", table_oid=table_oid)
        columns = db.query("get_table_column_list", table_oid=table_oid)
        entries = list(
            db.query(
                "get_table_data",
                table_oid=table_oid,
                parent_row_oid=parent,
                page_num=page,
                page_size=page_size,
            )
        )
    except (NoteDBError, ValueError) as e:
        fail(e)

    result_table = RichTable(title=f"{metadata.name} (page {page})")
    result_table.add_column("#", style="dim")
    result_table.add_column("Row", style="dim")
    for column in columns:
        result_table.add_column(column.name, style="cyan")

    rows = []
    failures = []
    for entry in entries:
        if isinstance(entry, RowStart):
            rows.append([str(entry.row_index), str(entry.row_oid)])
        else:
            rows[-1].append(_format_cell(entry))
            failures.extend(
                f"row {entry.row_oid}, {entry.column_name}: {f.description}"
                for f in entry.failed_validations
            )

    for values in rows:
        result_table.add_row(*values)

    console.print(result_table)
    console.print(f"\n[dim]{len(rows)} rows[/dim]")

    if errors and failures:
        console.print("\n[yellow]Failed validations:[/yellow]")
        for failure in failures:
            console.print(f"  {failure}")


@app.command()
def row(
    ctx: typer.Context,
    table_oid: Optional[int] = typer.Argument(None, help="Table oid"),
    row_oid: Optional[int] = typer.Argument(None, help="Row oid"),
    as_object: bool = typer.Option(
        False, "--object", "-o", help="Show the columns of the row's concrete type"
    ),
):
    """Show a single row."""
    table_oid = validate_required_arg(table_oid, "table_oid", ctx)
    row_oid = validate_required_arg(row_oid, "row_oid", ctx)
    db = get_notedb_instance()

    try:
        if as_object:
            entries = list(db.query("get_object_data", obj_type_oid=table_oid, obj_row_oid=row_oid))
        else:
            entries = list(db.query("get_table_row", table_oid=table_oid, row_oid=row_oid))
    except NoteDBError as e:
        fail(e)

    marker = entries[0]
    if not marker.row_exists:
        console.print(f"[red]❌ Row {row_oid} does not exist in table {table_oid}[/red]")
        raise typer.Exit(1)

    failures = _print_cells(entries[1:], f"Row {row_oid} (type {marker.table_oid})")
    for failure in failures:
        console.print(f"[yellow]⚠️  {failure}[/yellow]")
