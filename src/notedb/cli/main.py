"""Main CLI entry point for NoteDB."""

import typer
from typing import Optional
from pathlib import Path

# Import command groups
from notedb.cli.commands import table, column, row, cell, data

app = typer.Typer(
    name="notedb",
    help="NoteDB - Typed, relational and hierarchical note tables",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """
    NoteDB - Typed, relational and hierarchical note tables
    """
    if ctx.invoked_subcommand is None:
        # No subcommand was invoked, show help
        print(ctx.get_help())
        raise typer.Exit(0)


# Add command groups
app.add_typer(table.app, name="table", help="Table and object type commands")
app.add_typer(column.app, name="column", help="Column management commands")
app.add_typer(row.app, name="row", help="Row management commands")
app.add_typer(cell.app, name="cell", help="Cell editing commands")
app.add_typer(data.app, name="data", help="Table data viewing commands")


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None, help="Directory to initialize project in (default: current directory)"
    ),
    database: str = typer.Option(
        "notes.db", "--database", "-d", help="Database file, relative to the project"
    ),
):
    """Initialize a new NoteDB project."""
    from notedb.config import Config

    project_path = path or Path.cwd()

    try:
        config = Config(project_path)
        config.init_project(database_path=database)
        typer.secho(
            f"✅ Initialized NoteDB project in {project_path}", fg=typer.colors.GREEN
        )
        typer.secho(f"   Database: {config.database_path}", fg=typer.colors.CYAN)
    except FileExistsError:
        typer.secho(f"❌ Project already exists in {project_path}", fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command()
def version():
    """Show NoteDB version."""
    from notedb import __version__

    typer.echo(f"NoteDB version {__version__}")


@app.command()
def status():
    """Show NoteDB status including configuration and environment variables."""
    from notedb.cli.utils import console, get_config_with_data, show_env_config

    config, config_data = get_config_with_data()

    console.print("\n[bold]NoteDB Status[/bold]")
    console.print(f"Project: {config.project_dir}")
    console.print(f"Database: {config.database_path}")
    console.print(
        f"Page size: {config_data.default_page_size} (max {config_data.max_page_size})"
    )
    console.print(f"Log level: {config_data.log_level}")

    # Show environment variables
    show_env_config()


if __name__ == "__main__":
    app()
