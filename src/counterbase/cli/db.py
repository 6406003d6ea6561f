"""CLI commands for managing the local DuckDB store."""

from __future__ import annotations

import polars as pl
import typer
from rich.console import Console
from rich.table import Table
from typing_extensions import Annotated

db_app = typer.Typer(no_args_is_help=True)
console = Console()


def _get_store():
    from counterbase.config.settings import get_settings
    from counterbase.storage.duckdb_store import DuckDBStore

    settings = get_settings()
    return DuckDBStore(settings.storage.duckdb_path)


@db_app.command("init")
def db_init() -> None:
    """Create the counter_data table and latest_counter_data view."""
    store = _get_store()
    with store.connect():
        pass
    typer.echo("Store ready.")


@db_app.command("info")
def db_info() -> None:
    """Show point counts and time ranges per counter direction."""
    store = _get_store()

    with store.connect() as db:
        df = db.counter_summary()

    if df.is_empty():
        typer.echo("No points stored yet. Run `counterbase crawl run` first.")
        return

    _print_dataframe(df, title="Stored counters")


@db_app.command("latest")
def db_latest(
    counter: Annotated[str, typer.Option("--counter", "-c", help="Counter id")],
    rows: Annotated[int, typer.Option("--rows", "-n", help="Number of rows")] = 10,
) -> None:
    """Show the latest N points for a counter."""
    store = _get_store()

    with store.connect() as db:
        df = db.latest_points(counter, rows)

    if df.is_empty():
        typer.echo(f"No data found for {counter}")
    else:
        _print_dataframe(df)


def _print_dataframe(df: pl.DataFrame, title: str | None = None) -> None:
    """Print a Polars DataFrame as a Rich table."""
    table = Table(title=title, show_header=True, header_style="bold")

    for col in df.columns:
        table.add_column(col)

    for row in df.iter_rows():
        table.add_row(*[str(v) for v in row])

    console.print(table)
