"""Root CLI application."""

from __future__ import annotations

import typer

from counterbase.cli.api import api_app
from counterbase.cli.crawl import crawl_app
from counterbase.cli.db import db_app
from counterbase.cli.discover import discover_app

app = typer.Typer(
    name="counterbase",
    help="Incremental harvesting of cyclist, pedestrian and transit counts.",
    no_args_is_help=True,
)

app.add_typer(crawl_app, name="crawl", help="Fetch new points from every active counter")
app.add_typer(discover_app, name="discover", help="Generate directory entries from a source")
app.add_typer(api_app, name="api", help="Run the submit API")
app.add_typer(db_app, name="db", help="Manage the local DuckDB store")


def main() -> None:
    from counterbase.config.settings import get_settings
    from counterbase.utils.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, json_output=settings.log_json)
    app()
