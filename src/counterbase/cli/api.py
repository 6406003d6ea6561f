"""CLI command for serving the submit API."""

from __future__ import annotations

from typing import Optional

import typer
from typing_extensions import Annotated

api_app = typer.Typer(no_args_is_help=True)


@api_app.command("serve")
def api_serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Listen address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Listen port")] = None,
) -> None:
    """Accept POST /submit requests and store them in the local DuckDB file."""
    import uvicorn

    from counterbase.api.app import create_app
    from counterbase.config.settings import get_settings
    from counterbase.storage.duckdb_store import DuckDBStore

    settings = get_settings()
    store = DuckDBStore(settings.storage.duckdb_path)

    with store.connect() as db:
        uvicorn.run(
            create_app(db),
            host=host or settings.api.host,
            port=port or settings.api.port,
            log_level=settings.log_level.lower(),
        )
