"""CLI commands for running crawl passes."""

from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import typer
from typing_extensions import Annotated

crawl_app = typer.Typer(no_args_is_help=True)


def _local_path(url: str, default: Path) -> Path | None:
    """DuckDB file for a sink URL, or None when the URL is a remote endpoint."""
    parts = urlsplit(url)
    if parts.scheme in ("http", "https"):
        return None
    if parts.scheme == "duckdb":
        target = parts.netloc + parts.path
        return Path(target) if target else default
    if not url:
        return default
    typer.echo(f"Error: unsupported sink URL {url!r} (use http(s):// or duckdb:<path>)", err=True)
    raise typer.Exit(1)


@crawl_app.command("run")
def crawl_run(
    directory_url: Annotated[
        Optional[str], typer.Option("--directory-url", help="Counter directory: file://, http(s):// or path")
    ] = None,
    submit_url: Annotated[
        Optional[str], typer.Option("--submit-url", help="Submit endpoint, or duckdb:<path>")
    ] = None,
    query_url: Annotated[
        Optional[str], typer.Option("--query-url", help="Query endpoint, or duckdb:<path>")
    ] = None,
    private_domains: Annotated[
        Optional[str],
        typer.Option(
            "--eco-counter-private-domains",
            help="Comma-separated domains for ecocounter://private sources; "
            "each needs ECO_VISIO_<DOMAIN>_{USERNAME,PASSWORD,USER_ID,DOMAIN_ID}",
        ),
    ] = None,
) -> None:
    """Run one crawl pass over every active counter and exit."""
    import duckdb

    from counterbase.config.settings import get_settings
    from counterbase.crawl.crawler import CrawlError, Crawler, FetchErrors
    from counterbase.directory.loader import DirectoryError, load_directory
    from counterbase.query.http import HttpQuerier, QueryError
    from counterbase.sources import build_getters
    from counterbase.sources.registry import add_private_domains
    from counterbase.storage.duckdb_store import DuckDBStore
    from counterbase.submit.http import HttpSubmitter, SubmitError

    settings = get_settings()
    timeout = settings.crawler.request_timeout

    try:
        directory = load_directory(directory_url or settings.crawler.directory_url, timeout=timeout)
    except DirectoryError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    submit_url = submit_url if submit_url is not None else settings.crawler.submit_url
    query_url = query_url if query_url is not None else settings.crawler.query_url
    default_db = settings.storage.duckdb_path

    try:
        with ExitStack() as stack:
            stores: dict[Path, DuckDBStore] = {}

            def local_store(path: Path) -> DuckDBStore:
                if path not in stores:
                    stores[path] = stack.enter_context(DuckDBStore(path).connect())
                return stores[path]

            submit_path = _local_path(submit_url, default_db)
            submitter = local_store(submit_path) if submit_path else HttpSubmitter(submit_url, timeout=timeout)

            query_path = _local_path(query_url, default_db)
            querier = local_store(query_path) if query_path else HttpQuerier(query_url, timeout=timeout)

            crawler = Crawler(directory=directory, querier=querier, submitter=submitter)

            getters = build_getters(settings)
            if private_domains:
                add_private_domains(
                    getters["ecocounter"],  # type: ignore[arg-type]
                    [d.strip() for d in private_domains.split(",") if d.strip()],
                )
            for scheme, getter in getters.items():
                crawler.add_getter(scheme, getter)

            crawler.run()
    except FetchErrors as e:
        for err in e.errors:
            typer.echo(f"  [ERROR] {err}", err=True)
        typer.echo(f"Crawl finished with {len(e.errors)} failed direction(s).", err=True)
        raise typer.Exit(1)
    # Sink and store failures abort the pass.
    except (CrawlError, SubmitError, QueryError, duckdb.Error) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("Done.")
