"""CLI commands that synthesize directory entries from a source."""

from __future__ import annotations

import typer
from typing_extensions import Annotated

discover_app = typer.Typer(no_args_is_help=True)


@discover_app.command("hfxtransit")
def discover_hfxtransit() -> None:
    """Print one counter per Halifax Transit route as directory JSON."""
    from counterbase.config.settings import get_settings
    from counterbase.directory.loader import dump_counters
    from counterbase.sources import get_getter

    settings = get_settings()
    getter = get_getter("hfxtransit", settings)
    typer.echo(dump_counters(getter.counters()))  # type: ignore[attr-defined]


@discover_app.command("ecocounter")
def discover_ecocounter(
    organization: Annotated[str, typer.Argument(help="Eco-Visio public page / organization id")],
) -> None:
    """Print the counters on an Eco-Visio public page as directory JSON."""
    from counterbase.config.settings import get_settings
    from counterbase.directory.loader import dump_counters
    from counterbase.sources import get_getter

    settings = get_settings()
    getter = get_getter("ecocounter", settings)
    typer.echo(dump_counters(getter.counters(organization)))  # type: ignore[attr-defined]
