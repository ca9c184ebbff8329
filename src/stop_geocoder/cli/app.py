"""Typer CLI root application with serve command."""

import typer

from stop_geocoder.core.config import get_settings
from stop_geocoder.core.logging import setup_logging

app = typer.Typer(name="stop-geocoder", help="Stop address geocoding and cache maintenance CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "stop_geocoder.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from stop_geocoder.cli.cache_cmd import cache_app
    from stop_geocoder.cli.geocode_cmd import geocode_app
    from stop_geocoder.cli.maintenance_cmd import maintenance_app
    from stop_geocoder.cli.override_cmd import override_app

    app.add_typer(geocode_app, name="geocode", help="Address resolution commands")
    app.add_typer(cache_app, name="cache", help="Geocode cache inspection commands")
    app.add_typer(override_app, name="override", help="Manual coordinate override commands")
    app.add_typer(maintenance_app, name="maintenance", help="Cache scan and re-geocode commands")


_register_subcommands()
