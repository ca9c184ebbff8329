"""Override CLI commands for manual coordinate corrections."""

import asyncio

import typer

override_app = typer.Typer()


@override_app.command("set")
def set_override(
    lat: float = typer.Option(..., "--lat", min=-90, max=90, help="Latitude (-90 to 90)"),  # noqa: B008
    lng: float = typer.Option(..., "--lng", min=-180, max=180, help="Longitude (-180 to 180)"),  # noqa: B008
    address: str | None = typer.Option(None, "--address", help="Address the correction applies to"),
    job_id: str | None = typer.Option(None, "--job-id", help="Job the correction applies to"),
) -> None:
    """Set a manual point for an address, a job, or both."""
    if not address and not job_id:
        typer.echo("Error: pass --address and/or --job-id", err=True)
        raise typer.Exit(code=1)
    try:
        key = asyncio.run(_set_override(lat, lng, address, job_id))
    except (ValueError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo("Override saved:")
    if key:
        typer.echo(f"  Address key: {key}")
    if job_id:
        typer.echo(f"  Job: {job_id}")
    typer.echo(f"  Lat/Lng: {lat}, {lng}")


@override_app.command("list")
def list_overrides() -> None:
    """Print every override."""
    table = asyncio.run(_table())
    for key, point in sorted(table.by_address.items()):
        typer.echo(f"address\t{key}\t{point.lat},{point.lng}")
    for job_id, point in sorted(table.by_job.items()):
        typer.echo(f"job\t{job_id}\t{point.lat},{point.lng}")
    if not table.by_address and not table.by_job:
        typer.echo("No overrides")


async def _set_override(lat: float, lng: float, address: str | None, job_id: str | None) -> str | None:
    """Async implementation of override set; returns the address key used."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.lib.geocoder import OverrideStore, cache_key, normalize_address

    settings = get_settings()
    key = cache_key(normalize_address(address), settings.cache_key_max_length) if address else None
    await OverrideStore(settings.overrides_path).set(lat, lng, address_key=key or None, job_id=job_id)
    return key


async def _table():  # noqa: ANN202
    """Async implementation of override list."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.lib.geocoder import OverrideStore

    return await OverrideStore(get_settings().overrides_path).table()
