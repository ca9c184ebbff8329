"""Cache CLI commands: inspect, delete and list cached geocode records."""

import asyncio

import typer

cache_app = typer.Typer()


@cache_app.command("inspect")
def inspect(address: str = typer.Argument(..., help="Address whose record to show")) -> None:  # noqa: B008
    """Print the cached record for an address as JSON."""
    key, record = asyncio.run(_inspect(address))
    if record is None:
        typer.echo(f"No cached record for key {key!r}", err=True)
        raise typer.Exit(code=1)
    typer.echo(record.model_dump_json(indent=2))


@cache_app.command("delete")
def delete(address: str = typer.Argument(..., help="Address whose record to drop")) -> None:  # noqa: B008
    """Delete the cached record so the next resolution re-queries providers."""
    key, removed = asyncio.run(_delete(address))
    if not removed:
        typer.echo(f"No cached record for key {key!r}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Deleted {key}")


@cache_app.command("list")
def list_entries(
    low_confidence: bool = typer.Option(False, "--low-confidence", help="Only low-confidence entries"),  # noqa: FBT001
    limit: int = typer.Option(50, "--limit", min=1, help="Maximum entries to print"),
) -> None:
    """List cached keys with their chosen point."""
    rows = asyncio.run(_list(low_confidence))
    for key, summary in rows[:limit]:
        typer.echo(f"{key}\t{summary}")
    typer.echo(f"\n{len(rows)} entries" + (f" (showing {limit})" if len(rows) > limit else ""))


async def _inspect(address: str):  # noqa: ANN202
    """Async implementation of cache inspect."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.services.geocoding_service import AddressResolver

    resolver = AddressResolver.from_settings(get_settings())
    key = resolver.key_for(address)
    return key, (await resolver.cache.get(key) if key else None)


async def _delete(address: str) -> tuple[str, bool]:
    """Async implementation of cache delete."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.services.geocoding_service import AddressResolver

    resolver = AddressResolver.from_settings(get_settings())
    key = resolver.key_for(address)
    return key, (await resolver.cache.delete(key) if key else False)


async def _list(low_confidence: bool) -> list[tuple[str, str]]:
    """Async implementation of cache list."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.lib.geocoder import FileGeocodeCache, GeocodeRecord

    settings = get_settings()
    threshold = settings.confidence_threshold

    def _is_low(_key: str, record: GeocodeRecord) -> bool:
        return record.chosen is None or (record.chosen.confidence or 0.0) < threshold

    pairs = await FileGeocodeCache(settings.cache_path).list(_is_low if low_confidence else None)
    rows: list[tuple[str, str]] = []
    for key, record in pairs:
        chosen = record.chosen
        if chosen is None:
            rows.append((key, "no chosen point"))
        else:
            rows.append((key, f"{chosen.lat:.6f},{chosen.lng:.6f} {chosen.provider} confidence={chosen.confidence}"))
    return rows
