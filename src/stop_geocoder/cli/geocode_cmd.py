"""Geocoding CLI commands: resolve, batch, dry-run probe and provider status."""

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from stop_geocoder.lib.geocoder import Point

if TYPE_CHECKING:
    from stop_geocoder.services.geocoding_service import ProbeResult

geocode_app = typer.Typer()


def _format_point(point: Point | None) -> str:
    if point is None:
        return "not found"
    confidence = f"{point.confidence:.2f}" if point.confidence is not None else "-"
    return f"{point.lat:.6f},{point.lng:.6f} ({point.provider}, {point.quality}, confidence {confidence})"


@geocode_app.command("resolve")
def resolve(
    address: str = typer.Argument(..., help="Stop address to resolve"),  # noqa: B008
    job_id: str | None = typer.Option(None, "--job-id", help="Job identifier for job overrides"),
    zip_code: str | None = typer.Option(None, "--zip", help="Known ZIP code"),
    force: bool = typer.Option(False, "--force", help="Bypass the cache"),  # noqa: FBT001
) -> None:
    """Resolve one address to its chosen point."""
    point = asyncio.run(_resolve(address, job_id, zip_code, force))
    typer.echo(_format_point(point))


@geocode_app.command("batch")
def batch(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File with one address per line"),  # noqa: B008
    concurrency: int | None = typer.Option(None, "--concurrency", min=1, help="Worker count"),
    force: bool = typer.Option(False, "--force", help="Bypass the cache"),  # noqa: FBT001
) -> None:
    """Resolve every address in a file, printing results in input order."""
    addresses = [line.strip() for line in file.read_text(encoding="utf-8").splitlines() if line.strip()]
    points = asyncio.run(_batch(addresses, concurrency, force))
    for address, point in zip(addresses, points, strict=True):
        typer.echo(f"{address}\t{_format_point(point)}")
    found = sum(1 for p in points if p is not None)
    typer.echo(f"\nResolved {found}/{len(addresses)} addresses")


@geocode_app.command("dry-run")
def dry_run(
    address: str = typer.Argument(..., help="Address to probe"),  # noqa: B008
    provider: str | None = typer.Option(None, "--provider", help="Only rank this provider's candidates"),
) -> None:
    """Query providers and print ranked candidates without touching the cache."""
    result = asyncio.run(_probe(address, provider))
    typer.echo(f"Query: {result.address.query_string or '(empty)'}")
    for outcome in result.outcomes:
        if outcome.error:
            typer.echo(f"  {outcome.provider}: error: {outcome.error}")
    if not result.ranked:
        typer.echo("No candidates")
        return
    for rank_no, candidate in enumerate(result.ranked, start=1):
        flag = " [out of bounds]" if candidate.out_of_bounds else ""
        typer.echo(
            f"{rank_no}. {candidate.provider:<10} {candidate.lat:.6f},{candidate.lng:.6f} "
            f"quality={candidate.quality} confidence={candidate.confidence:.2f} "
            f"adjusted={candidate.adjusted:.3f}{flag}"
        )


@geocode_app.command("providers")
def providers() -> None:
    """List registered providers and whether each is configured."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.lib.geocoder import get_all_provider_metadata

    for meta in get_all_provider_metadata(get_settings()):
        status = "configured" if meta["is_configured"] else "not configured"
        extra = ", last resort" if meta["last_resort"] else ""
        typer.echo(f"{meta['name']:<10} priority={meta['priority']} {status}{extra}")


@geocode_app.command("clear-blocklist")
def clear_blocklist(
    url: str = typer.Option("http://127.0.0.1:8000", "--url", help="Base URL of the running server"),
) -> None:
    """Clear rejected credentials held by a running server."""
    import httpx

    from stop_geocoder.core.config import get_settings

    endpoint = f"{url.rstrip('/')}{get_settings().api_v1_prefix}/geocoding/blocklist"
    try:
        response = httpx.delete(endpoint, timeout=10.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        typer.echo(f"Error: could not clear blocklist: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"Cleared {response.json()['cleared']} blocked credential(s)")


async def _resolve(address: str, job_id: str | None, zip_code: str | None, force: bool) -> Point | None:
    """Async implementation of single-address resolution."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.lib.geocoder import GeocodeContext
    from stop_geocoder.services.geocoding_service import AddressResolver

    resolver = AddressResolver.from_settings(get_settings())
    return await resolver.resolve(address, GeocodeContext(job_id=job_id, zip=zip_code), force_refresh=force)


async def _batch(addresses: list[str], concurrency: int | None, force: bool) -> list[Point | None]:
    """Async implementation of batch resolution."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.services.geocoding_service import AddressResolver

    settings = get_settings()
    resolver = AddressResolver.from_settings(settings)
    return await resolver.resolve_batch(
        addresses,
        concurrency or settings.geocoder_batch_concurrency,
        force_refresh=force,
    )


async def _probe(address: str, provider: str | None) -> "ProbeResult":
    """Async implementation of the dry-run probe."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.services.geocoding_service import AddressResolver

    resolver = AddressResolver.from_settings(get_settings())
    return await resolver.probe(address, provider)
