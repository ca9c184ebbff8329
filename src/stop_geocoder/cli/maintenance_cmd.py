"""Maintenance CLI commands: scan the cache and re-geocode flagged entries."""

import asyncio
from pathlib import Path

import typer

maintenance_app = typer.Typer()


@maintenance_app.command("scan")
def scan(
    bbox: str | None = typer.Option(None, "--bbox", help="west,south,east,north; defaults to GEO_BBOX"),
    threshold: float | None = typer.Option(None, "--threshold", min=0, max=1, help="Confidence threshold"),
) -> None:
    """Scan every cache entry and write a dated report."""
    from stop_geocoder.lib.geocoder import BoundingBox

    if bbox is not None:
        try:
            BoundingBox.parse(bbox)
        except ValueError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1) from e

    report, path = asyncio.run(_scan(bbox, threshold))
    totals = report.totals
    typer.echo(f"Scan report written to {path}")
    typer.echo(f"  Files:           {totals.files}")
    typer.echo(f"  Low confidence:  {totals.low_confidence}")
    typer.echo(f"  Out of bounds:   {totals.out_of_bounds}")
    typer.echo(f"  No chosen point: {totals.no_chosen}")
    typer.echo(f"  Errors:          {totals.errors}")


@maintenance_app.command("regeocode")
def regeocode(
    report: Path | None = typer.Argument(None, help="Scan report; defaults to today's report"),  # noqa: B008
    provider_order: str | None = typer.Option(None, "--provider-order", help="Comma-separated provider order"),
    write: bool = typer.Option(False, "--write", help="Write changes (needs REGEOCODE_ALLOW)"),  # noqa: FBT001
    delay_ms: int | None = typer.Option(None, "--delay-ms", min=0, help="Delay between addresses"),
) -> None:
    """Re-geocode the entries flagged by a scan report (dry run unless --write)."""
    from pydantic import ValidationError

    from stop_geocoder.lib.geocoder import GeocoderConfigurationError

    try:
        summary, path = asyncio.run(_regeocode(report, provider_order, write, delay_ms))
    except GeocoderConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    except FileNotFoundError as e:
        typer.echo(f"Error: scan report not found: {e.filename}", err=True)
        raise typer.Exit(code=1) from e
    except ValidationError as e:
        typer.echo(f"Error: unreadable scan report: {e.error_count()} validation error(s)", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Re-geocode {'dry run' if summary.dry_run else 'run'} ({', '.join(summary.provider_order)}):")
    typer.echo(f"  Flagged:    {summary.total}")
    typer.echo(f"  Processed:  {summary.processed}")
    if summary.dry_run:
        typer.echo(f"  Would update: {summary.would_update}")
    else:
        typer.echo(f"  Updated:    {summary.updated}")
    typer.echo(f"  Suggested:  {summary.suggested}")
    typer.echo(f"  Errors:     {len(summary.errors)}")
    for error in summary.errors:
        typer.echo(f"    {error.key}: {error.error}")
    typer.echo(f"Summary written to {path}")


async def _scan(bbox: str | None, threshold: float | None):  # noqa: ANN202
    """Async implementation of the cache scan."""
    from stop_geocoder.core.config import get_settings
    from stop_geocoder.lib.geocoder import BoundingBox, FileGeocodeCache
    from stop_geocoder.lib.geocoder.reports import write_scan_report
    from stop_geocoder.services.maintenance_service import scan_cache

    settings = get_settings()
    report = await scan_cache(
        FileGeocodeCache(settings.cache_path),
        BoundingBox.parse(bbox) if bbox else settings.bounding_box,
        threshold if threshold is not None else settings.confidence_threshold,
        settings.scan_sample_limit,
    )
    path = await write_scan_report(report, settings.reports_dir)
    return report, path


async def _regeocode(  # noqa: ANN202
    report_path: Path | None, provider_order: str | None, write: bool, delay_ms: int | None
):
    """Async implementation of the re-geocode run."""
    from stop_geocoder.core.config import get_settings, split_provider_order
    from stop_geocoder.lib.geocoder import FileGeocodeCache, get_configured_providers
    from stop_geocoder.lib.geocoder.reports import load_scan_report, scan_report_path, write_regeocode_summary
    from stop_geocoder.services.maintenance_service import regeocode as run_regeocode

    settings = get_settings()
    report = await load_scan_report(report_path or scan_report_path(settings.reports_dir))
    order = split_provider_order(provider_order) if provider_order else settings.regeocode_provider_order_list

    summary = await run_regeocode(
        report,
        FileGeocodeCache(settings.cache_path),
        get_configured_providers(settings, order),
        threshold=settings.confidence_threshold,
        allow_write=write,
        write_allowed=settings.regeocode_allow,
        delay_ms=delay_ms if delay_ms is not None else settings.regeocode_delay_ms,
    )
    path = await write_regeocode_summary(summary, settings.reports_dir)
    return summary, path
