"""Maintenance API endpoints: cache scan and gated re-geocode."""

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from pydantic import ValidationError

from stop_geocoder.core.config import Settings, get_settings
from stop_geocoder.core.dependencies import ProviderLoader, get_provider_loader, get_resolver
from stop_geocoder.lib.geocoder import BoundingBox, GeocoderConfigurationError
from stop_geocoder.lib.geocoder.reports import (
    load_scan_report,
    scan_report_path,
    write_regeocode_summary,
    write_scan_report,
)
from stop_geocoder.schemas.maintenance import RegeocodeRequest, RegeocodeSummary, ScanReport, ScanRequest
from stop_geocoder.services.geocoding_service import AddressResolver
from stop_geocoder.services.maintenance_service import regeocode, scan_cache

maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


def _report_path(settings: Settings, name: str | None) -> Path:
    if name is None:
        return scan_report_path(settings.reports_dir)
    if Path(name).name != name or not name.endswith(".json"):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Report must be a JSON file name inside the reports directory.",
        )
    return Path(settings.reports_dir) / name


@maintenance_router.post("/scan", response_model=ScanReport)
async def trigger_scan(
    request: ScanRequest,
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ScanReport:
    """Scan every cache entry and write a dated report."""
    try:
        bbox = BoundingBox.parse(request.bbox) if request.bbox else settings.bounding_box
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    threshold = (
        request.confidence_threshold if request.confidence_threshold is not None else settings.confidence_threshold
    )

    report = await scan_cache(resolver.cache, bbox, threshold, settings.scan_sample_limit)
    path = await write_scan_report(report, settings.reports_dir)
    logger.info(f"Scan report written to {path}")
    return report


@maintenance_router.post("/regeocode", response_model=RegeocodeSummary)
async def trigger_regeocode(
    request: RegeocodeRequest,
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
    load_providers: ProviderLoader = Depends(get_provider_loader),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> RegeocodeSummary:
    """Re-geocode the entries flagged by a scan report.

    Dry run unless ``allow_write`` is set and the deployment allows writes.
    """
    path = _report_path(settings, request.report)
    try:
        report = await load_scan_report(path)
    except FileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Scan report {path.name} not found.") from e
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Scan report {path.name} is not readable.",
        ) from e

    order = request.provider_order or settings.regeocode_provider_order_list
    try:
        summary = await regeocode(
            report,
            resolver.cache,
            load_providers([name.strip().lower() for name in order]),
            threshold=settings.confidence_threshold,
            allow_write=request.allow_write,
            write_allowed=settings.regeocode_allow,
            delay_ms=request.delay_ms if request.delay_ms is not None else settings.regeocode_delay_ms,
            blocklist=resolver.blocklist,
        )
    except GeocoderConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    await write_regeocode_summary(summary, settings.reports_dir)
    return summary
