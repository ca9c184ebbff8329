"""Geocoding API endpoints for resolution, providers, cache and overrides."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from stop_geocoder.core.config import Settings, get_settings
from stop_geocoder.core.dependencies import get_cache, get_override_store, get_resolver
from stop_geocoder.lib.geocoder import (
    GeocodeCache,
    GeocodeContext,
    GeocodeRecord,
    OverrideStore,
    Point,
    get_all_provider_metadata,
    normalize_address,
)
from stop_geocoder.schemas.geocoding import (
    BlocklistClearResponse,
    CacheEntryResponse,
    OverrideListResponse,
    OverrideRequest,
    ProviderInfo,
    ResolveBatchRequest,
    ResolveBatchResponse,
    ResolveResponse,
)
from stop_geocoder.services.geocoding_service import AddressResolver

geocoding_router = APIRouter(prefix="/geocoding", tags=["geocoding"])


def _require_address(address: str) -> str:
    stripped = address.strip()
    if not stripped:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Address must not be empty or whitespace-only.",
        )
    return stripped


@geocoding_router.get("/resolve", response_model=ResolveResponse)
async def resolve_address(
    address: str = Query(  # noqa: B008
        ...,
        min_length=1,
        max_length=500,
        description="Freeform stop address to resolve (1-500 characters)",
    ),
    job_id: str | None = Query(None, description="Job identifier, used for job overrides"),  # noqa: B008
    zip_code: str | None = Query(None, alias="zip", description="Known ZIP for the stop"),  # noqa: B008
    force_refresh: bool = Query(False, description="Bypass the cache"),  # noqa: B008
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
) -> ResolveResponse:
    """Resolve one address; ``found`` is false when nothing matched."""
    stripped = _require_address(address)
    normalized = normalize_address(stripped)
    point = await resolver.resolve(
        stripped,
        GeocodeContext(job_id=job_id, zip=zip_code),
        force_refresh=force_refresh,
    )
    return ResolveResponse(
        address=stripped,
        query=normalized.query_string,
        found=point is not None,
        point=point,
    )


@geocoding_router.post("/resolve-batch", response_model=ResolveBatchResponse)
async def resolve_batch(
    request: ResolveBatchRequest,
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ResolveBatchResponse:
    """Resolve many addresses; results keep the request order."""
    points = await resolver.resolve_batch(
        request.addresses,
        request.concurrency or settings.geocoder_batch_concurrency,
        force_refresh=request.force_refresh,
    )
    return ResolveBatchResponse(points=points)


@geocoding_router.get("/providers", response_model=list[ProviderInfo])
async def list_providers(
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> list[ProviderInfo]:
    """List registered providers with their configuration and blocklist state."""
    return [
        ProviderInfo(**meta, blocked=meta["name"] in resolver.blocklist)
        for meta in get_all_provider_metadata(settings)
    ]


@geocoding_router.delete("/blocklist", response_model=BlocklistClearResponse)
async def clear_blocklist(
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
) -> BlocklistClearResponse:
    """Forget every rejected credential so the providers are retried."""
    return BlocklistClearResponse(cleared=resolver.blocklist.clear())


@geocoding_router.get("/cache", response_model=list[CacheEntryResponse])
async def list_cache(
    low_confidence: bool = Query(False, description="Only entries below the confidence threshold"),  # noqa: B008
    limit: int = Query(100, ge=1, le=1000),  # noqa: B008
    cache: GeocodeCache = Depends(get_cache),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> list[CacheEntryResponse]:
    """List cache entries, optionally only the low-confidence ones."""
    threshold = settings.confidence_threshold

    def _is_low(_key: str, record: GeocodeRecord) -> bool:
        chosen = record.chosen
        return chosen is None or (chosen.confidence or 0.0) < threshold

    pairs = await cache.list(_is_low if low_confidence else None)
    return [CacheEntryResponse(key=key, record=record) for key, record in pairs[:limit]]


@geocoding_router.get("/cache/entry", response_model=CacheEntryResponse)
async def inspect_cache_entry(
    address: str = Query(..., min_length=1, max_length=500),  # noqa: B008
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
) -> CacheEntryResponse:
    """Show the cached record for an address."""
    key = resolver.key_for(_require_address(address))
    record = await resolver.cache.get(key) if key else None
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No cached record for this address.")
    return CacheEntryResponse(key=key, record=record)


@geocoding_router.delete("/cache/entry", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cache_entry(
    address: str = Query(..., min_length=1, max_length=500),  # noqa: B008
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
) -> Response:
    """Drop the cached record so the next resolution re-queries providers."""
    key = resolver.key_for(_require_address(address))
    if not key or not await resolver.cache.delete(key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No cached record for this address.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@geocoding_router.put("/overrides", response_model=Point)
async def set_override(
    request: OverrideRequest,
    resolver: AddressResolver = Depends(get_resolver),  # noqa: B008
) -> Point:
    """Record a manual correction for an address, a job, or both."""
    address_key = resolver.key_for(request.address) if request.address else None
    if not address_key and not request.job_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="An override needs an address or a job_id.",
        )
    try:
        return await resolver.overrides.set(request.lat, request.lng, address_key=address_key, job_id=request.job_id)
    except OSError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Overrides file could not be written.",
        ) from e


@geocoding_router.get("/overrides", response_model=OverrideListResponse)
async def list_overrides(
    overrides: OverrideStore = Depends(get_override_store),  # noqa: B008
) -> OverrideListResponse:
    table = await overrides.table()
    return OverrideListResponse(by_address=table.by_address, by_job=table.by_job)
