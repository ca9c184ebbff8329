"""Pydantic v2 schemas for the geocoding API and CLI surfaces."""

from pydantic import BaseModel, Field

from stop_geocoder.lib.geocoder.types import GeocodeRecord, Point


class ResolveResponse(BaseModel):
    """Response for a single-address resolution."""

    address: str
    query: str
    found: bool
    point: Point | None = None


class ResolveBatchRequest(BaseModel):
    """Request to resolve many addresses at once."""

    addresses: list[str] = Field(..., min_length=1, max_length=5000)
    concurrency: int | None = Field(default=None, gt=0, le=64)
    force_refresh: bool = False


class ResolveBatchResponse(BaseModel):
    """Resolved points in input order; ``None`` marks not-found."""

    points: list[Point | None]


class OverrideRequest(BaseModel):
    """Manual correction keyed by address, job identifier, or both."""

    address: str | None = None
    job_id: str | None = None
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class OverrideListResponse(BaseModel):
    by_address: dict[str, Point]
    by_job: dict[str, Point]


class CacheEntryResponse(BaseModel):
    """A cache record with its storage key."""

    key: str
    record: GeocodeRecord


class ProviderInfo(BaseModel):
    """Metadata about a geocoding provider."""

    name: str
    priority: int
    requires_api_key: bool
    is_configured: bool
    last_resort: bool
    rate_limit_delay: float = 0.0
    blocked: bool = False


class BlocklistClearResponse(BaseModel):
    cleared: int
