"""Persisted geocoding record types."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from stop_geocoder.lib.geocoder.base import Candidate


class Point(BaseModel):
    """An authoritative coordinate for an address."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    provider: str
    quality: str = "unknown"
    confidence: float | None = Field(default=None, ge=0, le=1)

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "Point":
        return cls(
            lat=candidate.lat,
            lng=candidate.lng,
            provider=candidate.provider,
            quality=candidate.quality,
            confidence=candidate.confidence,
        )


class Suggestion(BaseModel):
    """A non-authoritative re-geocode result kept beside an unchanged chosen point."""

    candidate: Candidate
    suggested_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class GeocodeRecord(BaseModel):
    """Persisted cache entry, one per normalized address.

    A record without ``chosen`` means resolution previously failed.
    Writes always replace the whole record.
    """

    query: str | None = None
    chosen: Point | None = None
    candidates: list[Candidate] = Field(default_factory=list)
    suggestion: Suggestion | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class OverrideTable(BaseModel):
    """On-disk layout of the override store: two independent indexes."""

    by_address: dict[str, Point] = Field(default_factory=dict)
    by_job: dict[str, Point] = Field(default_factory=dict)
