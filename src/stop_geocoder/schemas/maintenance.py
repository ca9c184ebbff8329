"""Pydantic v2 schemas for the scan and re-geocode maintenance pipeline."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stop_geocoder.lib.geocoder.base import Candidate
from stop_geocoder.lib.geocoder.bbox import BoundingBox
from stop_geocoder.lib.geocoder.types import Point


class ScanTotals(BaseModel):
    """Counters accumulated over one scan."""

    files: int = 0
    low_confidence: int = 0
    out_of_bounds: int = 0
    no_chosen: int = 0
    errors: int = 0


class ScanSample(BaseModel):
    """A flagged or unreadable entry kept as a report sample."""

    key: str
    chosen: Point | None = None
    error: str | None = None


class ScanSamples(BaseModel):
    low_confidence: list[ScanSample] = Field(default_factory=list)
    out_of_bounds: list[ScanSample] = Field(default_factory=list)
    errors: list[ScanSample] = Field(default_factory=list)


class ScanDetail(BaseModel):
    """Per-key scan verdict."""

    chosen: Point | None = None
    low_confidence: bool = False
    out_of_bounds: bool = False
    error: str | None = None

    @property
    def flagged(self) -> bool:
        return self.error is None and (self.low_confidence or self.out_of_bounds)


class ScanReport(BaseModel):
    """One immutable maintenance scan artifact."""

    model_config = ConfigDict(frozen=True)

    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    bbox_used: dict[str, float]
    confidence_threshold: float
    totals: ScanTotals = Field(default_factory=ScanTotals)
    samples: ScanSamples = Field(default_factory=ScanSamples)
    details: dict[str, ScanDetail] = Field(default_factory=dict)

    @field_validator("bbox_used")
    @classmethod
    def validate_bbox_used(cls, v: dict[str, float]) -> dict[str, float]:
        if set(v) != {"west", "south", "east", "north"}:
            msg = "bbox_used needs exactly west, south, east and north"
            raise ValueError(msg)
        BoundingBox(**v)
        return v

    @property
    def bounding_box(self) -> BoundingBox:
        """The region the scan judged entries against."""
        return BoundingBox(**self.bbox_used)

    def flagged_keys(self) -> list[str]:
        """Keys flagged low-confidence or out-of-bounds, in report order."""
        return [key for key, detail in self.details.items() if detail.flagged]


class ProviderAttempt(BaseModel):
    """One provider call made while re-geocoding an address."""

    provider: str
    candidate: Candidate | None = None
    accepted: bool = False
    error: str | None = None


class RegeocodeChange(BaseModel):
    """Outcome for one address that produced a candidate."""

    key: str
    address: str
    chosen_before: Point | None = None
    candidate: Candidate
    accepted: bool
    written: bool = False
    tried: list[ProviderAttempt] = Field(default_factory=list)


class RegeocodeError(BaseModel):
    """An address that could not be re-geocoded."""

    key: str
    error: str
    tried: list[ProviderAttempt] = Field(default_factory=list)


class RegeocodeSummary(BaseModel):
    """Structured result of a re-geocode run."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    dry_run: bool
    provider_order: list[str]
    total: int = 0
    processed: int = 0
    updated: int = 0
    would_update: int = 0
    suggested: int = 0
    changes: list[RegeocodeChange] = Field(default_factory=list)
    errors: list[RegeocodeError] = Field(default_factory=list)


class ScanRequest(BaseModel):
    """Request to scan the cache; omitted values fall back to settings."""

    bbox: str | None = Field(default=None, description="west,south,east,north")
    confidence_threshold: float | None = Field(default=None, ge=0, le=1)


class RegeocodeRequest(BaseModel):
    """Request to re-geocode the entries flagged by a scan report."""

    report: str | None = Field(default=None, description="Report file name; defaults to today's scan")
    provider_order: list[str] | None = None
    allow_write: bool = False
    delay_ms: int | None = Field(default=None, ge=0)
