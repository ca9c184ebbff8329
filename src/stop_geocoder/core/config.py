"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stop_geocoder.lib.geocoder.bbox import BoundingBox


def split_provider_order(value: str) -> list[str]:
    """Split a comma-separated provider list into unique lowercase names."""
    names: list[str] = []
    for part in value.split(","):
        name = part.strip().lower()
        if name and name not in names:
            names.append(name)
    return names


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Service region and acceptance
    geo_bbox: str = Field(
        default="-74.5,40.2,-72.5,41.2",
        description="Operating region as west,south,east,north (WGS84 degrees)",
    )
    confidence_threshold: float = Field(
        default=0.8,
        description="Minimum chosen confidence before an entry is flagged or a re-query is accepted",
        ge=0,
        le=1,
    )

    @field_validator("geo_bbox")
    @classmethod
    def validate_geo_bbox(cls, v: str) -> str:
        BoundingBox.parse(v)
        return v

    # Re-geocode maintenance
    regeocode_allow: bool = Field(
        default=False,
        description="Allow the re-geocode step to write back to the cache",
    )
    regeocode_delay_ms: int = Field(
        default=600,
        description="Delay between successive address lookups during re-geocode",
        ge=0,
    )
    regeocode_provider_order: str = Field(
        default="google,opencage,mapbox",
        validation_alias=AliasChoices("regeocode_provider_order", "provider_order"),
        description="Comma-separated provider order used by the re-geocode step",
    )

    # Geocoding: general
    geocoder_resolve_order: str = Field(
        default="google,mapbox,opencage,nominatim",
        description="Comma-separated provider order used for request-path resolution",
    )
    geocoder_target_country: str = Field(
        default="us",
        description="ISO 3166-1 alpha-2 country the service operates in",
    )
    geocoder_batch_concurrency: int = Field(
        default=8,
        description="Worker count for batch resolution",
        gt=0,
    )

    # Geocoding: Google Maps
    geocoder_google_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("geocoder_google_api_key", "google_maps_api_key", "google_api_key"),
        description="Google Maps Geocoding API key",
    )
    geocoder_google_timeout: float = Field(
        default=10.0,
        description="Google Maps request timeout in seconds",
        gt=0,
    )

    # Geocoding: Mapbox
    geocoder_mapbox_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("geocoder_mapbox_api_key", "mapbox_token"),
        description="Mapbox access token",
    )
    geocoder_mapbox_timeout: float = Field(
        default=10.0,
        description="Mapbox request timeout in seconds",
        gt=0,
    )

    # Geocoding: OpenCage
    geocoder_opencage_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("geocoder_opencage_api_key", "opencage_key"),
        description="OpenCage API key",
    )
    geocoder_opencage_timeout: float = Field(
        default=10.0,
        description="OpenCage request timeout in seconds",
        gt=0,
    )

    # Geocoding: Nominatim (OpenStreetMap)
    geocoder_nominatim_enabled: bool = Field(
        default=True,
        description="Enable Nominatim (OpenStreetMap) as the last-resort geocoder",
    )
    geocoder_nominatim_email: str = Field(
        default="",
        description="Email for Nominatim usage policy compliance",
    )
    geocoder_nominatim_user_agent: str = Field(
        default="stop-geocoder/1.0",
        description="User-Agent header sent to Nominatim",
    )
    geocoder_nominatim_timeout: float = Field(
        default=10.0,
        description="Nominatim request timeout in seconds",
        gt=0,
    )

    # Storage
    cache_dir: str = Field(
        default="./cache/geocode",
        description="Root directory of the geocode cache",
    )
    cache_version: str = Field(
        default="v2",
        description="Versioned cache sub-directory; bump to migrate the record schema",
    )
    cache_key_max_length: int = Field(
        default=120,
        description="Maximum length of a cache key",
        ge=16,
    )
    overrides_path: str = Field(
        default="./cache/geocode/overrides.json",
        description="JSON file holding manual coordinate overrides",
    )
    reports_dir: str = Field(
        default="./reports",
        description="Directory for scan and re-geocode reports",
    )
    scan_sample_limit: int = Field(
        default=50,
        description="Samples kept per category in a scan report",
        ge=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    @property
    def bounding_box(self) -> BoundingBox:
        """Parsed operating-region bounding box."""
        return BoundingBox.parse(self.geo_bbox)

    @property
    def regeocode_provider_order_list(self) -> list[str]:
        """Parse the re-geocode provider order into a list of provider names."""
        return split_provider_order(self.regeocode_provider_order)

    @property
    def geocoder_resolve_order_list(self) -> list[str]:
        """Parse the resolution provider order into a list of provider names."""
        return split_provider_order(self.geocoder_resolve_order)

    @property
    def cache_path(self) -> Path:
        """Versioned directory holding one JSON file per cache key."""
        return Path(self.cache_dir) / self.cache_version


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
