"""Abstract base geocoder interface and the shared candidate types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum

from stop_geocoder.lib.geocoder.address import NormalizedAddress


class ProviderName(StrEnum):
    """Known candidate sources."""

    GOOGLE = "google"
    MAPBOX = "mapbox"
    OPENCAGE = "opencage"
    NOMINATIM = "nominatim"
    OVERRIDE = "override"
    KNOWN = "known"


# Fixed tie-break priority per provider (higher = more trusted)
PROVIDER_PRIORITY: dict[str, int] = {
    ProviderName.GOOGLE: 4,
    ProviderName.MAPBOX: 3,
    ProviderName.OPENCAGE: 2,
    ProviderName.NOMINATIM: 1,
}

# Confidence ceiling for a result located outside the target country
FOREIGN_COUNTRY_MAX_CONFIDENCE = 0.2


def provider_priority(provider: str) -> int:
    """Tie-break priority for a provider name; unknown providers rank 0."""
    return PROVIDER_PRIORITY.get(provider, 0)


@dataclass
class Candidate:
    """One provider's proposed coordinate for one query.

    ``quality`` is the provider's native precision label; the scorer maps it
    onto the common vocabulary and sets ``adjusted`` / ``out_of_bounds``.
    """

    lat: float
    lng: float
    provider: str
    quality: str = "unknown"
    confidence: float = 0.0
    raw_ref: dict | None = None
    adjusted: float | None = None
    out_of_bounds: bool = False

    def __post_init__(self) -> None:
        if not (-90 <= self.lat <= 90):
            msg = f"lat must be between -90 and 90, got {self.lat}"
            raise ValueError(msg)
        if not (-180 <= self.lng <= 180):
            msg = f"lng must be between -180 and 180, got {self.lng}"
            raise ValueError(msg)
        if not (0 <= self.confidence <= 1):
            msg = f"confidence must be between 0 and 1, got {self.confidence}"
            raise ValueError(msg)

    @property
    def priority(self) -> int:
        return provider_priority(self.provider)


@dataclass
class GeocodeContext:
    """Caller-supplied context for one resolution.

    Derived by collaborators (route scraping, dashboards); the core only
    relies on these plain fields.
    """

    job_id: str | None = None
    zip: str | None = None
    known_point: tuple[float, float] | None = None
    extra: dict[str, str] = field(default_factory=dict)


class GeocodingProviderError(Exception):
    """Raised when a geocoding provider experiences a transport or service error.

    Distinguishes provider failures (timeout, HTTP error, connection error,
    non-success status) from a successful response with no match (which
    returns an empty list).

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
        credential_rejected: Whether the provider refused the configured
            credential; such providers are blocklisted by the resolver.
    """

    def __init__(
        self,
        provider_name: str,
        message: str,
        status_code: int | None = None,
        *,
        credential_rejected: bool = False,
    ) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code
        self.credential_rejected = credential_rejected
        super().__init__(f"{provider_name}: {message}")


class GeocoderConfigurationError(Exception):
    """Raised when a maintenance run is missing a required flag or credential."""


def cap_for_country(confidence: float, country_code: str | None, target_country: str) -> float:
    """Cap the confidence of a result outside the target country.

    A missing country code is not penalized.
    """
    if country_code and country_code.strip().lower() != target_country.lower():
        return min(confidence, FOREIGN_COUNTRY_MAX_CONFIDENCE)
    return confidence


class BaseGeocoder(ABC):
    """Abstract geocoder interface. All providers must implement this."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this geocoder provider."""

    @property
    def priority(self) -> int:
        """Tie-break priority used by the scorer."""
        return provider_priority(self.provider_name)

    @property
    def requires_api_key(self) -> bool:
        """Whether this provider requires an API key to function."""
        return False

    @property
    def is_configured(self) -> bool:
        """Whether this provider has all required configuration (e.g., API keys)."""
        return True

    @property
    def last_resort(self) -> bool:
        """Whether this provider is only consulted when no other provider found a candidate."""
        return False

    @property
    def rate_limit_delay(self) -> float:
        """Minimum delay in seconds between requests (for rate-limited providers)."""
        return 0.0

    @abstractmethod
    async def query(
        self,
        address: NormalizedAddress,
        context: GeocodeContext | None = None,
    ) -> list[Candidate]:
        """Geocode one normalized address.

        Adapters never retry; retry policy belongs to the maintenance pipeline.

        Args:
            address: Normalized address to look up.
            context: Optional caller context (ZIP used to narrow the
                provider's region filter, job id for diagnostics).

        Returns:
            Candidates in provider order; empty when nothing matched.

        Raises:
            GeocodingProviderError: On transport, status or parse errors.
        """
