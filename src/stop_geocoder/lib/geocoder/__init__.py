"""Geocoder library: multi-provider address resolution with a correctable cache.

Public API:
    - normalize_address: Canonicalize a raw address into its query form
    - cache_key: Filesystem-safe key for a normalized address
    - NormalizedAddress: Normalized address dataclass
    - BoundingBox: Operating-region bounding box
    - BaseGeocoder: Abstract provider interface
    - Candidate: One provider's proposed coordinate
    - GeocodeContext: Caller context (job id, ZIP, known point)
    - GeocodingProviderError / GeocoderConfigurationError: Error types
    - GoogleMapsGeocoder / MapboxGeocoder / OpenCageGeocoder / NominatimGeocoder
    - score / rank: Candidate scoring onto a common scale
    - select / accepts_replacement: Selection policy
    - GeocodeCache / FileGeocodeCache / InMemoryGeocodeCache: Record store
    - OverrideStore: Manual corrections
    - CredentialBlocklist: Rejected-credential memory
    - get_geocoder: Provider factory/registry
    - get_configured_providers: Get providers that are enabled and configured
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from stop_geocoder.lib.geocoder.address import NormalizedAddress, address_from_key, cache_key, normalize_address
from stop_geocoder.lib.geocoder.base import (
    PROVIDER_PRIORITY,
    BaseGeocoder,
    Candidate,
    GeocodeContext,
    GeocoderConfigurationError,
    GeocodingProviderError,
    ProviderName,
)
from stop_geocoder.lib.geocoder.bbox import BoundingBox
from stop_geocoder.lib.geocoder.cache import CacheEntry, FileGeocodeCache, GeocodeCache, InMemoryGeocodeCache
from stop_geocoder.lib.geocoder.credentials import CredentialBlocklist
from stop_geocoder.lib.geocoder.google_maps import GoogleMapsGeocoder
from stop_geocoder.lib.geocoder.mapbox import MapboxGeocoder
from stop_geocoder.lib.geocoder.nominatim import NominatimGeocoder
from stop_geocoder.lib.geocoder.opencage import OpenCageGeocoder
from stop_geocoder.lib.geocoder.overrides import OverrideStore
from stop_geocoder.lib.geocoder.scoring import GeocodeQuality, rank, score
from stop_geocoder.lib.geocoder.selection import Selection, SelectionReason, accepts_replacement, is_rooftop, select
from stop_geocoder.lib.geocoder.types import GeocodeRecord, OverrideTable, Point, Suggestion

if TYPE_CHECKING:
    from stop_geocoder.core.config import Settings

# Provider registry
_PROVIDERS: dict[str, type[BaseGeocoder]] = {
    "google": GoogleMapsGeocoder,
    "mapbox": MapboxGeocoder,
    "opencage": OpenCageGeocoder,
    "nominatim": NominatimGeocoder,
}


def get_available_providers() -> list[str]:
    """Return the names of all registered geocoder providers.

    Returns:
        Provider names, most trusted first.
    """
    return sorted(_PROVIDERS, key=lambda name: -PROVIDER_PRIORITY.get(name, 0))


def get_geocoder(provider: str, **kwargs: Any) -> BaseGeocoder:
    """Get a geocoder instance by provider name.

    Args:
        provider: Provider name (e.g., "google").
        **kwargs: Additional arguments forwarded to the provider constructor
            (e.g., ``timeout=2.0``).

    Returns:
        An instance of the requested geocoder provider.

    Raises:
        ValueError: If the provider is not registered.
    """
    cls = _PROVIDERS.get(provider)
    if cls is None:
        msg = f"Unknown geocoder provider: {provider!r}. Available: {list(_PROVIDERS.keys())}"
        raise ValueError(msg)
    return cls(**kwargs)


def _provider_kwargs(settings: Settings) -> dict[str, dict[str, Any]]:
    country = settings.geocoder_target_country
    return {
        "google": {
            "api_key": settings.geocoder_google_api_key or "",
            "timeout": settings.geocoder_google_timeout,
            "country": country,
        },
        "mapbox": {
            "api_key": settings.geocoder_mapbox_api_key or "",
            "timeout": settings.geocoder_mapbox_timeout,
            "country": country,
        },
        "opencage": {
            "api_key": settings.geocoder_opencage_api_key or "",
            "timeout": settings.geocoder_opencage_timeout,
            "country": country,
        },
        "nominatim": {
            "timeout": settings.geocoder_nominatim_timeout,
            "email": settings.geocoder_nominatim_email,
            "user_agent": settings.geocoder_nominatim_user_agent,
            "country": country,
        },
    }


def get_configured_providers(settings: Settings, order: list[str] | None = None) -> list[BaseGeocoder]:
    """Get geocoder instances for all providers that are enabled and properly configured.

    A provider without its credential is silently left out rather than
    failing the pipeline; unknown names are skipped.

    Args:
        settings: Application settings.
        order: Provider names in query order; defaults to the resolve order.

    Returns:
        List of configured BaseGeocoder instances, in the requested order.
    """
    names = order if order is not None else settings.geocoder_resolve_order_list
    kwargs_by_name = _provider_kwargs(settings)
    providers: list[BaseGeocoder] = []
    seen: set[str] = set()

    for name in names:
        name = name.strip().lower()
        if name in seen or name not in _PROVIDERS:
            continue
        seen.add(name)
        if name == "nominatim" and not settings.geocoder_nominatim_enabled:
            continue
        geocoder = get_geocoder(name, **kwargs_by_name[name])
        if geocoder.is_configured:
            providers.append(geocoder)

    return providers


def get_all_provider_metadata(settings: Settings) -> list[dict[str, Any]]:
    """Return metadata for all registered providers, configured or not.

    Args:
        settings: Application settings.

    Returns:
        One dict per registered provider, most trusted first.
    """
    configured = {p.provider_name for p in get_configured_providers(settings, get_available_providers())}
    kwargs_by_name = _provider_kwargs(settings)
    metadata: list[dict[str, Any]] = []
    for name in get_available_providers():
        provider = get_geocoder(name, **kwargs_by_name[name])
        metadata.append(
            {
                "name": name,
                "priority": provider.priority,
                "requires_api_key": provider.requires_api_key,
                "is_configured": name in configured,
                "last_resort": provider.last_resort,
                "rate_limit_delay": provider.rate_limit_delay,
            }
        )
    return metadata


__all__ = [
    "PROVIDER_PRIORITY",
    "BaseGeocoder",
    "BoundingBox",
    "CacheEntry",
    "Candidate",
    "CredentialBlocklist",
    "FileGeocodeCache",
    "GeocodeCache",
    "GeocodeContext",
    "GeocodeQuality",
    "GeocodeRecord",
    "GeocoderConfigurationError",
    "GeocodingProviderError",
    "GoogleMapsGeocoder",
    "InMemoryGeocodeCache",
    "MapboxGeocoder",
    "NominatimGeocoder",
    "NormalizedAddress",
    "OpenCageGeocoder",
    "OverrideStore",
    "OverrideTable",
    "Point",
    "ProviderName",
    "Selection",
    "SelectionReason",
    "Suggestion",
    "accepts_replacement",
    "address_from_key",
    "cache_key",
    "get_all_provider_metadata",
    "get_available_providers",
    "get_configured_providers",
    "get_geocoder",
    "is_rooftop",
    "normalize_address",
    "rank",
    "score",
    "select",
]
