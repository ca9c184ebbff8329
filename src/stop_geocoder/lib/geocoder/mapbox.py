"""Mapbox Geocoding API (places) provider.

Uses the Mapbox forward geocoding endpoint
(https://docs.mapbox.com/api/search/geocoding-v5/)
for address-to-coordinate resolution. Requires an access token.
"""

from urllib.parse import quote

from loguru import logger

from stop_geocoder.lib.geocoder.address import NormalizedAddress
from stop_geocoder.lib.geocoder.base import (
    BaseGeocoder,
    Candidate,
    GeocodeContext,
    GeocodingProviderError,
    cap_for_country,
)
from stop_geocoder.lib.geocoder.http import fetch_json

MAPBOX_API_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json"
DEFAULT_TIMEOUT = 10.0
DEFAULT_LIMIT = 1

# Address features this relevant are treated as exact matches
ADDRESS_RELEVANCE_FLOOR = 0.9


class MapboxGeocoder(BaseGeocoder):
    """Mapbox geocoder provider."""

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        country: str = "us",
        limit: int = DEFAULT_LIMIT,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._country = country
        self._limit = limit

    @property
    def provider_name(self) -> str:
        return "mapbox"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def query(
        self,
        address: NormalizedAddress,
        context: GeocodeContext | None = None,
    ) -> list[Candidate]:
        """Geocode an address using the Mapbox places endpoint.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params = {
            "access_token": self._api_key,
            "country": self._country,
            "types": "address",
            "limit": self._limit,
        }
        url = MAPBOX_API_URL.format(query=quote(address.query_string, safe=""))
        data = await fetch_json(self.provider_name, url, params=params, timeout=self._timeout)
        return self._parse_response(data)

    def _parse_response(self, data: dict) -> list[Candidate]:
        """Parse a Mapbox feature collection into candidates."""
        candidates: list[Candidate] = []
        for feature in data.get("features", [])[: self._limit]:
            try:
                lng = float(feature["center"][0])
                lat = float(feature["center"][1])
            except (KeyError, IndexError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse Mapbox response: {e}")
                raise GeocodingProviderError("mapbox", f"Failed to parse response: {e}") from e

            place_types = feature.get("place_type") or []
            is_address = "address" in place_types
            relevance = min(float(feature.get("relevance") or 0.0), 1.0)
            confidence = relevance
            if is_address and relevance >= ADDRESS_RELEVANCE_FLOOR:
                confidence = max(confidence, ADDRESS_RELEVANCE_FLOOR)
            confidence = cap_for_country(confidence, _country_code(feature), self._country)

            candidates.append(
                Candidate(
                    lat=lat,
                    lng=lng,
                    provider=self.provider_name,
                    quality="address" if is_address else (place_types[0] if place_types else "unknown"),
                    confidence=confidence,
                    raw_ref={
                        "id": feature.get("id"),
                        "place_name": feature.get("place_name"),
                        "place_type": place_types,
                        "relevance": feature.get("relevance"),
                    },
                )
            )
        return candidates


def _country_code(feature: dict) -> str | None:
    for ctx in feature.get("context") or []:
        if str(ctx.get("id", "")).startswith("country"):
            return ctx.get("short_code")
    return None
