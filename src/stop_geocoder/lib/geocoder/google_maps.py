"""Google Maps Geocoding API provider.

Uses the Google Maps Geocoding API
(https://developers.google.com/maps/documentation/geocoding/)
for address-to-coordinate resolution. Requires an API key.
"""

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

GOOGLE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DEFAULT_TIMEOUT = 10.0

ROOFTOP_CONFIDENCE = 0.95
PARTIAL_CONFIDENCE = 0.75
STREET_NUMBER_AND_ROUTE_BONUS = 0.05
POSTAL_MATCH_BONUS = 0.03
FORMATTED_MATCH_BONUS = 0.02


def _component(components: list[dict], kind: str) -> dict | None:
    for comp in components:
        if kind in (comp.get("types") or []):
            return comp
    return None


class GoogleMapsGeocoder(BaseGeocoder):
    """Google Maps geocoder provider."""

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        country: str = "us",
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._country = country

    @property
    def provider_name(self) -> str:
        return "google"

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
        """Geocode an address using the Google Maps API.

        The ZIP from the context (or the address itself) narrows the
        search through the ``components`` filter.

        Raises:
            GeocodingProviderError: On transport, service, or API-specific errors.
        """
        zipcode = _zip5(context.zip if context and context.zip else address.zip)
        components = f"country:{self._country.upper()}"
        if zipcode:
            components += f"|postal_code:{zipcode}"

        params = {
            "address": address.query_string,
            "components": components,
            "key": self._api_key,
        }
        data = await fetch_json(self.provider_name, GOOGLE_API_URL, params=params, timeout=self._timeout)
        return self._parse_response(data, address, zipcode)

    def _parse_response(
        self,
        data: dict,
        address: NormalizedAddress,
        zipcode: str | None = None,
    ) -> list[Candidate]:
        """Parse Google Maps API response into candidates.

        Raises:
            GeocodingProviderError: On API-specific error statuses.
        """
        api_status = data.get("status", "UNKNOWN")

        if api_status == "ZERO_RESULTS":
            return []

        if api_status == "REQUEST_DENIED":
            msg = data.get("error_message", api_status)
            raise GeocodingProviderError("google", f"API error: {msg}", credential_rejected=True)

        if api_status in ("OVER_QUERY_LIMIT", "INVALID_REQUEST"):
            msg = data.get("error_message", api_status)
            raise GeocodingProviderError("google", f"API error: {msg}")

        if api_status != "OK":
            raise GeocodingProviderError("google", f"Unexpected API status: {api_status}")

        candidates: list[Candidate] = []
        for result in data.get("results", []):
            try:
                location = result["geometry"]["location"]
                lat = float(location["lat"])
                lng = float(location["lng"])
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse Google Maps result: {e}")
                raise GeocodingProviderError("google", f"Failed to parse response: {e}") from e

            location_type = (result["geometry"].get("location_type") or "").upper()
            types = result.get("types") or []
            rooftop = location_type == "ROOFTOP"
            street_address = "street_address" in types
            components = result.get("address_components") or []

            confidence = ROOFTOP_CONFIDENCE if rooftop or street_address else PARTIAL_CONFIDENCE
            if _component(components, "street_number") and _component(components, "route"):
                confidence += STREET_NUMBER_AND_ROUTE_BONUS
            postal = _component(components, "postal_code")
            if postal and zipcode and (postal.get("long_name") or postal.get("short_name")) == zipcode:
                confidence += POSTAL_MATCH_BONUS
            if _formatted_matches(result.get("formatted_address"), address.query_string):
                confidence += FORMATTED_MATCH_BONUS
            country = _component(components, "country")
            confidence = cap_for_country(
                min(confidence, 1.0),
                country.get("short_name") if country else None,
                self._country,
            )

            candidates.append(
                Candidate(
                    lat=lat,
                    lng=lng,
                    provider=self.provider_name,
                    quality=_quality_label(location_type, street_address),
                    confidence=round(confidence, 4),
                    raw_ref={
                        "place_id": result.get("place_id"),
                        "types": types,
                        "formatted_address": result.get("formatted_address"),
                        "location_type": location_type or None,
                    },
                )
            )

        return candidates


def _zip5(zipcode: str | None) -> str | None:
    if not zipcode:
        return None
    digits = "".join(ch for ch in zipcode if ch.isdigit())
    return digits[:5] if len(digits) >= 5 else None


def _formatted_matches(formatted: str | None, query: str) -> bool:
    """Whether the formatted address contains the first three query tokens."""
    if not formatted or not query:
        return False
    head = " ".join(query.lower().split()[:3])
    return head in formatted.lower()


def _quality_label(location_type: str, street_address: bool) -> str:
    """Native precision label; only ``ROOFTOP`` geometry is labelled rooftop."""
    if location_type == "ROOFTOP":
        return "rooftop"
    if street_address:
        return "address"
    return location_type.lower() or "partial"
