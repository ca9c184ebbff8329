"""OpenStreetMap Nominatim geocoder provider.

Uses the Nominatim API (https://nominatim.org/release-docs/develop/api/Search/)
for address-to-coordinate resolution. Free but rate-limited to 1 req/sec,
so it is only consulted when no other provider found a candidate.
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

NOMINATIM_API_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "stop-geocoder/1.0"

BUILDING_CONFIDENCE = 0.85
OTHER_CONFIDENCE = 0.6
_BUILDING_TYPES = frozenset({"house", "building"})


class NominatimGeocoder(BaseGeocoder):
    """OpenStreetMap Nominatim geocoder provider."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        email: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
        country: str = "us",
    ) -> None:
        self._timeout = timeout
        self._email = email
        self._user_agent = user_agent
        self._country = country

    @property
    def provider_name(self) -> str:
        return "nominatim"

    @property
    def last_resort(self) -> bool:
        return True

    @property
    def rate_limit_delay(self) -> float:
        return 1.0

    async def query(
        self,
        address: NormalizedAddress,
        context: GeocodeContext | None = None,
    ) -> list[Candidate]:
        """Geocode an address using the Nominatim API.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params: dict[str, str | int] = {
            "q": address.query_string,
            "format": "json",
            "limit": 1,
            "addressdetails": 1,
            "countrycodes": self._country,
        }
        if self._email:
            params["email"] = self._email

        headers = {"User-Agent": self._user_agent}
        data = await fetch_json(
            self.provider_name,
            NOMINATIM_API_URL,
            params=params,
            headers=headers,
            timeout=self._timeout,
        )
        return self._parse_response(data)

    def _parse_response(self, data: list[dict]) -> list[Candidate]:
        """Parse Nominatim API response (a list of places) into candidates."""
        if not data:
            return []

        best = data[0]
        try:
            lat = float(best["lat"])
            lon = float(best["lon"])
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Nominatim response: {e}")
            raise GeocodingProviderError("nominatim", f"Failed to parse response: {e}") from e

        place_type = (best.get("type") or "unknown").lower()
        confidence = BUILDING_CONFIDENCE if place_type in _BUILDING_TYPES else OTHER_CONFIDENCE
        country = (best.get("address") or {}).get("country_code")

        return [
            Candidate(
                lat=lat,
                lng=lon,
                provider=self.provider_name,
                quality=place_type,
                confidence=cap_for_country(confidence, country, self._country),
                raw_ref={
                    "place_id": best.get("place_id"),
                    "display_name": best.get("display_name"),
                    "type": place_type,
                },
            )
        ]
