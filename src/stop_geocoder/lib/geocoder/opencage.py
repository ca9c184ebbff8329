"""OpenCage geocoder provider.

Uses the OpenCage Geocoding API (https://opencagedata.com/api) for
address-to-coordinate resolution. Requires an API key. OpenCage reports
a 0-10 confidence that is scaled onto 0-1.
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

OPENCAGE_API_URL = "https://api.opencagedata.com/geocode/v1/json"
DEFAULT_TIMEOUT = 10.0
DEFAULT_LIMIT = 1

DEFAULT_CONFIDENCE = 0.7
BUILDING_BONUS = 0.1
_BUILDING_TYPES = frozenset({"house", "building"})


class OpenCageGeocoder(BaseGeocoder):
    """OpenCage geocoder provider."""

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
        return "opencage"

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
        """Geocode an address using the OpenCage API.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params = {
            "q": address.query_string,
            "key": self._api_key,
            "countrycode": self._country,
            "limit": self._limit,
            "no_annotations": 1,
        }
        data = await fetch_json(self.provider_name, OPENCAGE_API_URL, params=params, timeout=self._timeout)
        return self._parse_response(data)

    def _parse_response(self, data: dict) -> list[Candidate]:
        """Parse OpenCage results into candidates.

        Raises:
            GeocodingProviderError: On a non-200 status in the payload.
        """
        status = data.get("status") or {}
        code = status.get("code", 200)
        if code != 200:
            raise GeocodingProviderError(
                "opencage",
                f"API error: {status.get('message', code)}",
                status_code=code,
                credential_rejected=code in (401, 403),
            )

        candidates: list[Candidate] = []
        for result in data.get("results", [])[: self._limit]:
            try:
                lat = float(result["geometry"]["lat"])
                lng = float(result["geometry"]["lng"])
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse OpenCage response: {e}")
                raise GeocodingProviderError("opencage", f"Failed to parse response: {e}") from e

            components = result.get("components") or {}
            component_type = components.get("_type") or "unknown"
            native = result.get("confidence")
            confidence = min(float(native) / 10, 1.0) if isinstance(native, int | float) else DEFAULT_CONFIDENCE
            if component_type in _BUILDING_TYPES:
                confidence = min(confidence + BUILDING_BONUS, 1.0)
            confidence = cap_for_country(confidence, components.get("country_code"), self._country)

            candidates.append(
                Candidate(
                    lat=lat,
                    lng=lng,
                    provider=self.provider_name,
                    quality=component_type,
                    confidence=round(confidence, 4),
                    raw_ref={
                        "formatted": result.get("formatted"),
                        "confidence": native,
                        "type": component_type,
                    },
                )
            )
        return candidates
