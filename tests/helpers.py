"""Test doubles and sample data shared across the test suite."""

from stop_geocoder.lib.geocoder import (
    BaseGeocoder,
    BoundingBox,
    Candidate,
    GeocodeContext,
    GeocodingProviderError,
)
from stop_geocoder.lib.geocoder.address import NormalizedAddress

# Default operating region (New York City area)
NYC_BBOX = BoundingBox(west=-74.5, south=40.2, east=-72.5, north=41.2)
BROOKLYN = (40.6782, -73.9442)
LONDON = (51.5074, -0.1278)


class FakeGeocoder(BaseGeocoder):
    """Scripted provider: returns fixed candidates or raises a fixed error."""

    def __init__(
        self,
        name: str,
        candidates: list[Candidate] | None = None,
        error: GeocodingProviderError | None = None,
        *,
        last_resort: bool = False,
    ) -> None:
        self._name = name
        self._candidates = candidates or []
        self._error = error
        self._last_resort = last_resort
        self.calls: list[str] = []

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def last_resort(self) -> bool:
        return self._last_resort

    async def query(
        self,
        address: NormalizedAddress,
        context: GeocodeContext | None = None,
    ) -> list[Candidate]:
        self.calls.append(address.query_string)
        if self._error is not None:
            raise self._error
        # fresh copies so scoring never leaks between calls
        return [
            Candidate(
                lat=c.lat,
                lng=c.lng,
                provider=c.provider,
                quality=c.quality,
                confidence=c.confidence,
                raw_ref=c.raw_ref,
            )
            for c in self._candidates
        ]


def make_candidate(
    provider: str = "google",
    lat: float = BROOKLYN[0],
    lng: float = BROOKLYN[1],
    quality: str = "rooftop",
    confidence: float = 0.9,
) -> Candidate:
    return Candidate(lat=lat, lng=lng, provider=provider, quality=quality, confidence=confidence)


