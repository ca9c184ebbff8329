"""Unit tests for Mapbox geocoder provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from stop_geocoder.lib.geocoder.address import normalize_address
from stop_geocoder.lib.geocoder.base import GeocodingProviderError
from stop_geocoder.lib.geocoder.mapbox import MapboxGeocoder

ADDRESS = normalize_address("150 Main St, Brooklyn, NY 11221")


def _feature(relevance: float = 1.0, place_type: list[str] | None = None, country: str | None = "us") -> dict:
    feature: dict = {
        "id": "address.123",
        "place_name": "150 Main St, Brooklyn, New York 11221, United States",
        "center": [-73.9442, 40.6782],
        "relevance": relevance,
        "place_type": place_type if place_type is not None else ["address"],
    }
    if country:
        feature["context"] = [{"id": "place.1", "text": "Brooklyn"}, {"id": "country.1", "short_code": country}]
    return feature


class TestMapboxResponseParsing:
    """Tests for Mapbox feature collection parsing."""

    def setup_method(self) -> None:
        self.geocoder = MapboxGeocoder(api_key="test-token")

    def test_address_feature(self) -> None:
        [candidate] = self.geocoder._parse_response({"features": [_feature(1.0)]})
        assert candidate.lat == pytest.approx(40.6782)
        assert candidate.lng == pytest.approx(-73.9442)
        assert candidate.quality == "address"
        assert candidate.confidence == pytest.approx(1.0)
        assert candidate.provider == "mapbox"

    def test_relevance_is_confidence_below_floor(self) -> None:
        [candidate] = self.geocoder._parse_response({"features": [_feature(0.72)]})
        assert candidate.confidence == pytest.approx(0.72)

    def test_non_address_feature_uses_place_type(self) -> None:
        [candidate] = self.geocoder._parse_response({"features": [_feature(0.95, ["postcode"])]})
        assert candidate.quality == "postcode"
        assert candidate.confidence == pytest.approx(0.95)

    def test_foreign_country_is_capped(self) -> None:
        [candidate] = self.geocoder._parse_response({"features": [_feature(1.0, country="ca")]})
        assert candidate.confidence <= 0.2

    def test_no_features(self) -> None:
        assert self.geocoder._parse_response({"features": []}) == []

    def test_limit_respected(self) -> None:
        data = {"features": [_feature(1.0), _feature(0.5)]}
        assert len(self.geocoder._parse_response(data)) == 1
        assert len(MapboxGeocoder(api_key="t", limit=2)._parse_response(data)) == 2

    def test_missing_center_raises(self) -> None:
        with pytest.raises(GeocodingProviderError, match="Failed to parse"):
            self.geocoder._parse_response({"features": [{"relevance": 1.0}]})


class TestMapboxGeocoderTransport:
    async def test_query_url_and_params(self) -> None:
        geocoder = MapboxGeocoder(api_key="test-token")
        mock_response = MagicMock()
        mock_response.json.return_value = {"features": [_feature()]}
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response) as mock_get:
            candidates = await geocoder.query(ADDRESS)

        assert len(candidates) == 1
        url = mock_get.call_args.args[0]
        assert url.endswith("/150%20Main%20St%20Brooklyn%20NY%2011221.json")
        params = mock_get.call_args.kwargs["params"]
        assert params["access_token"] == "test-token"
        assert params["types"] == "address"
        assert params["country"] == "us"

    async def test_unauthorized_rejects_credential(self) -> None:
        geocoder = MapboxGeocoder(api_key="bad-token")
        request = httpx.Request("GET", "https://api.mapbox.com/")
        response = httpx.Response(401, request=request)
        mock_response = MagicMock()
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Unauthorized", request=request, response=response
        )

        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response),
            pytest.raises(GeocodingProviderError) as exc_info,
        ):
            await geocoder.query(ADDRESS)

        assert exc_info.value.status_code == 401
        assert exc_info.value.credential_rejected is True


class TestMapboxProperties:
    def test_provider_metadata(self) -> None:
        geocoder = MapboxGeocoder(api_key="token")
        assert geocoder.provider_name == "mapbox"
        assert geocoder.priority == 3
        assert geocoder.requires_api_key is True
        assert geocoder.is_configured is True
        assert MapboxGeocoder(api_key="").is_configured is False
