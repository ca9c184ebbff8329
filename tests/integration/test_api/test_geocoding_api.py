"""Integration tests for the /geocoding endpoints."""

import pytest
from fastapi import FastAPI
from helpers import NYC_BBOX, FakeGeocoder
from httpx import ASGITransport, AsyncClient

from stop_geocoder.core.config import Settings
from stop_geocoder.lib.geocoder import GeocodeRecord, GeocodingProviderError, InMemoryGeocodeCache, OverrideStore, Point
from stop_geocoder.main import create_app
from stop_geocoder.services.geocoding_service import AddressResolver

ADDRESS = "150 Main St, Brooklyn, NY 11221"


@pytest.fixture
def cache() -> InMemoryGeocodeCache:
    return InMemoryGeocodeCache()


@pytest.fixture
def app(settings: Settings, cache: InMemoryGeocodeCache, google_fake: FakeGeocoder) -> FastAPI:
    """App wired to an in-memory cache and one scripted provider."""
    app = create_app(settings)
    app.state.resolver = AddressResolver(cache, OverrideStore(settings.overrides_path), [google_fake], NYC_BBOX)
    return app


@pytest.fixture
def client(app: FastAPI) -> AsyncClient:
    """Create an async test client."""
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test", follow_redirects=False)


class TestResolveEndpoint:
    """Tests for GET /api/v1/geocoding/resolve."""

    async def test_found(self, client) -> None:
        resp = await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS})
        assert resp.status_code == 200
        body = resp.json()
        assert body["found"] is True
        assert body["query"] == "150 Main St Brooklyn NY 11221"
        assert body["point"]["provider"] == "google"
        assert body["point"]["lat"] == pytest.approx(40.6782)

    async def test_not_found_is_not_an_error(self, app, client) -> None:
        app.state.resolver = AddressResolver(
            InMemoryGeocodeCache(), OverrideStore(), [FakeGeocoder("google", [])], NYC_BBOX
        )
        resp = await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS})
        assert resp.status_code == 200
        assert resp.json()["found"] is False
        assert resp.json()["point"] is None

    async def test_whitespace_address_rejected(self, client) -> None:
        resp = await client.get("/api/v1/geocoding/resolve", params={"address": "   "})
        assert resp.status_code == 422

    async def test_missing_address_rejected(self, client) -> None:
        resp = await client.get("/api/v1/geocoding/resolve")
        assert resp.status_code == 422

    async def test_job_override_wins(self, client) -> None:
        put = await client.put("/api/v1/geocoding/overrides", json={"job_id": "job-7", "lat": 40.71, "lng": -73.99})
        assert put.status_code == 200

        resp = await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS, "job_id": "job-7"})
        assert resp.json()["point"]["provider"] == "override"
        assert resp.json()["point"]["lat"] == 40.71

    async def test_force_refresh(self, client, google_fake) -> None:
        await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS})
        await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS, "force_refresh": "true"})
        assert len(google_fake.calls) == 2


class TestResolveBatchEndpoint:
    """Tests for POST /api/v1/geocoding/resolve-batch."""

    async def test_results_in_request_order(self, client, cache) -> None:
        await cache.put("2_main_st", GeocodeRecord(query="2 Main St", chosen=None))
        resp = await client.post(
            "/api/v1/geocoding/resolve-batch",
            json={"addresses": ["1 Main St", "2 Main St", "3 Main St"], "concurrency": 2},
        )
        assert resp.status_code == 200
        points = resp.json()["points"]
        assert len(points) == 3
        assert points[0]["provider"] == "google"
        assert points[1] is None
        assert points[2]["provider"] == "google"

    async def test_empty_batch_rejected(self, client) -> None:
        resp = await client.post("/api/v1/geocoding/resolve-batch", json={"addresses": []})
        assert resp.status_code == 422


class TestProvidersEndpoint:
    """Tests for provider listing and the credential blocklist."""

    async def test_lists_all_providers(self, client) -> None:
        resp = await client.get("/api/v1/geocoding/providers")
        assert resp.status_code == 200
        names = [p["name"] for p in resp.json()]
        assert names == ["google", "mapbox", "opencage", "nominatim"]
        assert all(p["blocked"] is False for p in resp.json())

    async def test_blocked_provider_flagged_then_cleared(self, app, client) -> None:
        error = GeocodingProviderError("google", "HTTP 401", 401, credential_rejected=True)
        rejected = FakeGeocoder("google", error=error)
        app.state.resolver = AddressResolver(InMemoryGeocodeCache(), OverrideStore(), [rejected], NYC_BBOX)
        await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS})

        providers = {p["name"]: p for p in (await client.get("/api/v1/geocoding/providers")).json()}
        assert providers["google"]["blocked"] is True

        resp = await client.delete("/api/v1/geocoding/blocklist")
        assert resp.json() == {"cleared": 1}
        providers = {p["name"]: p for p in (await client.get("/api/v1/geocoding/providers")).json()}
        assert providers["google"]["blocked"] is False


class TestCacheEndpoints:
    """Tests for cache listing, inspection and deletion."""

    async def test_inspect_after_resolve(self, client) -> None:
        await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS})
        resp = await client.get("/api/v1/geocoding/cache/entry", params={"address": ADDRESS})
        assert resp.status_code == 200
        assert resp.json()["key"] == "150_main_st_brooklyn_ny_11221"
        assert resp.json()["record"]["chosen"]["provider"] == "google"

    async def test_inspect_missing(self, client) -> None:
        resp = await client.get("/api/v1/geocoding/cache/entry", params={"address": "9 Nowhere Ln"})
        assert resp.status_code == 404

    async def test_delete_entry(self, client, google_fake) -> None:
        await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS})
        resp = await client.delete("/api/v1/geocoding/cache/entry", params={"address": ADDRESS})
        assert resp.status_code == 204

        again = await client.delete("/api/v1/geocoding/cache/entry", params={"address": ADDRESS})
        assert again.status_code == 404

        await client.get("/api/v1/geocoding/resolve", params={"address": ADDRESS})
        assert len(google_fake.calls) == 2

    async def test_low_confidence_filter(self, client, cache) -> None:
        await cache.put("a", GeocodeRecord(chosen=Point(lat=40.6, lng=-73.9, provider="google", confidence=0.95)))
        await cache.put("b", GeocodeRecord(chosen=Point(lat=40.6, lng=-73.9, provider="google", confidence=0.3)))
        await cache.put("c", GeocodeRecord(chosen=None))

        all_entries = await client.get("/api/v1/geocoding/cache")
        low = await client.get("/api/v1/geocoding/cache", params={"low_confidence": "true"})

        assert [e["key"] for e in all_entries.json()] == ["a", "b", "c"]
        assert [e["key"] for e in low.json()] == ["b", "c"]


class TestOverrideEndpoints:
    """Tests for manual overrides."""

    async def test_set_and_list(self, client, settings) -> None:
        resp = await client.put(
            "/api/v1/geocoding/overrides",
            json={"address": ADDRESS, "lat": 40.68, "lng": -73.94},
        )
        assert resp.status_code == 200
        assert resp.json()["provider"] == "override"
        assert resp.json()["confidence"] == 1.0

        listing = (await client.get("/api/v1/geocoding/overrides")).json()
        assert list(listing["by_address"]) == ["150_main_st_brooklyn_ny_11221"]
        assert listing["by_job"] == {}

    async def test_override_persisted_to_file(self, client, settings) -> None:
        await client.put("/api/v1/geocoding/overrides", json={"job_id": "j1", "lat": 40.68, "lng": -73.94})
        reloaded = OverrideStore(settings.overrides_path)
        assert await reloaded.for_job("j1") is not None

    async def test_override_needs_a_key(self, client) -> None:
        resp = await client.put("/api/v1/geocoding/overrides", json={"lat": 40.68, "lng": -73.94})
        assert resp.status_code == 422

    async def test_override_coordinates_validated(self, client) -> None:
        resp = await client.put("/api/v1/geocoding/overrides", json={"job_id": "j1", "lat": 140, "lng": -73.94})
        assert resp.status_code == 422
