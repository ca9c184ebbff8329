"""Shared test fixtures: settings, stores, fake providers and a resolver."""

from pathlib import Path

import pytest
from helpers import NYC_BBOX, FakeGeocoder, make_candidate

from stop_geocoder.core.config import Settings
from stop_geocoder.lib.geocoder import BoundingBox, InMemoryGeocodeCache, OverrideStore
from stop_geocoder.services.geocoding_service import AddressResolver


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test settings with every file path under ``tmp_path`` and no credentials."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        geo_bbox="-74.5,40.2,-72.5,41.2",
        cache_dir=str(tmp_path / "cache"),
        overrides_path=str(tmp_path / "overrides.json"),
        reports_dir=str(tmp_path / "reports"),
        geocoder_google_api_key=None,
        geocoder_mapbox_api_key=None,
        geocoder_opencage_api_key=None,
        geocoder_nominatim_enabled=False,
        regeocode_delay_ms=0,
    )


@pytest.fixture
def bbox() -> BoundingBox:
    return NYC_BBOX


@pytest.fixture
def memory_cache() -> InMemoryGeocodeCache:
    return InMemoryGeocodeCache()


@pytest.fixture
def override_store() -> OverrideStore:
    return OverrideStore()


@pytest.fixture
def google_fake() -> FakeGeocoder:
    return FakeGeocoder("google", [make_candidate("google", confidence=0.95)])


@pytest.fixture
def resolver(
    memory_cache: InMemoryGeocodeCache,
    override_store: OverrideStore,
    google_fake: FakeGeocoder,
) -> AddressResolver:
    """Resolver over in-memory stores with one scripted provider."""
    return AddressResolver(memory_cache, override_store, [google_fake], NYC_BBOX)
