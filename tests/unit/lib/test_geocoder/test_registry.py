"""Unit tests for the provider registry and configured-provider selection."""

import pytest

from stop_geocoder.core.config import Settings
from stop_geocoder.lib.geocoder import (
    GoogleMapsGeocoder,
    NominatimGeocoder,
    get_all_provider_metadata,
    get_available_providers,
    get_configured_providers,
    get_geocoder,
)


class TestRegistry:
    def test_available_providers_most_trusted_first(self) -> None:
        assert get_available_providers() == ["google", "mapbox", "opencage", "nominatim"]

    def test_get_geocoder_forwards_kwargs(self) -> None:
        geocoder = get_geocoder("google", api_key="k", timeout=2.0)
        assert isinstance(geocoder, GoogleMapsGeocoder)
        assert geocoder.is_configured

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown geocoder provider"):
            get_geocoder("census")


class TestConfiguredProviders:
    def test_missing_credentials_silently_disable(self, settings: Settings) -> None:
        assert get_configured_providers(settings) == []

    def test_configured_in_requested_order(self, settings: Settings) -> None:
        settings = settings.model_copy(
            update={
                "geocoder_google_api_key": "g",
                "geocoder_opencage_api_key": "o",
                "geocoder_nominatim_enabled": True,
            }
        )
        names = [p.provider_name for p in get_configured_providers(settings, ["opencage", "mapbox", "google"])]
        assert names == ["opencage", "google"]

    def test_default_order_includes_nominatim_last(self, settings: Settings) -> None:
        settings = settings.model_copy(update={"geocoder_google_api_key": "g", "geocoder_nominatim_enabled": True})
        providers = get_configured_providers(settings)
        assert [p.provider_name for p in providers] == ["google", "nominatim"]
        assert isinstance(providers[-1], NominatimGeocoder)

    def test_unknown_and_duplicate_names_skipped(self, settings: Settings) -> None:
        settings = settings.model_copy(update={"geocoder_google_api_key": "g"})
        names = [p.provider_name for p in get_configured_providers(settings, ["google", "census", " Google "])]
        assert names == ["google"]

    def test_metadata_lists_every_provider(self, settings: Settings) -> None:
        settings = settings.model_copy(update={"geocoder_mapbox_api_key": "m"})
        metadata = {m["name"]: m for m in get_all_provider_metadata(settings)}
        assert set(metadata) == {"google", "mapbox", "opencage", "nominatim"}
        assert metadata["mapbox"]["is_configured"] is True
        assert metadata["google"]["is_configured"] is False
        assert metadata["nominatim"]["requires_api_key"] is False
        assert metadata["nominatim"]["is_configured"] is False
        assert metadata["nominatim"]["last_resort"] is True
        assert metadata["nominatim"]["rate_limit_delay"] == 1.0
        assert metadata["google"]["rate_limit_delay"] == 0.0
