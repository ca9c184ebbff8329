"""FastAPI dependency injection for the resolver and its stores.

The resolver is built once per application (see ``create_app``) so the
credential blocklist is shared by every request; the other providers
here are views onto it.
"""

from collections.abc import Callable
from functools import partial
from typing import Annotated

from fastapi import Depends, Request

from stop_geocoder.core.config import Settings, get_settings
from stop_geocoder.lib.geocoder import (
    BaseGeocoder,
    CredentialBlocklist,
    GeocodeCache,
    OverrideStore,
    get_configured_providers,
)
from stop_geocoder.services.geocoding_service import AddressResolver

ProviderLoader = Callable[[list[str]], list[BaseGeocoder]]


def get_resolver(request: Request) -> AddressResolver:
    """Return the application-wide resolver."""
    return request.app.state.resolver


def get_cache(resolver: Annotated[AddressResolver, Depends(get_resolver)]) -> GeocodeCache:
    return resolver.cache


def get_override_store(resolver: Annotated[AddressResolver, Depends(get_resolver)]) -> OverrideStore:
    return resolver.overrides


def get_blocklist(resolver: Annotated[AddressResolver, Depends(get_resolver)]) -> CredentialBlocklist:
    return resolver.blocklist


def get_provider_loader(settings: Annotated[Settings, Depends(get_settings)]) -> ProviderLoader:
    """Return a callable building configured providers for a given query order."""
    return partial(get_configured_providers, settings)
