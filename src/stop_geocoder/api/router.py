"""Root API router with /api/v1 prefix."""

from fastapi import APIRouter

from stop_geocoder.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from stop_geocoder.api.v1.geocoding import geocoding_router
    from stop_geocoder.api.v1.maintenance import maintenance_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(geocoding_router)
    root_router.include_router(maintenance_router)

    return root_router
