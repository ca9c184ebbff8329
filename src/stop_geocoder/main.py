"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and the shared address resolver.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from stop_geocoder.core.config import Settings, get_settings
from stop_geocoder.core.logging import setup_logging
from stop_geocoder.services.geocoding_service import AddressResolver


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Configure logging on startup and report the active providers."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_dir)
    names = [p.provider_name for p in app.state.resolver.providers]
    logger.info(f"Resolver ready with providers: {', '.join(names) or 'none'}")

    yield

    blocked = app.state.resolver.blocklist.snapshot()
    if blocked:
        logger.warning(f"Shutting down with blocked credentials: {', '.join(blocked)}")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Stop Geocoder",
        description="Multi-provider geocoding for delivery stop addresses",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.resolver = AddressResolver.from_settings(settings)
    app.dependency_overrides[get_settings] = lambda: settings

    # Register exception handlers
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    from stop_geocoder.api.router import create_router

    app.include_router(create_router(settings))

    return app
