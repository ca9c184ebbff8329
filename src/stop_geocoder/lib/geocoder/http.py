"""Shared HTTP GET for provider adapters, mapping transport failures to GeocodingProviderError."""

from typing import Any

import httpx
from loguru import logger

from stop_geocoder.lib.geocoder.base import GeocodingProviderError


async def fetch_json(
    provider: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = 10.0,
) -> Any:
    """GET ``url`` and decode the JSON body.

    Args:
        provider: Provider name used in errors and log lines.
        url: Endpoint URL.
        params: Query parameters (may contain credentials; never logged).
        headers: Extra request headers.
        timeout: Request timeout in seconds.

    Returns:
        The decoded JSON payload.

    Raises:
        GeocodingProviderError: On timeout, HTTP error status, connection
            failure or an undecodable body.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()

        return response.json()

    except httpx.TimeoutException as e:
        logger.warning(f"{provider} geocoder timeout for address (redacted)")
        raise GeocodingProviderError(provider, "Geocoding request timed out") from e
    except httpx.HTTPStatusError as e:
        status_code = e.response.status_code
        logger.warning(f"{provider} geocoder HTTP error {status_code}")
        raise GeocodingProviderError(
            provider,
            f"Provider returned HTTP {status_code}",
            status_code=status_code,
            credential_rejected=status_code in (401, 403),
        ) from e
    except httpx.ConnectError as e:
        logger.warning(f"{provider} geocoder connection error")
        raise GeocodingProviderError(provider, "Connection to geocoding provider failed") from e
    except ValueError as e:
        logger.warning(f"{provider} geocoder returned a non-JSON body")
        raise GeocodingProviderError(provider, f"Malformed response: {e}") from e
    except Exception as e:
        logger.exception(f"{provider} geocoder unexpected error")
        raise GeocodingProviderError(provider, f"Unexpected error: {e}") from e
