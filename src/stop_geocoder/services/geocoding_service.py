"""Geocoding service: resolves addresses through overrides, cache and providers.

Request path: normalize → job override → address override → cache (unless
force-refresh) → providers → score → select → cache write. A failing
provider is skipped; a resolution with no candidate returns ``None``.
"""

import asyncio
from dataclasses import dataclass, field, replace

from loguru import logger

from stop_geocoder.core.config import Settings
from stop_geocoder.lib.geocoder import (
    BaseGeocoder,
    BoundingBox,
    Candidate,
    CredentialBlocklist,
    FileGeocodeCache,
    GeocodeCache,
    GeocodeContext,
    GeocodeRecord,
    GeocodingProviderError,
    OverrideStore,
    Point,
    ProviderName,
    cache_key,
    get_configured_providers,
    normalize_address,
    rank,
    score,
    select,
)
from stop_geocoder.lib.geocoder.address import NormalizedAddress
from stop_geocoder.lib.geocoder.selection import accepts_replacement

DEFAULT_BATCH_CONCURRENCY = 8


@dataclass
class ProviderOutcome:
    """What one provider contributed to a resolution."""

    provider: str
    candidates: list[Candidate] = field(default_factory=list)
    error: str | None = None


@dataclass
class ProbeResult:
    """Ranked candidates from a dry-run probe; nothing is persisted."""

    address: NormalizedAddress
    ranked: list[Candidate]
    outcomes: list[ProviderOutcome]

    @property
    def best(self) -> Candidate | None:
        return self.ranked[0] if self.ranked else None


class AddressResolver:
    """Resolves free-text addresses to a single best point.

    Args:
        cache: Record store consulted before, and updated after, provider calls.
        overrides: Manual corrections; always win.
        providers: Configured providers in query order.
        bbox: Operating region used by the scorer.
        blocklist: Providers whose credentials were rejected.
        key_max_length: Upper bound on cache key length.
        stop_on_accept: Stop querying once a candidate passes the
            acceptance predicate.
        accept_confidence: Confidence used by ``stop_on_accept``.
    """

    def __init__(
        self,
        cache: GeocodeCache,
        overrides: OverrideStore,
        providers: list[BaseGeocoder],
        bbox: BoundingBox,
        *,
        blocklist: CredentialBlocklist | None = None,
        key_max_length: int = 120,
        stop_on_accept: bool = False,
        accept_confidence: float = 0.8,
    ) -> None:
        self.cache = cache
        self.overrides = overrides
        self.providers = providers
        self.bbox = bbox
        self.blocklist = blocklist if blocklist is not None else CredentialBlocklist()
        self.key_max_length = key_max_length
        self.stop_on_accept = stop_on_accept
        self.accept_confidence = accept_confidence

    @classmethod
    def from_settings(cls, settings: Settings) -> "AddressResolver":
        """Build a resolver backed by the file cache and override store in ``settings``."""
        return cls(
            cache=FileGeocodeCache(settings.cache_path),
            overrides=OverrideStore(settings.overrides_path),
            providers=get_configured_providers(settings),
            bbox=settings.bounding_box,
            key_max_length=settings.cache_key_max_length,
            accept_confidence=settings.confidence_threshold,
        )

    def key_for(self, address: str | NormalizedAddress) -> str:
        normalized = address if isinstance(address, NormalizedAddress) else normalize_address(address)
        return cache_key(normalized, self.key_max_length)

    async def query_providers(
        self,
        normalized: NormalizedAddress,
        context: GeocodeContext | None = None,
        providers: list[BaseGeocoder] | None = None,
    ) -> list[ProviderOutcome]:
        """Query providers one at a time, skipping any that fail.

        Last-resort providers are only asked when nothing else produced a
        candidate; blocklisted providers are not asked at all.
        """
        outcomes: list[ProviderOutcome] = []
        found: list[Candidate] = []

        for provider in providers if providers is not None else self.providers:
            name = provider.provider_name
            if name in self.blocklist:
                outcomes.append(ProviderOutcome(provider=name, error="credential_blocked"))
                continue
            if provider.last_resort and found:
                continue

            try:
                candidates = await provider.query(normalized, context)
            except GeocodingProviderError as e:
                if e.credential_rejected:
                    self.blocklist.add(name, e.message)
                logger.info(f"Provider {name} skipped: {e.message}")
                outcomes.append(ProviderOutcome(provider=name, error=e.message))
                continue

            outcomes.append(ProviderOutcome(provider=name, candidates=candidates))
            found.extend(candidates)

            if self.stop_on_accept and any(
                accepts_replacement(c, self.bbox, self.accept_confidence) for c in candidates
            ):
                break

        return outcomes

    async def _read_cache(self, key: str) -> GeocodeRecord | None:
        try:
            return await self.cache.get(key)
        except OSError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    async def _write_cache(self, key: str, record: GeocodeRecord) -> None:
        try:
            await self.cache.put(key, record)
        except OSError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def resolve(
        self,
        address: str,
        context: GeocodeContext | None = None,
        *,
        force_refresh: bool = False,
    ) -> Point | None:
        """Resolve one address to its chosen point.

        Args:
            address: Raw address text.
            context: Optional job id, ZIP and previously known point.
            force_refresh: Skip the cache and re-query providers.

        Returns:
            The chosen point, or ``None`` when the address is not found.
        """
        context = context or GeocodeContext()
        normalized = normalize_address(address)
        key = cache_key(normalized, self.key_max_length)

        job_override = await self.overrides.for_job(context.job_id)
        address_override = await self.overrides.for_address(key)
        if job_override is not None or address_override is not None:
            selection = select([], job_override=job_override, address_override=address_override)
            return selection.point if selection else None

        if not normalized or not key:
            return self._known_point(context)

        if not force_refresh:
            cached = await self._read_cache(key)
            if cached is not None:
                logger.debug(f"Cache hit for {key}")
                return cached.chosen or self._known_point(context)

        query_context = context if context.zip or not normalized.zip else replace(context, zip=normalized.zip)
        outcomes = await self.query_providers(normalized, query_context)
        candidates = score([c for o in outcomes for c in o.candidates], self.bbox)
        selection = select(candidates)

        # a failure is only remembered when some provider actually answered
        if selection is not None or any(o.error is None for o in outcomes):
            record = GeocodeRecord(
                query=normalized.query_string,
                chosen=selection.point if selection else None,
                candidates=rank(candidates),
            )
            await self._write_cache(key, record)

        if selection is None:
            logger.info(f"No provider resolved {key}")
            return self._known_point(context)
        return selection.point

    async def resolve_batch(
        self,
        addresses: list[str],
        concurrency: int = DEFAULT_BATCH_CONCURRENCY,
        *,
        contexts: list[GeocodeContext | None] | None = None,
        force_refresh: bool = False,
    ) -> list[Point | None]:
        """Resolve many addresses with a bounded worker pool.

        Workers pull indexes from a shared queue and resolve each address
        end to end; one failing address never aborts the batch.

        Returns:
            Points (or ``None``) in input order.
        """
        results: list[Point | None] = [None] * len(addresses)
        queue: asyncio.Queue[int] = asyncio.Queue()
        for index in range(len(addresses)):
            queue.put_nowait(index)

        async def worker() -> None:
            while True:
                try:
                    index = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                context = contexts[index] if contexts else None
                try:
                    results[index] = await self.resolve(addresses[index], context, force_refresh=force_refresh)
                except Exception:
                    logger.exception(f"Batch resolution failed for item {index}")
                finally:
                    queue.task_done()

        workers = max(1, min(concurrency, len(addresses)))
        await asyncio.gather(*(worker() for _ in range(workers)))
        return results

    async def probe(self, address: str, provider: str | None = None) -> ProbeResult:
        """Dry-run: query and rank candidates for one address without caching.

        Every configured provider is asked (last-resort ones only if the
        others found nothing); ``provider`` narrows the ranking to one source.
        """
        normalized = normalize_address(address)
        if not normalized:
            return ProbeResult(address=normalized, ranked=[], outcomes=[])
        outcomes = await self.query_providers(normalized, GeocodeContext(zip=normalized.zip))
        candidates = score([c for o in outcomes for c in o.candidates], self.bbox)
        if provider:
            candidates = [c for c in candidates if c.provider == provider]
        return ProbeResult(address=normalized, ranked=rank(candidates), outcomes=outcomes)

    @staticmethod
    def _known_point(context: GeocodeContext) -> Point | None:
        if context.known_point is None:
            return None
        lat, lng = context.known_point
        return Point(lat=lat, lng=lng, provider=ProviderName.KNOWN.value, quality="unknown")
