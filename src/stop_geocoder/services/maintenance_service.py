"""Maintenance service: scans the cache and re-geocodes flagged entries.

``scan_cache`` only reads and produces a ScanReport. ``regeocode`` consumes
a report and rewrites cache records only when writes are allowed.
Re-geocoding runs one address at a time with a delay between lookups.
"""

import asyncio
from datetime import UTC, datetime

from loguru import logger

from stop_geocoder.lib.geocoder import (
    BaseGeocoder,
    BoundingBox,
    Candidate,
    CredentialBlocklist,
    GeocodeCache,
    GeocodeContext,
    GeocodeRecord,
    GeocoderConfigurationError,
    GeocodingProviderError,
    Point,
    Suggestion,
    accepts_replacement,
    address_from_key,
    normalize_address,
    rank,
    score,
)
from stop_geocoder.schemas.maintenance import (
    ProviderAttempt,
    RegeocodeChange,
    RegeocodeError,
    RegeocodeSummary,
    ScanDetail,
    ScanReport,
    ScanSample,
    ScanSamples,
    ScanTotals,
)

DEFAULT_SAMPLE_LIMIT = 50


def _is_low_confidence(chosen: Point | None, threshold: float) -> bool:
    if chosen is None:
        return True
    return (chosen.confidence if chosen.confidence is not None else 0.0) < threshold


async def scan_cache(
    cache: GeocodeCache,
    bbox: BoundingBox,
    threshold: float,
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
) -> ScanReport:
    """Classify every cache entry and build an immutable report.

    An entry is low-confidence when it has no chosen point or its
    confidence is below ``threshold``, and out-of-bounds when its chosen
    point falls outside ``bbox``. Unreadable entries are counted as errors.
    The cache is never modified.

    Args:
        cache: Cache to scan.
        bbox: Operating region.
        threshold: Minimum acceptable chosen confidence.
        sample_limit: Samples kept per category.

    Returns:
        The scan report.
    """
    totals = ScanTotals()
    samples = ScanSamples()
    details: dict[str, ScanDetail] = {}

    async for entry in cache.entries():
        totals.files += 1
        if entry.record is None:
            totals.errors += 1
            details[entry.key] = ScanDetail(error=entry.error or "unreadable")
            if len(samples.errors) < sample_limit:
                samples.errors.append(ScanSample(key=entry.key, error=entry.error))
            continue

        chosen = entry.record.chosen
        low = _is_low_confidence(chosen, threshold)
        oob = chosen is not None and not bbox.contains(chosen.lat, chosen.lng)

        if chosen is None:
            totals.no_chosen += 1
        if low:
            totals.low_confidence += 1
            if len(samples.low_confidence) < sample_limit:
                samples.low_confidence.append(ScanSample(key=entry.key, chosen=chosen))
        if oob:
            totals.out_of_bounds += 1
            if len(samples.out_of_bounds) < sample_limit:
                samples.out_of_bounds.append(ScanSample(key=entry.key, chosen=chosen))

        details[entry.key] = ScanDetail(chosen=chosen, low_confidence=low, out_of_bounds=oob)

    logger.info(
        f"Scan completed: {totals.files} files, {totals.low_confidence} low confidence, "
        f"{totals.out_of_bounds} out of bounds, {totals.errors} errors"
    )
    return ScanReport(
        bbox_used=bbox.as_dict(),
        confidence_threshold=threshold,
        totals=totals,
        samples=samples,
        details=details,
    )


def ensure_regeocode_allowed(
    providers: list[BaseGeocoder],
    *,
    write_requested: bool,
    write_allowed: bool,
) -> None:
    """Fail fast before any provider is called.

    Raises:
        GeocoderConfigurationError: If a write is requested without the
            allow flag, or no requested provider is configured.
    """
    if write_requested and not write_allowed:
        msg = "Re-geocode writes require REGEOCODE_ALLOW=true"
        raise GeocoderConfigurationError(msg)
    if not providers:
        msg = "No configured provider in the requested order; set the provider credentials"
        raise GeocoderConfigurationError(msg)


def _promote(candidates: list[Candidate], accepted: Candidate) -> list[Candidate]:
    """Put ``accepted`` first, dropping earlier candidates from the same provider."""
    return [accepted, *(c for c in candidates if c.provider != accepted.provider)]


async def _query_in_order(
    providers: list[BaseGeocoder],
    query: str,
    bbox: BoundingBox,
    threshold: float,
    blocklist: CredentialBlocklist,
) -> tuple[Candidate | None, Candidate | None, list[ProviderAttempt]]:
    """Ask providers one at a time until one candidate passes acceptance.

    Every result a provider returns is scored; its candidates are tested in
    rank order, so a better later result is not lost behind a weaker first one.

    Returns:
        ``(accepted, suggestion, attempts)``; the suggestion is the best
        non-accepted candidate seen, used only when nothing was accepted.
    """
    normalized = normalize_address(query)
    context = GeocodeContext(zip=normalized.zip)
    attempts: list[ProviderAttempt] = []
    suggestion: Candidate | None = None

    for provider in providers:
        name = provider.provider_name
        if name in blocklist:
            attempts.append(ProviderAttempt(provider=name, error="credential_blocked"))
            continue
        try:
            found = await provider.query(normalized, context)
        except GeocodingProviderError as e:
            if e.credential_rejected:
                blocklist.add(name, e.message)
            attempts.append(ProviderAttempt(provider=name, error=e.message))
            continue

        if not found:
            attempts.append(ProviderAttempt(provider=name, error="no_results"))
            continue

        ranked = rank(score(found, bbox))
        passing = next((c for c in ranked if accepts_replacement(c, bbox, threshold)), None)
        candidate = passing or ranked[0]
        accepted = passing is not None
        attempts.append(ProviderAttempt(provider=name, candidate=candidate, accepted=accepted))
        if accepted:
            return candidate, None, attempts
        if suggestion is None or (candidate.adjusted or 0) > (suggestion.adjusted or 0):
            suggestion = candidate

    return None, suggestion, attempts


async def regeocode(
    report: ScanReport,
    cache: GeocodeCache,
    providers: list[BaseGeocoder],
    bbox: BoundingBox | None = None,
    *,
    threshold: float = 0.8,
    allow_write: bool = False,
    write_allowed: bool = False,
    delay_ms: int = 600,
    blocklist: CredentialBlocklist | None = None,
) -> RegeocodeSummary:
    """Re-query the providers for every entry a scan flagged.

    An accepted candidate (rooftop, or in-region at or above ``threshold``)
    replaces the chosen point and moves to the front of the candidate list.
    Anything else is kept only as a suggestion beside the unchanged chosen
    point. Without ``allow_write`` nothing is written.

    Args:
        report: Scan report naming the flagged keys.
        cache: Cache holding the records.
        providers: Providers in the fixed query order.
        bbox: Region to judge candidates against; defaults to the one the
            scan used.
        threshold: Acceptance confidence for in-region candidates.
        allow_write: Whether the caller asked for the cache to be updated.
        write_allowed: The deployment-level allow flag.
        delay_ms: Pause between successive addresses.
        blocklist: Shared credential blocklist.

    Returns:
        Structured summary with per-address changes and errors.

    Raises:
        GeocoderConfigurationError: See ``ensure_regeocode_allowed``.
    """
    ensure_regeocode_allowed(providers, write_requested=allow_write, write_allowed=write_allowed)
    blocklist = blocklist if blocklist is not None else CredentialBlocklist()
    bbox = bbox if bbox is not None else report.bounding_box

    keys = report.flagged_keys()
    summary = RegeocodeSummary(
        dry_run=not allow_write,
        provider_order=[p.provider_name for p in providers],
        total=len(keys),
    )
    logger.info(f"Re-geocoding {len(keys)} flagged entries (dry_run={summary.dry_run})")

    for index, key in enumerate(keys):
        if index and delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

        record = await cache.get(key)
        if record is None:
            summary.errors.append(RegeocodeError(key=key, error="missing_record"))
            continue

        query = record.query or address_from_key(key)
        accepted, suggested, attempts = await _query_in_order(providers, query, bbox, threshold, blocklist)
        summary.processed += 1

        candidate = accepted or suggested
        if candidate is None:
            summary.errors.append(RegeocodeError(key=key, error="no_candidate", tried=attempts))
            logger.info(f"Re-geocode {key}: no candidate")
            continue

        change = RegeocodeChange(
            key=key,
            address=query,
            chosen_before=record.chosen,
            candidate=candidate,
            accepted=accepted is not None,
            tried=attempts,
        )
        if accepted is not None:
            updated = GeocodeRecord(
                query=query,
                chosen=Point.from_candidate(accepted),
                candidates=_promote(record.candidates, accepted),
                suggestion=None,
            )
        else:
            summary.suggested += 1
            updated = record.model_copy(
                update={"suggestion": Suggestion(candidate=candidate), "updated_at": datetime.now(UTC)},
            )

        if not allow_write:
            summary.would_update += int(change.accepted)
        else:
            try:
                await cache.put(key, updated)
            except OSError as e:
                logger.warning(f"Re-geocode write failed for {key}: {e}")
                summary.errors.append(RegeocodeError(key=key, error=f"write_error: {e}", tried=attempts))
            else:
                change.written = True
                summary.updated += int(change.accepted)

        logger.bind(
            json_output=True,
            key=key,
            provider=candidate.provider,
            accepted=change.accepted,
            written=change.written,
        ).info(f"Re-geocode {key}: {'accepted' if change.accepted else 'suggested'} via {candidate.provider}")
        summary.changes.append(change)

    logger.info(
        f"Re-geocode completed: {summary.processed} processed, {summary.updated} updated, "
        f"{summary.would_update} would update, {summary.suggested} suggested, {len(summary.errors)} errors"
    )
    return summary
