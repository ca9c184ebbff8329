"""Selection policy: pick the authoritative point for an address."""

from dataclasses import dataclass
from enum import StrEnum

from stop_geocoder.lib.geocoder.base import Candidate
from stop_geocoder.lib.geocoder.bbox import BoundingBox
from stop_geocoder.lib.geocoder.scoring import GeocodeQuality, classify_quality, rank
from stop_geocoder.lib.geocoder.types import Point

# Minimum confidence for an in-bounds re-query to replace a chosen point
DEFAULT_REPLACEMENT_CONFIDENCE = 0.8


class SelectionReason(StrEnum):
    """Why a point was chosen."""

    JOB_OVERRIDE = "job_override"
    ADDRESS_OVERRIDE = "address_override"
    BEST_CANDIDATE = "best_candidate"


@dataclass(frozen=True)
class Selection:
    point: Point
    reason: SelectionReason
    candidate: Candidate | None = None


def select(
    candidates: list[Candidate],
    *,
    job_override: Point | None = None,
    address_override: Point | None = None,
) -> Selection | None:
    """Choose one point, strictly: job override, address override, best candidate.

    Candidates must already be scored. Returns ``None`` when there is no
    override and no candidate; callers treat that as "not found".
    """
    if job_override is not None:
        return Selection(point=job_override, reason=SelectionReason.JOB_OVERRIDE)
    if address_override is not None:
        return Selection(point=address_override, reason=SelectionReason.ADDRESS_OVERRIDE)
    if not candidates:
        return None
    best = rank(candidates)[0]
    return Selection(point=Point.from_candidate(best), reason=SelectionReason.BEST_CANDIDATE, candidate=best)


def is_rooftop(candidate: Candidate) -> bool:
    """Whether the provider reported a rooftop-equivalent precision.

    A native ``location_type`` in ``raw_ref`` is authoritative; the quality
    label is only consulted when the provider reports none.
    """
    location_type = (candidate.raw_ref or {}).get("location_type")
    if location_type:
        return str(location_type).upper() == "ROOFTOP"
    return classify_quality(candidate.quality) == GeocodeQuality.ROOFTOP


def accepts_replacement(
    candidate: Candidate,
    bbox: BoundingBox,
    min_confidence: float = DEFAULT_REPLACEMENT_CONFIDENCE,
) -> bool:
    """Whether an unattended re-query may replace an existing chosen point.

    Accept rooftop-equivalent results, or in-region results at or above
    ``min_confidence``; everything else is only a suggestion.
    """
    if is_rooftop(candidate):
        return True
    return bbox.contains(candidate.lat, candidate.lng) and candidate.confidence >= min_confidence
