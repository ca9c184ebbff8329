"""Candidate scoring onto a common confidence scale.

Each adapter already normalizes its native signal into a 0-1 confidence.
The scorer maps native quality labels onto a shared precision vocabulary,
adds a precision boost and a provider tie-break, and discourages
out-of-region results without dropping them.
"""

from enum import StrEnum

from stop_geocoder.lib.geocoder.base import Candidate
from stop_geocoder.lib.geocoder.bbox import BoundingBox


class GeocodeQuality(StrEnum):
    """Common precision vocabulary, from most to least precise."""

    ROOFTOP = "rooftop"
    ADDRESS = "address"
    BUILDING = "building"
    PARTIAL = "partial"
    UNKNOWN = "unknown"


# Native provider labels → common vocabulary
_QUALITY_LABELS: dict[str, GeocodeQuality] = {
    "rooftop": GeocodeQuality.ROOFTOP,
    "street_address": GeocodeQuality.ADDRESS,
    "address": GeocodeQuality.ADDRESS,
    "premise": GeocodeQuality.ADDRESS,
    "subpremise": GeocodeQuality.ADDRESS,
    "house": GeocodeQuality.BUILDING,
    "building": GeocodeQuality.BUILDING,
    "range_interpolated": GeocodeQuality.PARTIAL,
    "geometric_center": GeocodeQuality.PARTIAL,
    "approximate": GeocodeQuality.PARTIAL,
    "partial": GeocodeQuality.PARTIAL,
    "street": GeocodeQuality.PARTIAL,
    "road": GeocodeQuality.PARTIAL,
    "residential": GeocodeQuality.PARTIAL,
}

PRECISION_BOOST: dict[GeocodeQuality, float] = {
    GeocodeQuality.ROOFTOP: 0.12,
    GeocodeQuality.ADDRESS: 0.12,
    GeocodeQuality.BUILDING: 0.08,
}

# Tunable, not a law: near 1.0 this can flip an otherwise equal ranking
TIE_BREAK_WEIGHT = 0.001

OUT_OF_BOUNDS_FACTOR = 0.3
OUT_OF_BOUNDS_PENALTY = 0.1


def classify_quality(label: str | None) -> GeocodeQuality:
    """Map a provider's native quality label onto the common vocabulary."""
    if not label:
        return GeocodeQuality.UNKNOWN
    return _QUALITY_LABELS.get(label.strip().lower(), GeocodeQuality.UNKNOWN)


def precision_boost(label: str | None) -> float:
    return PRECISION_BOOST.get(classify_quality(label), 0.0)


def score_candidate(candidate: Candidate, bbox: BoundingBox | None) -> Candidate:
    """Set ``adjusted`` and ``out_of_bounds`` on one candidate in place.

    Args:
        candidate: Candidate to annotate.
        bbox: Operating region; ``None`` disables the bounds check.

    Returns:
        The same candidate, for chaining.
    """
    tie_break = candidate.priority * TIE_BREAK_WEIGHT
    if bbox is not None and not bbox.contains(candidate.lat, candidate.lng):
        candidate.out_of_bounds = True
        candidate.adjusted = candidate.confidence * OUT_OF_BOUNDS_FACTOR + tie_break - OUT_OF_BOUNDS_PENALTY
    else:
        candidate.out_of_bounds = False
        candidate.adjusted = candidate.confidence + precision_boost(candidate.quality) + tie_break
    return candidate


def score(candidates: list[Candidate], bbox: BoundingBox | None) -> list[Candidate]:
    """Annotate every candidate with its adjusted score; order is preserved."""
    for candidate in candidates:
        score_candidate(candidate, bbox)
    return candidates


def rank(candidates: list[Candidate]) -> list[Candidate]:
    """Return scored candidates best-first.

    Ties on ``adjusted`` fall back to provider priority, then input order.
    """
    indexed = list(enumerate(candidates))
    indexed.sort(key=lambda item: (-(item[1].adjusted or 0.0), -item[1].priority, item[0]))
    return [c for _, c in indexed]
