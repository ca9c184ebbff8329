"""Unit tests for the selection policy and re-geocode acceptance predicate."""

from helpers import LONDON, NYC_BBOX, make_candidate

from stop_geocoder.lib.geocoder import Point, score
from stop_geocoder.lib.geocoder.overrides import override_point
from stop_geocoder.lib.geocoder.selection import SelectionReason, accepts_replacement, is_rooftop, select


class TestSelect:
    """Tests for select precedence."""

    def test_job_override_beats_live_candidate(self) -> None:
        live = score([make_candidate(confidence=1.0)], NYC_BBOX)
        job = override_point(40.7, -73.9)
        selection = select(live, job_override=job)
        assert selection is not None
        assert selection.point == job
        assert selection.reason == SelectionReason.JOB_OVERRIDE

    def test_job_override_beats_address_override(self) -> None:
        job = override_point(40.7, -73.9)
        address = override_point(40.8, -73.8)
        selection = select([], job_override=job, address_override=address)
        assert selection is not None
        assert selection.point == job

    def test_address_override_beats_live_candidate(self) -> None:
        live = score([make_candidate(confidence=1.0)], NYC_BBOX)
        address = override_point(40.8, -73.8)
        selection = select(live, address_override=address)
        assert selection is not None
        assert selection.point == address
        assert selection.reason == SelectionReason.ADDRESS_OVERRIDE

    def test_best_candidate(self) -> None:
        weak = make_candidate("mapbox", quality="partial", confidence=0.6)
        strong = make_candidate("opencage", quality="building", confidence=0.85)
        selection = select(score([weak, strong], NYC_BBOX))
        assert selection is not None
        assert selection.reason == SelectionReason.BEST_CANDIDATE
        assert selection.candidate is strong
        assert selection.point == Point(
            lat=strong.lat, lng=strong.lng, provider="opencage", quality="building", confidence=0.85
        )

    def test_no_candidates_is_not_found(self) -> None:
        assert select([]) is None


class TestAcceptsReplacement:
    """Tests for the conservative replacement rule."""

    def test_rooftop_accepted_even_with_low_confidence(self) -> None:
        assert accepts_replacement(make_candidate(quality="rooftop", confidence=0.3), NYC_BBOX)

    def test_rooftop_location_type_in_raw_ref(self) -> None:
        candidate = make_candidate(quality="weird", confidence=0.3)
        candidate.raw_ref = {"location_type": "ROOFTOP"}
        assert is_rooftop(candidate)
        assert accepts_replacement(candidate, NYC_BBOX)

    def test_native_location_type_overrides_quality_label(self) -> None:
        candidate = make_candidate(lat=LONDON[0], lng=LONDON[1], quality="rooftop", confidence=0.97)
        candidate.raw_ref = {"location_type": "RANGE_INTERPOLATED"}
        assert not is_rooftop(candidate)
        assert not accepts_replacement(candidate, NYC_BBOX)

    def test_in_bounds_high_confidence_accepted(self) -> None:
        assert accepts_replacement(make_candidate(quality="partial", confidence=0.8), NYC_BBOX)

    def test_in_bounds_low_confidence_rejected(self) -> None:
        assert not accepts_replacement(make_candidate(quality="partial", confidence=0.7), NYC_BBOX)

    def test_out_of_bounds_high_confidence_rejected(self) -> None:
        candidate = make_candidate(lat=LONDON[0], lng=LONDON[1], quality="address", confidence=0.99)
        assert not accepts_replacement(candidate, NYC_BBOX)

    def test_custom_threshold(self) -> None:
        candidate = make_candidate(quality="partial", confidence=0.7)
        assert accepts_replacement(candidate, NYC_BBOX, min_confidence=0.6)
