"""Unit tests for maintenance report persistence."""

from datetime import UTC, date, datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from stop_geocoder.lib.geocoder.reports import (
    load_scan_report,
    report_name,
    scan_report_path,
    write_regeocode_summary,
    write_scan_report,
)
from stop_geocoder.schemas.maintenance import RegeocodeSummary, ScanDetail, ScanReport, ScanTotals


def _report() -> ScanReport:
    return ScanReport(
        generated_at=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        bbox_used={"west": -74.5, "south": 40.2, "east": -72.5, "north": 41.2},
        confidence_threshold=0.8,
        totals=ScanTotals(files=2, no_chosen=1, low_confidence=1),
        details={"a": ScanDetail(low_confidence=True), "b": ScanDetail()},
    )


class TestReports:
    def test_report_name(self) -> None:
        assert report_name("geocode-scan", date(2024, 5, 1)) == "geocode-scan-2024-05-01.json"

    def test_scan_report_path_defaults_to_today(self, tmp_path: Path) -> None:
        today = datetime.now(UTC).date().isoformat()
        assert scan_report_path(tmp_path) == tmp_path / f"geocode-scan-{today}.json"

    async def test_scan_report_round_trip(self, tmp_path: Path) -> None:
        path = await write_scan_report(_report(), tmp_path / "reports")
        assert path.name == "geocode-scan-2024-05-01.json"

        loaded = await load_scan_report(path)
        assert loaded.totals.files == 2
        assert loaded.flagged_keys() == ["a"]

    async def test_load_missing_report(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            await load_scan_report(tmp_path / "nope.json")

    async def test_load_foreign_file(self, tmp_path: Path) -> None:
        path = tmp_path / "other.json"
        path.write_text('{"hello": "world"}', encoding="utf-8")
        with pytest.raises(ValidationError):
            await load_scan_report(path)

    @pytest.mark.parametrize(
        "bbox_used",
        [
            '{"west": -74.5, "south": 40.2, "east": -72.5}',
            '{"west": -72.5, "south": 40.2, "east": -74.5, "north": 41.2}',
        ],
    )
    async def test_load_report_with_unusable_bbox(self, tmp_path: Path, bbox_used: str) -> None:
        path = tmp_path / "scan.json"
        path.write_text(f'{{"bbox_used": {bbox_used}, "confidence_threshold": 0.8}}', encoding="utf-8")
        with pytest.raises(ValidationError):
            await load_scan_report(path)

    async def test_report_exposes_scan_region(self) -> None:
        assert str(_report().bounding_box) == "-74.5,40.2,-72.5,41.2"

    async def test_regeocode_summary_name(self, tmp_path: Path) -> None:
        summary = RegeocodeSummary(
            started_at=datetime(2024, 5, 2, tzinfo=UTC),
            dry_run=True,
            provider_order=["google"],
        )
        path = await write_regeocode_summary(summary, tmp_path)
        assert path.name == "regeocode-suggest-2024-05-02.json"
        assert RegeocodeSummary.model_validate_json(path.read_text(encoding="utf-8")).dry_run is True
