"""Dated JSON artifacts written by the maintenance pipeline."""

import uuid
from datetime import UTC, date, datetime
from pathlib import Path

import aiofiles
import aiofiles.os
from pydantic import BaseModel

from stop_geocoder.schemas.maintenance import RegeocodeSummary, ScanReport

SCAN_REPORT_PREFIX = "geocode-scan"
REGEOCODE_SUMMARY_PREFIX = "regeocode-suggest"


def report_name(prefix: str, day: date | None = None) -> str:
    """File name for a dated artifact, e.g. ``geocode-scan-2024-05-01.json``."""
    day = day or datetime.now(UTC).date()
    return f"{prefix}-{day.isoformat()}.json"


def scan_report_path(reports_dir: str | Path, day: date | None = None) -> Path:
    return Path(reports_dir) / report_name(SCAN_REPORT_PREFIX, day)


async def _write_model(path: Path, model: BaseModel) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(model.model_dump_json(indent=2))
        await aiofiles.os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
    return path


async def write_scan_report(report: ScanReport, reports_dir: str | Path) -> Path:
    """Persist a scan report under its generation date.

    A second scan on the same day replaces the earlier file.

    Returns:
        Path of the written report.
    """
    return await _write_model(scan_report_path(reports_dir, report.generated_at.date()), report)


async def load_scan_report(path: str | Path) -> ScanReport:
    """Read a scan report back.

    Raises:
        FileNotFoundError: If the report does not exist.
        pydantic.ValidationError: If the file is not a scan report.
    """
    async with aiofiles.open(path, encoding="utf-8") as f:
        return ScanReport.model_validate_json(await f.read())


async def write_regeocode_summary(summary: RegeocodeSummary, reports_dir: str | Path) -> Path:
    path = Path(reports_dir) / report_name(REGEOCODE_SUMMARY_PREFIX, summary.started_at.date())
    return await _write_model(path, summary)
