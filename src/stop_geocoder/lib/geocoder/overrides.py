"""Manual coordinate overrides, indexed by address key and by job identifier.

Overrides always win over cached and live provider results. The store is a
single JSON file loaded once and rewritten whole on every change.
"""

import asyncio
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os
from loguru import logger
from pydantic import ValidationError

from stop_geocoder.lib.geocoder.base import ProviderName
from stop_geocoder.lib.geocoder.types import OverrideTable, Point

OVERRIDE_QUALITY = "manual"


def override_point(lat: float, lng: float) -> Point:
    """Build the point stored for a manual correction."""
    return Point(lat=lat, lng=lng, provider=ProviderName.OVERRIDE.value, quality=OVERRIDE_QUALITY, confidence=1.0)


class OverrideStore:
    """Override table with optional JSON-file persistence.

    Args:
        path: JSON file backing the store; ``None`` keeps it in memory only.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._table: OverrideTable | None = None
        self._lock = asyncio.Lock()

    async def _load(self) -> OverrideTable:
        if self._table is not None:
            return self._table
        table = OverrideTable()
        if self._path is not None:
            try:
                async with aiofiles.open(self._path, encoding="utf-8") as f:
                    table = OverrideTable.model_validate_json(await f.read())
            except FileNotFoundError:
                pass
            except (OSError, ValidationError) as e:
                logger.warning(f"Ignoring unreadable overrides file {self._path}: {e}")
        self._table = table
        return table

    async def reload(self) -> None:
        """Drop the in-memory copy so the next lookup re-reads the file."""
        self._table = None

    async def _save(self, table: OverrideTable) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f".{self._path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(table.model_dump_json(indent=2))
            await aiofiles.os.replace(tmp_path, self._path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    async def for_job(self, job_id: str | None) -> Point | None:
        if not job_id:
            return None
        return (await self._load()).by_job.get(job_id)

    async def for_address(self, key: str | None) -> Point | None:
        if not key:
            return None
        return (await self._load()).by_address.get(key)

    async def set(
        self,
        lat: float,
        lng: float,
        *,
        address_key: str | None = None,
        job_id: str | None = None,
    ) -> Point:
        """Record a manual correction under an address key, a job id, or both.

        Raises:
            ValueError: If neither key is given.
            OSError: If the overrides file cannot be written.
        """
        if not address_key and not job_id:
            msg = "An override needs an address or a job id"
            raise ValueError(msg)
        point = override_point(lat, lng)
        async with self._lock:
            table = (await self._load()).model_copy(deep=True)
            if address_key:
                table.by_address[address_key] = point
            if job_id:
                table.by_job[job_id] = point
            await self._save(table)
            self._table = table
        logger.info(f"Override set (address={bool(address_key)}, job={bool(job_id)})")
        return point

    async def table(self) -> OverrideTable:
        return (await self._load()).model_copy(deep=True)
