"""Geocode cache: one whole record per normalized-address key.

Provides a ``GeocodeCache`` Protocol, a ``FileGeocodeCache`` that keeps one
JSON file per key under a versioned directory, and an
``InMemoryGeocodeCache`` for tests and short-lived tools. Reads and writes
are whole-record and last-writer-wins; there is no partial merge.
"""

import os
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import aiofiles
import aiofiles.os
from loguru import logger
from pydantic import ValidationError

from stop_geocoder.lib.geocoder.types import GeocodeRecord

CacheFilter = Callable[[str, GeocodeRecord], bool]


@dataclass
class CacheEntry:
    """One stored key; ``record`` is ``None`` when the file could not be read."""

    key: str
    record: GeocodeRecord | None
    error: str | None = None


class GeocodeCache(Protocol):
    """Key-value store of geocode records keyed by cache key."""

    async def get(self, key: str) -> GeocodeRecord | None:
        """Return the record for ``key``; missing or unreadable entries yield ``None``."""
        ...

    async def put(self, key: str, record: GeocodeRecord) -> None:
        """Replace the record stored under ``key``."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove ``key``; returns whether anything was removed."""
        ...

    def entries(self) -> AsyncIterator[CacheEntry]:
        """Iterate every stored key, including unreadable ones."""
        ...

    async def list(self, predicate: CacheFilter | None = None) -> list[tuple[str, GeocodeRecord]]:
        """Readable ``(key, record)`` pairs, optionally filtered."""
        ...


class FileGeocodeCache:
    """Filesystem implementation of GeocodeCache.

    Records live at ``{cache_dir}/{key}.json``. Each write goes to a
    temporary sibling file that is then renamed over the target, so a
    reader never sees a half-written record.

    Args:
        cache_dir: Versioned cache directory (e.g. ``cache/geocode/v2``).
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir)

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            msg = f"Invalid cache key: {key!r}"
            raise ValueError(msg)
        return self._cache_dir / f"{key}.json"

    async def _read(self, key: str) -> CacheEntry:
        path = self.path_for(key)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                text = await f.read()
        except FileNotFoundError:
            return CacheEntry(key=key, record=None)
        except OSError as e:
            logger.warning(f"Unreadable cache file {path.name}: {e}")
            return CacheEntry(key=key, record=None, error=f"read_error: {e}")
        except UnicodeDecodeError as e:
            logger.warning(f"Malformed cache file {path.name}: {e.reason}")
            return CacheEntry(key=key, record=None, error=f"parse_error: {e.reason}")

        try:
            return CacheEntry(key=key, record=GeocodeRecord.model_validate_json(text))
        except ValidationError as e:
            logger.warning(f"Malformed cache file {path.name}: {e.error_count()} validation error(s)")
            return CacheEntry(key=key, record=None, error=f"parse_error: {e.errors()[0]['msg']}")

    async def get(self, key: str) -> GeocodeRecord | None:
        return (await self._read(key)).record

    async def put(self, key: str, record: GeocodeRecord) -> None:
        """Atomically replace the record file for ``key``.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        path = self.path_for(key)
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(record.model_dump_json(indent=2))
            await aiofiles.os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    async def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        return True

    async def entries(self) -> AsyncIterator[CacheEntry]:
        if not self._cache_dir.is_dir():
            return
        for name in sorted(os.listdir(self._cache_dir)):
            if not name.endswith(".json") or name.startswith("."):
                continue
            entry = await self._read(name.removesuffix(".json"))
            if entry.record is None and entry.error is None:
                # removed between listdir and read
                continue
            yield entry

    async def list(self, predicate: CacheFilter | None = None) -> list[tuple[str, GeocodeRecord]]:
        pairs: list[tuple[str, GeocodeRecord]] = []
        async for entry in self.entries():
            if entry.record is None:
                continue
            if predicate is None or predicate(entry.key, entry.record):
                pairs.append((entry.key, entry.record))
        return pairs


class InMemoryGeocodeCache:
    """Dict-backed GeocodeCache; records are copied on the way in and out."""

    def __init__(self, records: dict[str, GeocodeRecord] | None = None) -> None:
        self._records: dict[str, GeocodeRecord] = {}
        for key, record in (records or {}).items():
            self._records[key] = record.model_copy(deep=True)

    async def get(self, key: str) -> GeocodeRecord | None:
        record = self._records.get(key)
        return record.model_copy(deep=True) if record is not None else None

    async def put(self, key: str, record: GeocodeRecord) -> None:
        self._records[key] = record.model_copy(deep=True)

    async def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    async def entries(self) -> AsyncIterator[CacheEntry]:
        for key in sorted(self._records):
            yield CacheEntry(key=key, record=self._records[key].model_copy(deep=True))

    async def list(self, predicate: CacheFilter | None = None) -> list[tuple[str, GeocodeRecord]]:
        return [
            (entry.key, entry.record)
            async for entry in self.entries()
            if entry.record is not None and (predicate is None or predicate(entry.key, entry.record))
        ]
