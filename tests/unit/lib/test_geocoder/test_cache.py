"""Unit tests for the file-backed and in-memory geocode caches."""

from pathlib import Path

import pytest
from helpers import NYC_BBOX, make_candidate

from stop_geocoder.lib.geocoder import (
    FileGeocodeCache,
    GeocodeRecord,
    InMemoryGeocodeCache,
    Point,
    rank,
    score,
)


def _record(confidence: float = 0.9) -> GeocodeRecord:
    candidates = rank(
        score(
            [
                make_candidate("google", quality="rooftop", confidence=confidence),
                make_candidate("mapbox", lat=40.7, lng=-73.9, quality="address", confidence=confidence / 2),
            ],
            NYC_BBOX,
        )
    )
    return GeocodeRecord(
        query="150 Main St Brooklyn NY 11221",
        chosen=Point.from_candidate(candidates[0]),
        candidates=candidates,
    )


class TestFileGeocodeCache:
    """Tests for FileGeocodeCache."""

    async def test_round_trip(self, tmp_path: Path) -> None:
        cache = FileGeocodeCache(tmp_path / "v2")
        record = _record()
        await cache.put("150_main_st", record)

        loaded = await cache.get("150_main_st")
        assert loaded is not None
        assert loaded.chosen == record.chosen
        assert loaded.candidates == record.candidates
        assert loaded.query == record.query

    async def test_one_file_per_key(self, tmp_path: Path) -> None:
        cache = FileGeocodeCache(tmp_path / "v2")
        await cache.put("a_key", _record())
        assert (tmp_path / "v2" / "a_key.json").is_file()

    async def test_missing_key_is_none(self, tmp_path: Path) -> None:
        assert await FileGeocodeCache(tmp_path).get("nothing_here") is None

    async def test_malformed_file_is_none(self, tmp_path: Path) -> None:
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        cache = FileGeocodeCache(tmp_path)
        assert await cache.get("broken") is None

    async def test_invalid_utf8_file_is_none(self, tmp_path: Path) -> None:
        (tmp_path / "1_main_st.json").write_bytes(b"\xff\xfe\x00garbage")
        cache = FileGeocodeCache(tmp_path)

        assert await cache.get("1_main_st") is None
        [entry] = [entry async for entry in cache.entries()]
        assert entry.error is not None
        assert entry.error.startswith("parse_error")

    async def test_malformed_file_reported_by_entries(self, tmp_path: Path) -> None:
        (tmp_path / "broken.json").write_text('{"chosen": {"lat": 999}}', encoding="utf-8")
        cache = FileGeocodeCache(tmp_path)
        entries = [entry async for entry in cache.entries()]
        assert len(entries) == 1
        assert entries[0].record is None
        assert entries[0].error is not None

    async def test_put_replaces_whole_record(self, tmp_path: Path) -> None:
        cache = FileGeocodeCache(tmp_path)
        await cache.put("k", _record())
        await cache.put("k", GeocodeRecord(query="x"))
        loaded = await cache.get("k")
        assert loaded is not None
        assert loaded.chosen is None
        assert loaded.candidates == []

    async def test_put_leaves_no_temp_files(self, tmp_path: Path) -> None:
        cache = FileGeocodeCache(tmp_path)
        await cache.put("k", _record())
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]

    async def test_delete(self, tmp_path: Path) -> None:
        cache = FileGeocodeCache(tmp_path)
        await cache.put("k", _record())
        assert await cache.delete("k") is True
        assert await cache.delete("k") is False
        assert await cache.get("k") is None

    async def test_list_with_predicate(self, tmp_path: Path) -> None:
        cache = FileGeocodeCache(tmp_path)
        await cache.put("high", _record(0.95))
        await cache.put("low", _record(0.4))
        (tmp_path / "broken.json").write_text("nope", encoding="utf-8")

        everything = await cache.list()
        assert [key for key, _ in everything] == ["high", "low"]

        low = await cache.list(lambda _k, r: r.chosen is not None and r.chosen.confidence < 0.5)
        assert [key for key, _ in low] == ["low"]

    async def test_entries_on_missing_directory(self, tmp_path: Path) -> None:
        cache = FileGeocodeCache(tmp_path / "absent")
        assert [entry async for entry in cache.entries()] == []

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
    def test_invalid_keys_rejected(self, tmp_path: Path, key: str) -> None:
        with pytest.raises(ValueError, match="Invalid cache key"):
            FileGeocodeCache(tmp_path).path_for(key)


class TestInMemoryGeocodeCache:
    """Tests for InMemoryGeocodeCache."""

    async def test_round_trip_is_isolated(self) -> None:
        cache = InMemoryGeocodeCache()
        record = _record()
        await cache.put("k", record)
        record.candidates.clear()

        loaded = await cache.get("k")
        assert loaded is not None
        assert len(loaded.candidates) == 2

    async def test_seeded_records_and_list(self) -> None:
        cache = InMemoryGeocodeCache({"b": _record(), "a": GeocodeRecord()})
        assert [key for key, _ in await cache.list()] == ["a", "b"]
        assert await cache.delete("a") is True
        assert await cache.get("a") is None
