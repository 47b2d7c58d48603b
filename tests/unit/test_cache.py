"""Unit tests for the offline record cache."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from ridelog.errors import PersistenceError
from ridelog.models.photo import Photo
from ridelog.models.ride import Location, Ride
from ridelog.services.cache import RIDES_NAMESPACE, LocalCache


class TestLocalCache:
    """Tests for LocalCache."""

    def test_path_layout(self, temp_data_dir: Path) -> None:
        cache = LocalCache(temp_data_dir, RIDES_NAMESPACE)

        assert cache.path == temp_data_dir / "cache" / "bikeAppRides.json"

    def test_invalid_namespace(self, temp_data_dir: Path) -> None:
        with pytest.raises(ValueError, match="Invalid cache namespace"):
            LocalCache(temp_data_dir, "../escape")

    def test_missing_blob_reads_empty(self, rides_cache: LocalCache) -> None:
        assert rides_cache.read_all() == []

    def test_ride_round_trip(self, rides_cache: LocalCache) -> None:
        """Test rides read back equal, by id and every field."""
        rides = [
            Ride(
                id=1714600000000,
                name="Alps Loop",
                date=date(2024, 5, 1),
                location=Location(47.0, 8.5),
                distance=61.2,
                elevation=1200.0,
                notes="Snow on the pass",
                photo_ids=[3, "abc"],
                location_name="Andermatt",
                created_at=datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc),
            ),
            Ride(id="srv-2", name="Commute", date=date(2024, 5, 2), location=Location(-33.9, 151.2)),
        ]

        rides_cache.write_all([r.to_dict() for r in rides])
        restored = [Ride.from_dict(d) for d in rides_cache.read_all()]

        assert restored == rides

    def test_photo_round_trip(self, rides_cache: LocalCache) -> None:
        uploaded = datetime(2024, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)
        photos = [
            Photo(
                id=5,
                filename="1714560000-summit.jpg",
                original_name="summit.jpg",
                url="/uploads/1714560000-summit.jpg",
                size=204800,
                mime_type="image/jpeg",
                uploaded_at=uploaded,
                description="Top of the pass",
                tags={"alps", "summit"},
            )
        ]

        rides_cache.write_all([p.to_dict() for p in photos])
        restored = [Photo.from_dict(d) for d in rides_cache.read_all()]

        assert restored == photos
        assert restored[0].date_taken == uploaded

    def test_write_replaces_blob(self, rides_cache: LocalCache) -> None:
        rides_cache.write_all([{"id": 1}, {"id": 2}])
        rides_cache.write_all([{"id": 3}])

        assert rides_cache.read_all() == [{"id": 3}]

    def test_unserializable_write_keeps_previous_blob(self, rides_cache: LocalCache) -> None:
        """Test a failed write does not truncate what was stored."""
        rides_cache.write_all([{"id": 1}])

        with pytest.raises(PersistenceError, match="Cannot serialize"):
            rides_cache.write_all([{"id": 2, "when": object()}])

        assert rides_cache.read_all() == [{"id": 1}]
        assert list(rides_cache.path.parent.glob("*.tmp")) == []

    def test_unwritable_directory(self, tmp_path: Path) -> None:
        blocker = tmp_path / "data"
        blocker.write_text("not a directory")
        cache = LocalCache(blocker, RIDES_NAMESPACE)

        with pytest.raises(PersistenceError, match="Cannot write cache"):
            cache.write_all([{"id": 1}])

    @pytest.mark.parametrize("content", ["{broken", '{"id": 1}', "[1, 2]"])
    def test_corrupt_blob(self, rides_cache: LocalCache, content: str) -> None:
        rides_cache.path.parent.mkdir(parents=True)
        rides_cache.path.write_text(content)

        with pytest.raises(PersistenceError):
            rides_cache.read_all()

    def test_blob_is_plain_json_array(self, rides_cache: LocalCache) -> None:
        rides_cache.write_all([{"id": 1, "name": "Zürich"}])

        assert json.loads(rides_cache.path.read_text(encoding="utf-8")) == [{"id": 1, "name": "Zürich"}]

    def test_clear(self, rides_cache: LocalCache) -> None:
        assert rides_cache.clear() is False

        rides_cache.write_all([])

        assert rides_cache.clear() is True
        assert not rides_cache.path.exists()
