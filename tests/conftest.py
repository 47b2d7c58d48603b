"""Shared fixtures for ridelog tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from ridelog.services.cache import PHOTOS_NAMESPACE, RIDES_NAMESPACE, LocalCache
from ridelog.services.remote import RemoteStore
from ridelog.services.repository import IdGenerator, PhotoRepository, RideRepository

FIXED_NOW = datetime(2024, 5, 2, 18, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Empty data directory."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def api_url() -> str:
    """Journal backend test URL."""
    return "http://journal.example.com/api"


@pytest.fixture
def rides_url(api_url: str) -> str:
    return f"{api_url}/rides"


@pytest.fixture
def photos_url(api_url: str) -> str:
    return f"{api_url}/photos"


@pytest.fixture
def rides_cache(temp_data_dir: Path) -> LocalCache:
    return LocalCache(temp_data_dir, RIDES_NAMESPACE)


@pytest.fixture
def photos_cache(temp_data_dir: Path) -> LocalCache:
    return LocalCache(temp_data_dir, PHOTOS_NAMESPACE)


@pytest.fixture
def photo_repo(api_url: str, photos_cache: LocalCache) -> PhotoRepository:
    """Photo repository with a fixed clock."""
    return PhotoRepository(
        RemoteStore(api_url, "photos", timeout=1),
        photos_cache,
        clock=lambda: FIXED_NOW,
        id_generator=IdGenerator(clock=lambda: 1_714_000_000.0),
    )


@pytest.fixture
def ride_repo(api_url: str, rides_cache: LocalCache) -> RideRepository:
    """Ride repository with a fixed clock and predictable client ids."""
    return RideRepository(
        RemoteStore(api_url, "rides", timeout=1),
        rides_cache,
        clock=lambda: FIXED_NOW,
        id_generator=IdGenerator(clock=lambda: 1_714_600_000.0),
    )


@pytest.fixture
def alps_loop() -> dict:
    """Minimal valid ride draft."""
    return {
        "name": "Alps Loop",
        "date": "2024-05-01",
        "location": {"lat": 47.0, "lng": 8.5},
    }


@pytest.fixture
def fixed_now() -> datetime:
    """The time the repository fixtures' clock reports."""
    return FIXED_NOW
