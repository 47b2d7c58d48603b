"""Application wiring for ridelog.

Builds the ride and photo repositories once per application lifetime and
hands them to consumers by reference. Nothing here is a module-level
singleton; tests construct a fresh journal per case.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from ridelog.config import Config, ensure_data_dir
from ridelog.models.ride import Ride
from ridelog.services.cache import PHOTOS_NAMESPACE, RIDES_NAMESPACE, LocalCache
from ridelog.services.clustering import RideCluster, cluster_rides
from ridelog.services.remote import RemoteStore
from ridelog.services.repository import PhotoRepository, RideRepository

logger = logging.getLogger("ridelog.journal")


@dataclass
class JournalStatus:
    """Snapshot of backend reachability and store modes."""

    api_url: str
    backend_reachable: bool
    rides_mode: str
    photos_mode: str
    ride_count: int
    photo_count: int
    advisories: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_url": self.api_url,
            "backend_reachable": self.backend_reachable,
            "rides_mode": self.rides_mode,
            "photos_mode": self.photos_mode,
            "ride_count": self.ride_count,
            "photo_count": self.photo_count,
            "advisories": list(self.advisories),
        }


class RideJournal:
    """Owns one repository per record kind."""

    def __init__(self, config: Config, session: requests.Session | None = None) -> None:
        """Initialize the journal.

        Args:
            config: Application configuration.
            session: Optional HTTP session shared by both remote stores.
        """
        self.config = config
        self.data_dir: Path = ensure_data_dir(config)
        self.session = session or requests.Session()

        self.photos = PhotoRepository(
            RemoteStore(config.api.url, "photos", config.api.timeout, self.session),
            LocalCache(self.data_dir, PHOTOS_NAMESPACE),
        )
        self.rides = RideRepository(
            RemoteStore(config.api.url, "rides", config.api.timeout, self.session),
            LocalCache(self.data_dir, RIDES_NAMESPACE),
            photos=self.photos,
        )

    def load(self) -> list[str]:
        """Load photos then rides.

        Photos come first so that ride photo references can be checked.

        Returns:
            Advisories from degraded loads, empty when fully online.
        """
        advisories: list[str] = []
        for repository in (self.photos, self.rides):
            result = repository.load()
            if result.advisory and result.advisory not in advisories:
                advisories.append(result.advisory)
        return advisories

    @property
    def is_offline(self) -> bool:
        return self.rides.is_offline or self.photos.is_offline

    def clusters(
        self, rides: list[Ride] | None = None, tolerance: float | None = None
    ) -> list[RideCluster]:
        """Group rides for the map, using the configured tolerance by default."""
        return cluster_rides(
            self.rides.records if rides is None else rides,
            tolerance if tolerance is not None else self.config.map.tolerance,
        )

    def status(self) -> JournalStatus:
        """Ping the backend and report the current state of both stores."""
        ping = self.rides.remote.ping()
        advisories = [
            a for a in (self.photos.last_error, self.rides.last_error) if a is not None
        ]
        return JournalStatus(
            api_url=self.config.api.url,
            backend_reachable=ping.ok,
            rides_mode=self.rides.mode.value,
            photos_mode=self.photos.mode.value,
            ride_count=len(self.rides),
            photo_count=len(self.photos),
            advisories=list(dict.fromkeys(advisories)),
        )
