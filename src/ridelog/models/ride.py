"""Ride model and draft validation.

A ride is one journal entry: where and when it happened, how far and how
high, free-form notes and references to attached photos.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from ridelog.errors import ValidationError
from ridelog.models.record import (
    RecordId,
    format_timestamp,
    is_number,
    parse_date,
    parse_timestamp,
    require_non_negative,
)


@dataclass(frozen=True)
class Location:
    """A point in WGS84 degrees."""

    lat: float
    lng: float

    def distance_to(self, other: Location) -> float:
        """Euclidean distance in degree space.

        Not a geodesic distance; only meaningful for comparing nearby points
        against a small tolerance.
        """
        return math.hypot(self.lat - other.lat, self.lng - other.lng)

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Location:
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass
class Ride:
    """A recorded bike ride."""

    id: RecordId
    name: str
    date: date
    location: Location
    distance: float = 0.0
    elevation: float = 0.0
    notes: str = ""
    photo_ids: list[RecordId] = field(default_factory=list)
    location_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert ride to its JSON wire shape.

        Returns:
            Dictionary representation.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "date": self.date.isoformat(),
            "location": self.location.to_dict(),
            "distance": self.distance,
            "elevation": self.elevation,
            "notes": self.notes,
            "photoIds": list(self.photo_ids),
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        if self.location_name is not None:
            data["locationName"] = self.location_name
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Ride:
        """Create a ride from a stored or server-returned dictionary.

        Older backends store photo references under ``photos`` and document
        databases key records by ``_id``; both spellings are accepted.

        Args:
            data: Dictionary with ride data.

        Returns:
            Ride instance.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field cannot be parsed.
        """
        photo_ids = data.get("photoIds")
        if photo_ids is None:
            photo_ids = data.get("photos") or []

        return cls(
            id=data["id"] if "id" in data else data["_id"],
            name=str(data["name"]),
            date=parse_date(data["date"]),
            location=Location.from_dict(data["location"]),
            distance=float(data.get("distance") or 0),
            elevation=float(data.get("elevation") or 0),
            notes=data.get("notes") or "",
            photo_ids=[p.get("id", p.get("_id")) if isinstance(p, Mapping) else p for p in photo_ids],
            location_name=data.get("locationName"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )

    @classmethod
    def from_draft(
        cls, draft: Mapping[str, Any], record_id: RecordId, created_at: datetime
    ) -> Ride:
        """Build a ride from a validated draft.

        Args:
            draft: Output of `validate_ride_draft`.
            record_id: Id to assign.
            created_at: Creation timestamp to stamp.

        Returns:
            Ride instance.
        """
        ride = cls.from_dict({**draft, "id": record_id})
        ride.created_at = created_at
        return ride


def validate_ride_draft(data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a ride draft and normalize it to the wire shape.

    Required: ``name``, ``date`` and ``location`` with numeric ``lat`` and
    ``lng``. Optional ``distance`` and ``elevation`` default to 0, ``notes``
    to an empty string and ``photoIds`` to an empty list.

    Args:
        data: Draft or merged update payload.

    Returns:
        Normalized draft without id or timestamps.

    Raises:
        ValidationError: On the first invalid field.
    """
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required", field="name")

    raw_date = data.get("date")
    if raw_date in (None, ""):
        raise ValidationError("date is required", field="date")
    try:
        ride_date = parse_date(raw_date)
    except ValueError as e:
        raise ValidationError(f"date is invalid: {raw_date!r}", field="date") from e

    location = data.get("location")
    if not isinstance(location, Mapping):
        raise ValidationError("location is required", field="location")
    for key, limit in (("lat", 90.0), ("lng", 180.0)):
        value = location.get(key)
        if value is None:
            raise ValidationError(f"location.{key} is required", field=f"location.{key}")
        if not is_number(value):
            raise ValidationError(f"location.{key} must be a number", field=f"location.{key}")
        if not -limit <= value <= limit:
            raise ValidationError(
                f"location.{key} must be within [-{limit:g}, {limit:g}]",
                field=f"location.{key}",
            )

    notes = data.get("notes") or ""
    if not isinstance(notes, str):
        raise ValidationError("notes must be text", field="notes")

    photo_ids = data.get("photoIds")
    if photo_ids is None:
        photo_ids = data.get("photos") or []
    if isinstance(photo_ids, (str, bytes)) or not isinstance(photo_ids, (list, tuple)):
        raise ValidationError("photoIds must be a list", field="photoIds")

    draft: dict[str, Any] = {
        "name": name,
        "date": ride_date.isoformat(),
        "location": {"lat": float(location["lat"]), "lng": float(location["lng"])},
        "distance": require_non_negative(data, "distance"),
        "elevation": require_non_negative(data, "elevation"),
        "notes": notes,
        "photoIds": list(photo_ids),
    }
    location_name = data.get("locationName")
    if location_name:
        draft["locationName"] = str(location_name)
    return draft
