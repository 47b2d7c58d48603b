"""Record models for ridelog."""

from ridelog.models.photo import Photo, validate_photo_draft
from ridelog.models.record import RecordId
from ridelog.models.ride import Location, Ride, validate_ride_draft

__all__ = [
    "Location",
    "Photo",
    "RecordId",
    "Ride",
    "validate_photo_draft",
    "validate_ride_draft",
]
