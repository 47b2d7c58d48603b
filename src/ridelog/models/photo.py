"""Photo model and draft validation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ridelog.errors import ValidationError
from ridelog.models.record import (
    RecordId,
    format_timestamp,
    parse_timestamp,
    require_non_negative,
)


@dataclass
class Photo:
    """An uploaded photo that rides can reference."""

    id: RecordId
    filename: str
    original_name: str = ""
    url: str = ""
    size: int = 0
    mime_type: str = ""
    uploaded_at: datetime | None = None
    date_taken: datetime | None = None
    description: str = ""
    tags: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.date_taken is None:
            self.date_taken = self.uploaded_at

    @property
    def display_name(self) -> str:
        """Name shown to the user."""
        return self.original_name or self.filename

    def to_dict(self) -> dict[str, Any]:
        """Convert photo to its JSON wire shape.

        Tags are written sorted so that the blob is stable.
        """
        return {
            "id": self.id,
            "filename": self.filename,
            "originalName": self.original_name,
            "url": self.url,
            "size": self.size,
            "mimeType": self.mime_type,
            "uploadedAt": format_timestamp(self.uploaded_at),
            "dateTaken": format_timestamp(self.date_taken),
            "description": self.description,
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Photo:
        """Create a photo from a stored or server-returned dictionary.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field cannot be parsed.
        """
        return cls(
            id=data["id"] if "id" in data else data["_id"],
            filename=str(data["filename"]),
            original_name=data.get("originalName") or "",
            url=data.get("url") or "",
            size=int(data.get("size") or 0),
            mime_type=data.get("mimeType") or "",
            uploaded_at=parse_timestamp(data.get("uploadedAt")),
            date_taken=parse_timestamp(data.get("dateTaken")),
            description=data.get("description") or "",
            tags=set(_split_tags(data.get("tags"))),
        )

    @classmethod
    def from_draft(
        cls, draft: Mapping[str, Any], record_id: RecordId, created_at: datetime
    ) -> Photo:
        """Build a photo from a validated draft, defaulting the upload time."""
        photo = cls.from_dict({**draft, "id": record_id})
        if photo.uploaded_at is None:
            photo.uploaded_at = created_at
        if photo.date_taken is None:
            photo.date_taken = photo.uploaded_at
        return photo


def _split_tags(value: Any) -> list[str]:
    """Normalize tags given as a list or as comma-separated text."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(tag).strip() for tag in value if str(tag).strip()]


def validate_photo_draft(data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate photo metadata and normalize it to the wire shape.

    ``filename`` is required (``originalName`` is used when it is missing).
    Upload handling itself happens server-side; this only covers the
    metadata record.

    Raises:
        ValidationError: On the first invalid field.
    """
    filename = data.get("filename") or data.get("originalName")
    if not isinstance(filename, str) or not filename.strip():
        raise ValidationError("filename is required", field="filename")

    for key in ("url", "mimeType", "description", "originalName"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{key} must be text", field=key)

    tags = data.get("tags")
    if tags is not None and not isinstance(tags, (str, list, tuple, set, frozenset)):
        raise ValidationError("tags must be a list of strings", field="tags")

    timestamps: dict[str, str | None] = {}
    for key in ("uploadedAt", "dateTaken"):
        try:
            timestamps[key] = format_timestamp(parse_timestamp(data.get(key)))
        except ValueError as e:
            raise ValidationError(f"{key} is not a valid timestamp", field=key) from e

    size = require_non_negative(data, "size")
    if not size.is_integer():
        raise ValidationError("size must be a whole number of bytes", field="size")

    return {
        "filename": filename,
        "originalName": data.get("originalName") or "",
        "url": data.get("url") or "",
        "size": int(size),
        "mimeType": data.get("mimeType") or "",
        "uploadedAt": timestamps["uploadedAt"],
        "dateTaken": timestamps["dateTaken"],
        "description": data.get("description") or "",
        "tags": sorted(set(_split_tags(tags))),
    }
