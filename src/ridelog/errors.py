"""Error taxonomy for ridelog.

- ValidationError: caller-fixable input problem, raised before any I/O.
- NotFoundError: the target record id is absent.
- TransportError: the remote API failed; converted into offline mode.
- PersistenceError: the local cache could not be written; always surfaces.
"""

from __future__ import annotations

from typing import Any


class RideLogError(Exception):
    """Base class for ridelog errors."""


class ValidationError(RideLogError):
    """A draft or update payload is invalid."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(RideLogError):
    """A record id is not present in the store."""

    def __init__(self, record_id: Any, kind: str = "record") -> None:
        super().__init__(f"{kind.capitalize()} not found: {record_id}")
        self.record_id = record_id
        self.kind = kind


class TransportError(RideLogError):
    """The remote API could not be reached or answered unusably."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(RideLogError):
    """Writing to or reading from the local cache failed."""
