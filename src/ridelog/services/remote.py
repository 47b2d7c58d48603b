"""REST client for the ride journal backend.

Each call returns a `RemoteResult` instead of raising, so that callers can
branch explicitly on "not found", "rejected" and "unavailable". Only the
last of these is a reason to fall back to the offline cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import requests

from ridelog.config import DEFAULT_API_TIMEOUT
from ridelog.errors import NotFoundError, RideLogError, TransportError, ValidationError
from ridelog.models.record import RecordId

logger = logging.getLogger("ridelog.remote")

# Statuses the backend uses for payloads it refuses to store
REJECTED_STATUS_CODES = frozenset({400, 409, 422})


class RemoteStatus(Enum):
    """Outcome class of a remote call."""

    OK = "ok"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class RemoteResult:
    """Outcome of a single remote call.

    Attributes:
        status: Outcome class.
        payload: Decoded JSON body for successful calls.
        error: Error describing the failure, None on success.
    """

    status: RemoteStatus
    payload: Any = None
    error: RideLogError | None = None

    @property
    def ok(self) -> bool:
        return self.status is RemoteStatus.OK

    @classmethod
    def success(cls, payload: Any = None) -> RemoteResult:
        return cls(RemoteStatus.OK, payload=payload)

    @classmethod
    def not_found(cls, record_id: Any, kind: str = "record") -> RemoteResult:
        return cls(RemoteStatus.NOT_FOUND, error=NotFoundError(record_id, kind))

    @classmethod
    def rejected(cls, message: str) -> RemoteResult:
        return cls(RemoteStatus.REJECTED, error=ValidationError(message))

    @classmethod
    def unavailable(cls, message: str, status_code: int | None = None) -> RemoteResult:
        return cls(RemoteStatus.UNAVAILABLE, error=TransportError(message, status_code))


class RemoteStore:
    """CRUD client for one record collection (``rides`` or ``photos``)."""

    def __init__(
        self,
        url: str,
        resource: str,
        timeout: float = DEFAULT_API_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: API base URL, e.g. ``http://localhost:5000/api``.
            resource: Collection name appended to the base URL.
            timeout: Per-request timeout in seconds.
            session: Optional shared HTTP session.
        """
        self.url = url.rstrip("/")
        self.resource = resource.strip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def collection_url(self) -> str:
        return f"{self.url}/{self.resource}"

    @property
    def kind(self) -> str:
        """Singular record label used in messages."""
        return self.resource[:-1] if self.resource.endswith("s") else self.resource

    def record_url(self, record_id: RecordId) -> str:
        return f"{self.collection_url}/{record_id}"

    def list_all(self) -> RemoteResult:
        """Fetch every record in the collection.

        A body that is not a JSON list is reported as unavailable.
        """
        result = self._request("GET", self.collection_url)
        if result.ok and not isinstance(result.payload, list):
            logger.warning("Malformed %s listing from %s", self.resource, self.collection_url)
            return RemoteResult.unavailable(f"Malformed {self.resource} listing")
        return result

    def create(self, draft: dict[str, Any]) -> RemoteResult:
        """Submit a new record; the payload is the server's canonical copy."""
        return self._expect_object(self._request("POST", self.collection_url, json=draft))

    def update(self, record_id: RecordId, payload: dict[str, Any]) -> RemoteResult:
        """Replace a record's fields; the payload is the updated record."""
        return self._expect_object(
            self._request("PUT", self.record_url(record_id), json=payload, record_id=record_id)
        )

    def delete(self, record_id: RecordId) -> RemoteResult:
        """Delete a record. A second delete of the same id is NOT_FOUND."""
        return self._request("DELETE", self.record_url(record_id), record_id=record_id)

    def ping(self) -> RemoteResult:
        """Check the backend health endpoint."""
        return self._request("GET", f"{self.url}/health")

    def _expect_object(self, result: RemoteResult) -> RemoteResult:
        if result.ok and not isinstance(result.payload, dict):
            logger.warning("Malformed %s payload from %s", self.kind, self.collection_url)
            return RemoteResult.unavailable(f"Malformed {self.kind} payload")
        return result

    def _request(
        self,
        method: str,
        url: str,
        json: Any = None,
        record_id: RecordId | None = None,
    ) -> RemoteResult:
        """Perform a request and classify its outcome.

        Args:
            method: HTTP method.
            url: Full request URL.
            json: Optional JSON body.
            record_id: Target id, used for not-found errors.

        Returns:
            Classified result.
        """
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug("%s %s failed: %s", method, url, e)
            return RemoteResult.unavailable(f"Backend not reachable: {e}")

        if response.status_code == 404:
            return RemoteResult.not_found(record_id if record_id is not None else url, self.kind)
        if response.status_code in REJECTED_STATUS_CODES:
            message = _error_message(response) or f"Invalid {self.kind}"
            logger.debug("%s %s rejected: %s", method, url, message)
            return RemoteResult.rejected(message)
        if not response.ok:
            return RemoteResult.unavailable(
                f"Backend not available ({response.status_code})", response.status_code
            )

        if not response.content:
            return RemoteResult.success()
        try:
            return RemoteResult.success(response.json())
        except ValueError:
            logger.warning("Non-JSON response from %s %s", method, url)
            return RemoteResult.unavailable("Malformed response from backend", response.status_code)


def _error_message(response: requests.Response) -> str | None:
    """Extract the ``error`` field from a JSON error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None
